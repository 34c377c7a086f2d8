"""Models module - Import all models here for metadata creation."""
from app.db.base import Base
from app.models.user import User
from app.models.document import Document, DocumentStatus
from app.models.conversation import ChatSession, ChatMessage
from app.models.notification import Notification

__all__ = ["Base", "User", "Document", "DocumentStatus", "ChatSession", "ChatMessage", "Notification"]
