"""Schemas module - Import all schemas."""
from app.schemas.analysis import AnalysisPayload, DocumentAnalysis
from app.schemas.document import (
    BatchUploadError,
    BatchUploadResponse,
    Document,
    DocumentList,
    DocumentWithContent,
)
from app.schemas.chat import ChatMessage, ChatQuery, ChatQueryResponse, ChatSession
from app.schemas.common import Message
from app.schemas.notification import Notification

__all__ = [
    "AnalysisPayload",
    "DocumentAnalysis",
    "BatchUploadError",
    "BatchUploadResponse",
    "Document",
    "DocumentList",
    "DocumentWithContent",
    "ChatMessage",
    "ChatQuery",
    "ChatQueryResponse",
    "ChatSession",
    "Message",
    "Notification",
]
