"""
Notification sink for processing events.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.db.base import engine
from app.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """Persist user notifications. Delivery failures are logged, never raised."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
        )

    def notify(
        self,
        user_id: int,
        title: str,
        message: str,
        type: str = "info",
        document_id: Optional[int] = None,
    ) -> bool:
        try:
            with self.session_factory() as db:
                db.add(
                    Notification(
                        user_id=user_id,
                        document_id=document_id,
                        title=title,
                        message=message,
                        type=type,
                    )
                )
                db.commit()
        except SQLAlchemyError as e:
            logger.warning(f"[User: {user_id}] Notification '{title}' not delivered: {e}")
            return False
        return True

    def list_for_user(self, user_id: int, unread_only: bool = False) -> List[Notification]:
        with self.session_factory() as db:
            query = db.query(Notification).filter(Notification.user_id == user_id)
            if unread_only:
                query = query.filter(Notification.is_read.is_(False))
            return query.order_by(Notification.id.desc()).all()

    def mark_read(self, user_id: int, notification_id: int) -> bool:
        with self.session_factory() as db:
            updated = (
                db.query(Notification)
                .filter(Notification.id == notification_id, Notification.user_id == user_id)
                .update({"is_read": True}, synchronize_session=False)
            )
            db.commit()
        return bool(updated)
