"""
Notification endpoints.
"""
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.dependencies import get_current_active_user, get_notifier
from app.models.user import User
from app.schemas.common import Message
from app.schemas.notification import Notification as NotificationSchema
from app.services.notification_service import NotificationService

router = APIRouter()


@router.get("", response_model=List[NotificationSchema])
def list_notifications(
    unread_only: bool = Query(False),
    current_user: User = Depends(get_current_active_user),
    notifier: NotificationService = Depends(get_notifier),
) -> Any:
    """Processing notifications for the current user, newest first."""
    return notifier.list_for_user(current_user.id, unread_only=unread_only)


@router.patch("/{notification_id}/read", response_model=Message)
def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_active_user),
    notifier: NotificationService = Depends(get_notifier),
) -> Any:
    """Mark a notification as read."""
    if not notifier.mark_read(current_user.id, notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return Message(message="Notification marked as read")
