"""
Pydantic schemas for user notifications.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Notification(BaseModel):
    id: int
    document_id: Optional[int] = None
    title: str
    message: str
    type: str
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        """Pydantic config."""

        from_attributes = True
