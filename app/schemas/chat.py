"""
Pydantic schemas for chat queries and sessions.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ChatQuery(BaseModel):
    """Question about one document, or about the user's whole corpus."""

    question: str = Field(..., min_length=1, max_length=4000)
    document_id: Optional[int] = None
    session_id: Optional[int] = None


class ChatQueryResponse(BaseModel):
    answer: str
    has_context: bool
    query_type: str
    context_source: str
    sources: List[Dict[str, Any]] = []
    session_id: int


class ChatMessage(BaseModel):
    id: int
    role: str
    content: str
    query_type: Optional[str] = None
    sources: Optional[List[Dict[str, Any]]] = None
    created_at: Optional[datetime] = None

    class Config:
        """Pydantic config."""

        from_attributes = True


class ChatSession(BaseModel):
    id: int
    document_id: Optional[int] = None
    title: Optional[str] = None
    created_at: Optional[datetime] = None
    messages: List[ChatMessage] = []

    class Config:
        """Pydantic config."""

        from_attributes = True
