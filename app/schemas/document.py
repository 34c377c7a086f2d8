"""
Pydantic schemas for Document model.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class DocumentInDB(BaseModel):
    """Schema for document in database."""

    id: int
    title: str
    filename: str
    mime_type: str
    file_size: int
    status: str
    error_message: Optional[str] = None
    owner_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        """Pydantic config."""

        from_attributes = True


class Document(DocumentInDB):
    """Schema for document response."""

    pass


class DocumentWithContent(Document):
    """Schema for document response with extracted text and analysis."""

    content: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = None


class DocumentList(BaseModel):
    """Paginated document list."""

    items: List[Document]
    total: int
    skip: int
    limit: int


class BatchUploadError(BaseModel):
    filename: str
    error: str


class BatchUploadResponse(BaseModel):
    """Result of a batch upload: accepted documents plus per-file rejections."""

    documents: List[Document]
    errors: List[BatchUploadError]
