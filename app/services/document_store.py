"""
Document persistence for the processing pipeline.

Each call opens its own session, so background jobs never share a session
with a request, and updates to different documents never contend.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, sessionmaker

from app.core.exceptions import DocumentNotFoundError
from app.db.base import engine
from app.models.document import Document, DocumentStatus

logger = logging.getLogger(__name__)


class DocumentStore:
    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
        )

    def _session(self) -> Session:
        return self.session_factory()

    def create(
        self,
        owner_id: int,
        title: str,
        filename: str,
        mime_type: str,
        file_data: bytes,
    ) -> Document:
        """Insert a new upload. It starts in the processing state."""
        with self._session() as db:
            document = Document(
                owner_id=owner_id,
                title=title,
                filename=filename,
                mime_type=mime_type,
                file_size=len(file_data),
                file_data=file_data,
                status=DocumentStatus.PROCESSING.value,
            )
            db.add(document)
            db.commit()
            db.refresh(document)
            logger.info(f"[User: {owner_id}] Stored document {document.id} ({filename})")
            return document

    def get(self, document_id: int) -> Optional[Document]:
        with self._session() as db:
            return db.get(Document, document_id)

    def get_for_user(self, document_id: int, user_id: int) -> Document:
        """
        Fetch a document owned by ``user_id``.

        Raises:
            DocumentNotFoundError: If it does not exist or belongs to someone else.
        """
        document = self.get(document_id)
        if document is None or document.owner_id != user_id:
            raise DocumentNotFoundError("Document not found")
        return document

    def _update(self, document_id: int, values: Dict[str, Any]) -> bool:
        with self._session() as db:
            updated = (
                db.query(Document)
                .filter(Document.id == document_id)
                .update(values, synchronize_session=False)
            )
            db.commit()
        if not updated:
            logger.warning(f"Document {document_id} vanished before update")
        return bool(updated)

    def mark_processing(self, document_id: int) -> bool:
        return self._update(
            document_id,
            {"status": DocumentStatus.PROCESSING.value, "error_message": None},
        )

    def mark_completed(self, document_id: int, content: str, analysis: Dict[str, Any]) -> bool:
        return self._update(
            document_id,
            {
                "status": DocumentStatus.COMPLETED.value,
                "content": content,
                "analysis": analysis,
                "error_message": None,
            },
        )

    def mark_failed(self, document_id: int, error_message: str, error_type: Optional[str] = None) -> bool:
        return self._update(
            document_id,
            {
                "status": DocumentStatus.FAILED.value,
                "analysis": {"error": error_message, "error_type": error_type},
                "error_message": error_message,
            },
        )

    def list_for_user(
        self,
        user_id: int,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Document], int]:
        with self._session() as db:
            query = db.query(Document).filter(Document.owner_id == user_id)
            if status:
                query = query.filter(Document.status == status)
            total = query.count()
            items = query.order_by(Document.created_at.desc(), Document.id.desc()).offset(skip).limit(limit).all()
            return items, total

    def list_completed_for_user(self, user_id: int) -> List[Document]:
        with self._session() as db:
            return (
                db.query(Document)
                .filter(
                    Document.owner_id == user_id,
                    Document.status == DocumentStatus.COMPLETED.value,
                )
                .order_by(Document.id)
                .all()
            )

    def delete(self, document_id: int) -> bool:
        """Delete a document with its chat sessions and notifications."""
        with self._session() as db:
            document = db.get(Document, document_id)
            if document is None:
                return False
            db.delete(document)
            db.commit()
        logger.info(f"Deleted document {document_id}")
        return True
