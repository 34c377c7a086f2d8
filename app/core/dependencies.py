"""
Dependency injection for FastAPI endpoints.
"""
from functools import lru_cache
from typing import Generator, Optional, cast

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.agents.chat.qa_chat import AnswerComposer
from app.core.config import settings
from app.core.document_processor import ProcessingCoordinator
from app.core.helpers.admission import AdmissionController
from app.core.helpers.analyzer import DocumentAnalyzer
from app.core.helpers.chunker import TextChunker
from app.core.helpers.embedder import EmbeddingService
from app.core.helpers.extracter import DocumentExtractor
from app.core.helpers.ocr import OCREnhancer
from app.core.helpers.vector_store import VectorIndexRegistry
from app.core.llm_config import OllamaBackend
from app.core.security import decode_token
from app.db.base import SessionLocal
from app.models.user import User
from app.services.chat_service import ChatService
from app.services.document_store import DocumentStore
from app.services.notification_service import NotificationService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/login")


def get_db() -> Generator:
    """
    Dependency for database session.

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)
) -> User:
    """
    Get current authenticated user from JWT token.

    Args:
        db: Database session
        token: JWT token

    Returns:
        Current user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(token)
    user_id: Optional[str] = payload.get("sub") if payload else None
    if user_id is None or not str(user_id).isdigit():
        raise credentials_exception

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None:
        raise credentials_exception

    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Get current active user.

    Raises:
        HTTPException: If user is inactive
    """
    if not cast(bool, current_user.is_active):
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


# Pipeline singletons, shared by every request and background job


@lru_cache
def get_backend() -> OllamaBackend:
    return OllamaBackend()


@lru_cache
def get_registry() -> VectorIndexRegistry:
    return VectorIndexRegistry(EmbeddingService())


@lru_cache
def get_document_store() -> DocumentStore:
    return DocumentStore()


@lru_cache
def get_notifier() -> NotificationService:
    return NotificationService()


@lru_cache
def get_chunker() -> TextChunker:
    return TextChunker()


@lru_cache
def get_coordinator() -> ProcessingCoordinator:
    backend = get_backend()
    return ProcessingCoordinator(
        store=get_document_store(),
        notifier=get_notifier(),
        backend=backend,
        extractor=DocumentExtractor(OCREnhancer(backend)),
        analyzer=DocumentAnalyzer(backend),
        chunker=get_chunker(),
        registry=get_registry(),
        admission=AdmissionController(),
    )


@lru_cache
def get_chat_service() -> ChatService:
    return ChatService(
        store=get_document_store(),
        registry=get_registry(),
        composer=AnswerComposer(get_backend()),
        chunker=get_chunker(),
    )
