"""
Chat endpoints for contract Q&A.
"""
import logging
from typing import Any, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import get_chat_service, get_current_active_user, get_db, get_registry
from app.core.helpers.vector_store import VectorIndexRegistry
from app.core.platform_knowledge import get_platform_info
from app.models.user import User
from app.schemas.chat import ChatQuery, ChatQueryResponse, ChatSession as ChatSessionSchema
from app.schemas.common import Message
from app.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/query", response_model=ChatQueryResponse)
async def query(
    payload: ChatQuery,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    chat_service: ChatService = Depends(get_chat_service),
) -> Any:
    """
    Ask a question about one document or across all of the user's documents.

    Args:
        payload: Question, optional document id and optional session id

    Returns:
        The answer with its context metadata and the chat session id

    Raises:
        DocumentNotReadyError: If the document has not finished processing
        GenerationError: If the model fails to answer
    """
    session = chat_service.get_or_create_session(
        db,
        current_user.id,
        payload.document_id,
        session_id=payload.session_id,
        title=payload.question[:60],
    )

    answer = await chat_service.ask(current_user.id, payload.question, payload.document_id)
    chat_service.record_exchange(db, session, payload.question, answer)

    return ChatQueryResponse(**answer.model_dump(), session_id=session.id)


@router.get("/sessions/{document_id}", response_model=List[ChatSessionSchema])
def get_sessions(
    document_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    chat_service: ChatService = Depends(get_chat_service),
) -> Any:
    """Get chat history for a document."""
    sessions = chat_service.list_sessions(db, current_user.id, document_id)
    return [ChatSessionSchema.model_validate(s) for s in sessions]


@router.delete("/sessions/{session_id}", response_model=Message)
def delete_session(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    chat_service: ChatService = Depends(get_chat_service),
) -> Any:
    """Clear a chat session."""
    chat_service.delete_session(db, current_user.id, session_id)
    return Message(message="Chat session deleted")


@router.delete("/index", response_model=Message)
async def cleanup_index(
    current_user: User = Depends(get_current_active_user),
    registry: VectorIndexRegistry = Depends(get_registry),
) -> Any:
    """Discard the user's in-memory vector index, e.g. on logout."""
    await registry.cleanup_user(current_user.id)
    return Message(message="Vector index cleaned up")


@router.get("/platform-info")
def platform_info() -> Any:
    """Platform features, limits and FAQ."""
    return get_platform_info()
