"""
Question answering over one document or a user's whole corpus, with
chat history persistence.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.agents.chat.qa_chat import AnswerComposer, ChatAnswer
from app.core.config import settings
from app.core.document_processor import ProcessingCoordinator
from app.core.exceptions import DocumentNotFoundError, DocumentNotReadyError
from app.core.helpers.chunker import TextChunker
from app.core.helpers.vector_store import VectorIndexRegistry
from app.models.conversation import ChatMessage, ChatSession
from app.models.document import DocumentStatus

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(
        self,
        store,
        registry: VectorIndexRegistry,
        composer: AnswerComposer,
        chunker: TextChunker,
        inline_context_max_chars: Optional[int] = None,
    ):
        self.store = store
        self.registry = registry
        self.composer = composer
        self.chunker = chunker
        self.inline_context_max_chars = inline_context_max_chars or settings.INLINE_CONTEXT_MAX_CHARS

    async def ask(self, user_id: int, question: str, document_id: Optional[int] = None) -> ChatAnswer:
        """
        Answer a question about one document, or across the user's documents.

        Raises:
            DocumentNotFoundError: If the document is not the user's.
            DocumentNotReadyError: If the document has not completed processing.
            GenerationError: If the generation model fails.
        """
        if document_id is not None:
            return await self._ask_document(user_id, question, document_id)

        index = await self._user_index(user_id)
        logger.info(
            f"[User: {user_id}] Corpus question, index size {len(index) if index is not None else 0}"
        )
        return await self.composer.answer(question, index=index)

    async def _ask_document(self, user_id: int, question: str, document_id: int) -> ChatAnswer:
        document = self.store.get_for_user(document_id, user_id)
        if document.status != DocumentStatus.COMPLETED.value:
            raise DocumentNotReadyError(
                f"Document is not ready for questions (status: {document.status})",
                status=document.status,
            )

        content = document.content or ""
        if len(content) <= self.inline_context_max_chars:
            return await self.composer.answer(question, context=content)

        # Too long to inline: retrieve from a single-document index instead
        passages = self.chunker.split_document(content, ProcessingCoordinator.passage_metadata(document))
        index = await self.registry.rebuild_global(passages)
        return await self.composer.answer(question, index=index)

    async def _user_index(self, user_id: int):
        """The user's index, merging in stored documents on first use after a restart."""
        if not self.registry.is_corpus_loaded(user_id):
            passages = []
            for document in self.store.list_completed_for_user(user_id):
                if document.content:
                    passages.extend(
                        self.chunker.split_document(
                            document.content, ProcessingCoordinator.passage_metadata(document)
                        )
                    )
            await self.registry.load_user_corpus(
                user_id,
                passages,
                current_ids=lambda: [d.id for d in self.store.list_completed_for_user(user_id)],
            )
        return self.registry.get_user_index(user_id)

    # Chat history

    def get_or_create_session(
        self,
        db: Session,
        user_id: int,
        document_id: Optional[int],
        session_id: Optional[int] = None,
        title: Optional[str] = None,
    ) -> ChatSession:
        same_document = (
            ChatSession.document_id.is_(None) if document_id is None else ChatSession.document_id == document_id
        )
        if session_id is not None:
            # a session only continues the conversation it was started for
            session = db.query(ChatSession).filter(
                ChatSession.id == session_id, ChatSession.user_id == user_id, same_document
            ).first()
            if session is None:
                raise DocumentNotFoundError("Chat session not found")
            return session

        session = db.query(ChatSession).filter(
            ChatSession.user_id == user_id, same_document
        ).order_by(ChatSession.id.desc()).first()
        if session is None:
            # inserted with its first exchange
            session = ChatSession(user_id=user_id, document_id=document_id, title=(title or "New Chat")[:255])
            db.add(session)
        return session

    def record_exchange(self, db: Session, session: ChatSession, question: str, answer: ChatAnswer) -> None:
        session.messages.append(ChatMessage(role="user", content=question))
        session.messages.append(
            ChatMessage(
                role="assistant",
                content=answer.answer,
                query_type=answer.query_type,
                sources=answer.sources or None,
            )
        )
        session.updated_at = datetime.now(timezone.utc)
        db.commit()
        logger.info(f"Saved messages to chat session {session.id}")

    def list_sessions(self, db: Session, user_id: int, document_id: int) -> List[ChatSession]:
        return db.query(ChatSession).filter(
            ChatSession.user_id == user_id,
            ChatSession.document_id == document_id,
        ).order_by(ChatSession.id.desc()).all()

    def delete_session(self, db: Session, user_id: int, session_id: int) -> None:
        session = db.query(ChatSession).filter(
            ChatSession.id == session_id, ChatSession.user_id == user_id
        ).first()
        if session is None:
            raise DocumentNotFoundError("Chat session not found")
        db.delete(session)
        db.commit()
