"""
Document processing pipeline: extraction, analysis, chunking, embedding
and indexing, run as background jobs under admission control.
"""
import asyncio
import logging
from typing import Any, Dict, Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.exceptions import (
    AdmissionDeferred,
    BackendUnavailableError,
    DocumentNotReadyError,
    InsufficientContentError,
    PipelineError,
)
from app.core.helpers.admission import AdmissionController
from app.core.helpers.analyzer import DocumentAnalyzer
from app.core.helpers.chunker import TextChunker
from app.core.helpers.extracter import DocumentExtractor
from app.core.helpers.vector_store import VectorIndexRegistry
from app.models.document import Document, DocumentStatus

logger = logging.getLogger(__name__)

SUCCESS_TITLE = "Contract Analysis Complete"
FAILURE_TITLE = "Contract Processing Failed"
DELETED_TITLE = "Contract Deleted"


class ProcessingCoordinator:
    """
    Main document processing pipeline.
    Orchestrates extraction, analysis, chunking, embedding and indexing for
    uploaded documents, one background task per document.

    Errors inside a job end it in the failed state with a notification;
    they never escape the task.
    """

    def __init__(
        self,
        store,
        notifier,
        backend,
        extractor: DocumentExtractor,
        analyzer: DocumentAnalyzer,
        chunker: TextChunker,
        registry: VectorIndexRegistry,
        admission: Optional[AdmissionController] = None,
        min_content_length: Optional[int] = None,
        require_backend_healthy: Optional[bool] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.backend = backend
        self.extractor = extractor
        self.analyzer = analyzer
        self.chunker = chunker
        self.registry = registry
        self.admission = admission or AdmissionController()
        self.min_content_length = min_content_length or settings.MIN_CONTENT_LENGTH
        self.require_backend_healthy = (
            settings.REQUIRE_BACKEND_HEALTHY if require_backend_healthy is None else require_backend_healthy
        )

        self._tasks: Set[asyncio.Task] = set()
        self._counters = {"completed": 0, "failed": 0, "deferrals": 0}

    def submit(self, document_id: int) -> asyncio.Task:
        """Start processing a stored document in the background."""
        task = asyncio.create_task(
            self.process_document(document_id), name=f"process-document-{document_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(self._log_unhandled)
        return task

    @staticmethod
    def _log_unhandled(task: asyncio.Task) -> None:
        if task.cancelled():
            logger.warning(f"Task {task.get_name()} was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Task {task.get_name()} crashed", exc_info=error)

    async def process_document(self, document_id: int) -> Optional[DocumentStatus]:
        """
        Run the full pipeline for one document.

        Returns:
            The terminal status, or None if the document no longer exists.
        """
        try:
            document = self.store.get(document_id)
        except SQLAlchemyError:
            logger.exception(f"Could not load document {document_id}, skipping processing")
            return None
        if document is None:
            logger.warning(f"Document {document_id} not found, skipping processing")
            return None

        user_id = document.owner_id
        if document.status != DocumentStatus.PROCESSING.value:
            try:
                self.store.mark_processing(document_id)
            except SQLAlchemyError as e:
                return self._fail(document, e)

        if self.require_backend_healthy and not await self.backend.is_available():
            return self._fail(
                document,
                BackendUnavailableError("AI backend is not available. Please ensure Ollama is running."),
            )

        await self._admit(user_id)
        try:
            return await self._run_pipeline(document)
        finally:
            self.admission.release(user_id)
            logger.info(
                f"[User: {user_id}] Slot released for document {document_id} "
                f"(active: {self.admission.active_for(user_id)}, global: {self.admission.active_global})"
            )

    async def _admit(self, user_id: int) -> None:
        """Wait until the admission controller grants a slot."""
        while True:
            try:
                self.admission.acquire(user_id)
                return
            except AdmissionDeferred as deferred:
                self._counters["deferrals"] += 1
                logger.info(f"[User: {user_id}] {deferred}")
                await asyncio.sleep(deferred.retry_after)

    async def _run_pipeline(self, document: Document) -> DocumentStatus:
        document_id = document.id
        user_id = document.owner_id
        logger.info(f"[User: {user_id}] Processing document {document_id} ({document.filename})")

        try:
            # Step 1: Extract text while the model loads
            text, _ = await asyncio.gather(
                self.extractor.extract_text(document.file_data, document.mime_type, document.filename),
                self.backend.warmup(),
            )

            if len(text) < self.min_content_length:
                raise InsufficientContentError(
                    f"Insufficient text content extracted from document "
                    f"({len(text)} characters, minimum {self.min_content_length})"
                )

            # Step 2: Analyze and index concurrently; wait for both before judging
            analysis, indexed = await asyncio.gather(
                self.analyzer.analyze_fast(text, user_id),
                self._index_document(document, text),
                return_exceptions=True,
            )
            for outcome in (analysis, indexed):
                if isinstance(outcome, BaseException):
                    raise outcome

        except PipelineError as e:
            await self.registry.remove_user_document(user_id, document_id)
            return self._fail(document, e)
        except Exception as e:
            logger.exception(f"[User: {user_id}] Unexpected error processing document {document_id}")
            await self.registry.remove_user_document(user_id, document_id)
            return self._fail(document, e)

        # Step 3: Persist
        try:
            stored = self.store.mark_completed(document_id, text, analysis.model_dump(mode="json"))
        except SQLAlchemyError as e:
            await self.registry.remove_user_document(user_id, document_id)
            return self._fail(document, e)
        if not stored:
            await self.registry.remove_user_document(user_id, document_id)
            return DocumentStatus.FAILED

        self._counters["completed"] += 1
        logger.info(f"[User: {user_id}] Document {document_id} completed ({indexed} passages)")
        self.notifier.notify(
            user_id,
            SUCCESS_TITLE,
            f'"{document.title}" has been analyzed successfully. Risk level: {analysis.risk_level}.',
            type="success",
            document_id=document_id,
        )
        return DocumentStatus.COMPLETED

    async def _index_document(self, document: Document, text: str) -> int:
        """Chunk, embed and insert a document into its owner's index."""
        passages = self.chunker.split_document(text, self.passage_metadata(document))
        await self.registry.add_user_documents(document.owner_id, document.id, passages)
        return len(passages)

    @staticmethod
    def passage_metadata(document: Document) -> Dict[str, Any]:
        return {
            "document_id": document.id,
            "user_id": document.owner_id,
            "title": document.title,
            "file_name": document.filename,
        }

    def _fail(self, document: Document, error: Exception) -> DocumentStatus:
        message = error.message if isinstance(error, PipelineError) else str(error) or type(error).__name__
        logger.error(f"[User: {document.owner_id}] Document {document.id} failed: {type(error).__name__}: {message}")

        self._counters["failed"] += 1
        try:
            self.store.mark_failed(document.id, message, type(error).__name__)
        except SQLAlchemyError as e:
            logger.error(f"[User: {document.owner_id}] Could not record failure of document {document.id}: {e}")
        self.notifier.notify(
            document.owner_id,
            FAILURE_TITLE,
            f'Failed to process "{document.title}": {message}',
            type="error",
            document_id=document.id,
        )
        return DocumentStatus.FAILED

    def reprocess(self, document_id: int, user_id: int) -> asyncio.Task:
        """
        Reset a finished document to processing and run the pipeline again.

        Raises:
            DocumentNotFoundError: If the user does not own the document.
            DocumentNotReadyError: If the document is still processing.
        """
        document = self.store.get_for_user(document_id, user_id)
        if document.status == DocumentStatus.PROCESSING.value:
            raise DocumentNotReadyError(
                "Document is already being processed", status=document.status
            )

        self.store.mark_processing(document_id)
        logger.info(f"[User: {user_id}] Reprocessing document {document_id}")
        return self.submit(document_id)

    async def delete_document(self, document_id: int, user_id: int) -> None:
        """Delete a document with its chat history and indexed passages."""
        document = self.store.get_for_user(document_id, user_id)
        self.store.delete(document_id)
        await self.registry.remove_user_document(user_id, document_id)
        self.notifier.notify(
            user_id,
            DELETED_TITLE,
            f'"{document.title}" has been deleted.',
            type="info",
        )

    async def wait_idle(self) -> None:
        """Wait until every submitted job has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def stats(self) -> Dict[str, Any]:
        return {
            "in_flight": len(self._tasks),
            **self._counters,
            "admission": self.admission.snapshot(),
            "indexes": self.registry.stats(),
        }
