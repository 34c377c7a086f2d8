"""
Document management endpoints.
"""
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from app.core.config import settings
from app.core.dependencies import get_coordinator, get_current_active_user, get_document_store
from app.core.document_processor import ProcessingCoordinator
from app.core.exceptions import DocumentNotReadyError, PipelineError, UploadRejectedError
from app.models.document import DocumentStatus
from app.models.user import User
from app.schemas.common import Message
from app.schemas.document import (
    BatchUploadError,
    BatchUploadResponse,
    Document as DocumentSchema,
    DocumentList,
    DocumentWithContent,
)
from app.services.document_store import DocumentStore
from app.utils.file_upload import get_title, read_upload_file

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload", response_model=DocumentSchema, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    current_user: User = Depends(get_current_active_user),
    store: DocumentStore = Depends(get_document_store),
    coordinator: ProcessingCoordinator = Depends(get_coordinator),
) -> Any:
    """
    Upload a document and start processing it in the background.

    Args:
        file: Uploaded file (PDF, DOC, DOCX, TXT or an image)
        title: Optional title, defaults to the filename
        current_user: Current authenticated user

    Returns:
        Created document, in the processing state

    Raises:
        UploadRejectedError: If the file is empty, too large or of a disallowed type
    """
    content, mime_type = await read_upload_file(file)
    filename = file.filename or "upload"

    document = store.create(
        owner_id=current_user.id,
        title=title or get_title(filename),
        filename=filename,
        mime_type=mime_type,
        file_data=content,
    )
    coordinator.submit(document.id)
    return document


@router.post("/upload-batch", response_model=BatchUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_documents(
    files: List[UploadFile] = File(...),
    current_user: User = Depends(get_current_active_user),
    store: DocumentStore = Depends(get_document_store),
    coordinator: ProcessingCoordinator = Depends(get_coordinator),
) -> Any:
    """
    Upload several documents at once.

    Invalid files are reported individually and do not stop the rest.
    """
    if len(files) > settings.MAX_BATCH_FILES:
        raise UploadRejectedError(f"Too many files: at most {settings.MAX_BATCH_FILES} per batch")

    documents = []
    errors = []
    for file in files:
        filename = file.filename or "upload"
        try:
            content, mime_type = await read_upload_file(file)
        except UploadRejectedError as e:
            errors.append(BatchUploadError(filename=filename, error=e.message))
            continue

        document = store.create(
            owner_id=current_user.id,
            title=get_title(filename),
            filename=filename,
            mime_type=mime_type,
            file_data=content,
        )
        coordinator.submit(document.id)
        documents.append(document)

    logger.info(f"[User: {current_user.id}] Batch upload: {len(documents)} accepted, {len(errors)} rejected")
    return BatchUploadResponse(
        documents=[DocumentSchema.model_validate(d) for d in documents],
        errors=errors,
    )


@router.get("", response_model=DocumentList)
def list_documents(
    status_filter: Optional[DocumentStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    store: DocumentStore = Depends(get_document_store),
) -> Any:
    """
    Get list of user's documents.

    Args:
        status_filter: Only documents in this status
        skip: Number of records to skip
        limit: Maximum number of records to return
    """
    items, total = store.list_for_user(
        current_user.id,
        status=status_filter.value if status_filter else None,
        skip=skip,
        limit=limit,
    )
    return DocumentList(
        items=[DocumentSchema.model_validate(d) for d in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/{document_id}", response_model=DocumentWithContent)
def get_document(
    document_id: int,
    current_user: User = Depends(get_current_active_user),
    store: DocumentStore = Depends(get_document_store),
) -> Any:
    """
    Get document by ID with extracted text and analysis.

    Raises:
        DocumentNotFoundError: If document not found or owned by another user
    """
    return store.get_for_user(document_id, current_user.id)


@router.get("/{document_id}/analysis")
def get_document_analysis(
    document_id: int,
    current_user: User = Depends(get_current_active_user),
    store: DocumentStore = Depends(get_document_store),
) -> Any:
    """
    Get the structured analysis of a document.

    Failed documents return their error payload, so the client can offer
    a reprocess action.

    Raises:
        DocumentNotReadyError: If the document is still processing
    """
    document = store.get_for_user(document_id, current_user.id)
    if document.status in (DocumentStatus.PENDING.value, DocumentStatus.PROCESSING.value):
        raise DocumentNotReadyError("Document is still processing", status=document.status)

    return {
        "document_id": document.id,
        "status": document.status,
        "analysis": document.analysis,
        "error_message": document.error_message,
    }


@router.delete("/{document_id}", response_model=Message)
async def delete_document(
    document_id: int,
    current_user: User = Depends(get_current_active_user),
    coordinator: ProcessingCoordinator = Depends(get_coordinator),
) -> Any:
    """
    Delete a document with its chat history and indexed passages.
    """
    await coordinator.delete_document(document_id, current_user.id)
    return Message(message="Document deleted successfully")


@router.post("/{document_id}/reprocess", response_model=DocumentSchema, status_code=status.HTTP_202_ACCEPTED)
async def reprocess_document(
    document_id: int,
    current_user: User = Depends(get_current_active_user),
    store: DocumentStore = Depends(get_document_store),
    coordinator: ProcessingCoordinator = Depends(get_coordinator),
) -> Any:
    """
    Run a completed or failed document through the pipeline again.

    Raises:
        DocumentNotReadyError: If the document is still processing
    """
    try:
        coordinator.reprocess(document_id, current_user.id)
    except PipelineError:
        logger.warning(f"[User: {current_user.id}] Reprocess of document {document_id} rejected")
        raise
    return store.get_for_user(document_id, current_user.id)
