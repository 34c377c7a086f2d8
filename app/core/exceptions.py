"""
Error taxonomy for the ingestion and question-answering pipeline.

Every error carries an HTTP status code so the API layer can map it
without knowing where in the pipeline it was raised.
"""
from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class UnsupportedMediaTypeError(PipelineError):
    """Declared media type has no extraction strategy."""

    status_code = 415


class ExtractionError(PipelineError):
    """The byte stream could not be parsed as its declared type."""

    status_code = 422


class OcrError(PipelineError):
    """The OCR engine failed on an image."""

    status_code = 422


class InsufficientContentError(PipelineError):
    """Extracted text is too short to analyze or embed."""

    status_code = 422


class EmbeddingError(PipelineError):
    """The embedding model failed for at least one passage."""

    status_code = 502


class IndexNotInitializedError(PipelineError):
    """A search was run against an empty or missing vector index."""

    status_code = 409


class GenerationError(PipelineError):
    """The generation model call failed or timed out."""

    status_code = 502


class BackendUnavailableError(GenerationError):
    """The inference backend did not answer its health check."""

    status_code = 503


class DocumentNotReadyError(PipelineError):
    """The document is not in the completed state yet."""

    status_code = 409

    def __init__(self, message: str, *, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


class DocumentNotFoundError(PipelineError):
    status_code = 404


class UploadRejectedError(PipelineError):
    """File violated upload constraints before entering the pipeline."""

    status_code = 400


class AdmissionDeferred(Exception):
    """
    Internal signal: a concurrency ceiling is reached, retry later.

    Not a PipelineError because it never reaches a caller.
    """

    def __init__(self, scope: str, retry_after: float):
        super().__init__(f"Admission deferred ({scope} limit), retry in {retry_after}s")
        self.scope = scope
        self.retry_after = retry_after
