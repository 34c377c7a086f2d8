"""
Document text extraction service.
Supports PDF, images (through OCR), plain text and Word documents.
"""
import io
import logging
from typing import Optional

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from app.core.exceptions import ExtractionError, UnsupportedMediaTypeError
from app.core.helpers.ocr import OCREnhancer

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"

IMAGE_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/tiff",
    "image/bmp",
    "image/webp",
}

# Word formats are not structurally parsed; bytes are decoded best-effort
TEXT_MIME_TYPES = {
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


class DocumentExtractor:
    """Extract text content from uploaded files, dispatching on the declared media type."""

    def __init__(self, ocr: OCREnhancer):
        self.ocr = ocr

    async def extract_text(
        self,
        file_bytes: bytes,
        mime_type: str,
        filename: Optional[str] = None,
    ) -> str:
        """
        Extract text from document bytes.

        Args:
            file_bytes: Raw file content as bytes
            mime_type: Media type declared at upload
            filename: Optional filename for logging

        Returns:
            Extracted text content, trimmed

        Raises:
            UnsupportedMediaTypeError: If no strategy exists for the media type
            ExtractionError: If a PDF cannot be parsed
            OcrError: If the OCR engine fails on an image
        """
        mime_type = (mime_type or "").lower()
        logger.info(f"Extracting text from {filename or 'upload'} ({mime_type})")

        if mime_type == PDF_MIME_TYPE:
            text = self._extract_pdf(file_bytes)
        elif mime_type in IMAGE_MIME_TYPES:
            result = await self.ocr.enhanced_ocr(file_bytes)
            text = result.text
        elif mime_type in TEXT_MIME_TYPES:
            text = self._extract_text(file_bytes)
        else:
            raise UnsupportedMediaTypeError(f"Unsupported file type: {mime_type or 'unknown'}")

        return text.strip()

    def _extract_pdf(self, file_bytes: bytes) -> str:
        """Extract text from PDF."""
        try:
            pdf = PdfReader(io.BytesIO(file_bytes))
            text_parts = []

            for page in pdf.pages:
                page_text = page.extract_text() or ""
                if page_text.strip():
                    text_parts.append(page_text)

            return "\n\n".join(text_parts)
        except (PyPdfError, ValueError, KeyError, TypeError, OSError) as e:
            logger.error(f"PDF extraction error: {e}")
            raise ExtractionError(f"Failed to extract PDF: {e}") from e

    def _extract_text(self, file_bytes: bytes) -> str:
        """Extract text from plain text or Word file."""
        return file_bytes.decode("utf-8", errors="ignore")
