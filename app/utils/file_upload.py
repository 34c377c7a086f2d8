"""
File upload utilities.
"""
import os
from typing import Optional, Tuple

import magic
from fastapi import UploadFile, status

from app.core.config import settings
from app.core.exceptions import UploadRejectedError

GENERIC_MIME_TYPES = {"", "application/octet-stream"}


def detect_mime_type(content: bytes, declared: Optional[str]) -> str:
    """
    Resolve the media type of an upload.

    The declared type wins unless it is missing or generic, in which
    case the content is sniffed.

    Args:
        content: File bytes
        declared: Content type sent by the client

    Returns:
        Media type, lower-cased
    """
    declared = (declared or "").split(";")[0].strip().lower()
    if declared not in GENERIC_MIME_TYPES:
        return declared
    return magic.from_buffer(content[:4096], mime=True).lower()


def get_title(filename: str) -> str:
    """
    Derive a display title from a filename.

    Args:
        filename: Original filename

    Returns:
        Filename without extension
    """
    stem, _ = os.path.splitext(os.path.basename(filename))
    return stem or filename


async def read_upload_file(upload_file: UploadFile) -> Tuple[bytes, str]:
    """
    Read and validate an uploaded file.

    Args:
        upload_file: Uploaded file

    Returns:
        Tuple of (content, mime_type)

    Raises:
        UploadRejectedError: If the file is empty, too large or of a type not allowed
    """
    content = await upload_file.read()
    file_size = len(content)

    if file_size == 0:
        raise UploadRejectedError("File is empty")

    # Check file size
    if file_size > settings.MAX_UPLOAD_SIZE:
        raise UploadRejectedError(
            f"File size exceeds maximum allowed size of {settings.MAX_UPLOAD_SIZE} bytes",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        )

    mime_type = detect_mime_type(content, upload_file.content_type)
    if mime_type not in settings.ALLOWED_MIME_TYPES:
        raise UploadRejectedError(
            f"Invalid file type: {mime_type}. Allowed types: PDF, DOC, DOCX, TXT, JPEG, PNG, TIFF, BMP, WEBP"
        )

    return content, mime_type
