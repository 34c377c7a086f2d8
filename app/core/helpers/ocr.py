"""
OCR for uploaded images, with language-model cleanup of the raw text.
"""
import asyncio
import io
import logging
import re
from dataclasses import dataclass
from typing import Optional

import pytesseract
from PIL import Image

from app.core.agents.prompts import OCR_ENHANCEMENT_PROMPT_TEMPLATE
from app.core.config import settings
from app.core.exceptions import GenerationError, OcrError
from app.core.helpers.parsers import ParseFallback, parse_labeled_sections

logger = logging.getLogger(__name__)

NO_TEXT_SUMMARY = "No significant text found"


@dataclass
class OCRResult:
    """Outcome of enhanced OCR on one image."""

    raw_text: str
    enhanced_text: Optional[str]
    summary: str
    confidence: float = 0.0
    error: Optional[str] = None

    @property
    def text(self) -> str:
        """Best available text: the enhanced version, else the raw OCR output."""
        return self.enhanced_text or self.raw_text


def clean_ocr_text(text: str) -> str:
    """Collapse blank lines and runs of whitespace into single spaces."""
    text = re.sub(r"\n\s*\n", "\n", text)
    return re.sub(r"\s+", " ", text).strip()


def calculate_text_quality(raw_text: str, enhanced_text: Optional[str]) -> float:
    """
    Heuristic score in [0, 1] for whether enhancement plausibly worked.

    Not a calibrated probability.
    """
    if not raw_text or not enhanced_text:
        return 0.0

    raw_words = len(raw_text.split())
    enhanced_words = len(enhanced_text.split())
    length_ratio = min(enhanced_words / raw_words, 2.0)

    has_proper_sentences = "." in enhanced_text and " " in enhanced_text
    has_reasonable_length = len(enhanced_text) > 20

    score = 0.5
    if has_proper_sentences:
        score += 0.3
    if has_reasonable_length:
        score += 0.2
    score *= length_ratio

    return min(score, 1.0)


class OCREnhancer:
    """Run Tesseract over an image, then ask the LLM to clean up the result."""

    def __init__(
        self,
        backend,
        language: Optional[str] = None,
        min_text_length: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        """
        Args:
            backend: Generation backend exposing an async generate(prompt, ...)
            language: Tesseract language code
            min_text_length: Below this many non-space characters the LLM is skipped
            timeout: Tesseract timeout in seconds
        """
        self.backend = backend
        self.language = language or settings.OCR_LANGUAGE
        self.min_text_length = min_text_length or settings.OCR_MIN_TEXT_LENGTH
        self.timeout = timeout or settings.OCR_TIMEOUT

    def _run_tesseract(self, image_bytes: bytes) -> str:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.load()
            return pytesseract.image_to_string(image, lang=self.language, timeout=self.timeout)

    async def extract_text_from_image(self, image_bytes: bytes) -> str:
        """
        OCR an image and normalise whitespace.

        Raises:
            OcrError: If the image cannot be decoded or Tesseract fails.
        """
        logger.info("Extracting text from image using OCR...")
        try:
            text = await asyncio.to_thread(self._run_tesseract, image_bytes)
        except (OSError, RuntimeError, pytesseract.TesseractError) as e:
            logger.error(f"OCR Error: {e}")
            raise OcrError(f"OCR failed: {e}") from e

        cleaned = clean_ocr_text(text or "")
        logger.info(f"OCR completed. Extracted {len(cleaned)} characters")
        return cleaned

    async def enhanced_ocr(self, image_bytes: bytes) -> OCRResult:
        """
        OCR an image and post-process the text through the language model.

        OCR failure is fatal. Enhancement failure degrades to the raw text
        with the error recorded on the result.
        """
        raw_text = await self.extract_text_from_image(image_bytes)

        if len(re.sub(r"\s", "", raw_text)) < self.min_text_length:
            return OCRResult(
                raw_text=raw_text,
                enhanced_text=raw_text,
                summary=NO_TEXT_SUMMARY,
                confidence=0.0,
            )

        prompt = OCR_ENHANCEMENT_PROMPT_TEMPLATE.format(raw_text=raw_text)
        try:
            response = await self.backend.generate(
                prompt, temperature=0.3, top_p=0.9, max_tokens=1000
            )
        except GenerationError as e:
            logger.warning(f"OCR enhancement failed, using raw OCR text: {e}")
            return OCRResult(
                raw_text=raw_text,
                enhanced_text=None,
                summary="Enhancement failed",
                error=str(e),
            )

        parsed = parse_labeled_sections(response, ["CLEANED_TEXT", "SUMMARY"])
        if isinstance(parsed, ParseFallback):
            logger.warning(f"OCR enhancement response unparseable ({parsed.reason}), keeping raw text")
            enhanced_text = raw_text
            summary = "Document processed"
        else:
            enhanced_text = parsed.get("CLEANED_TEXT") or raw_text
            summary = parsed.get("SUMMARY") or "Document processed"

        return OCRResult(
            raw_text=raw_text,
            enhanced_text=enhanced_text,
            summary=summary,
            confidence=calculate_text_quality(raw_text, enhanced_text),
        )
