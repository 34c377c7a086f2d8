"""
Fast structured analysis of a document's extracted text.
"""
import logging
from typing import Optional

from app.core.agents.prompts import FAST_ANALYSIS_PROMPT_TEMPLATE
from app.core.config import settings
from app.core.helpers.parsers import ParseFallback, parse_json_object
from app.schemas.analysis import AnalysisPayload, DocumentAnalysis

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[... document truncated for analysis ...]"


class DocumentAnalyzer:
    """Ask the generation model for a small JSON summary of a contract."""

    def __init__(self, backend, max_input_chars: Optional[int] = None):
        self.backend = backend
        self.max_input_chars = max_input_chars or settings.ANALYSIS_MAX_INPUT_CHARS

    def build_prompt(self, content: str) -> str:
        if len(content) > self.max_input_chars:
            content = content[: self.max_input_chars] + TRUNCATION_MARKER
        return FAST_ANALYSIS_PROMPT_TEMPLATE.format(content=content)

    async def analyze_fast(self, content: str, user_id: Optional[int] = None) -> DocumentAnalysis:
        """
        Run a bounded, low-temperature analysis prompt.

        Generation errors propagate. A response that is not valid JSON yields
        an analysis with mode "fallback" built from the raw response.
        """
        logger.info(f"[User: {user_id}] Starting fast analysis ({len(content)} chars)")

        response = await self.backend.generate(
            self.build_prompt(content),
            temperature=0.1,
            top_p=0.8,
            max_tokens=300,
        )

        parsed = parse_json_object(response, AnalysisPayload)
        if isinstance(parsed, ParseFallback):
            logger.warning(f"[User: {user_id}] Analysis JSON unparseable ({parsed.reason}), using fallback")
            summary = response.strip()[:200] or "Analysis completed but returned no readable summary"
            return DocumentAnalysis(
                contract_type="Unknown",
                key_terms=[],
                risk_level="medium",
                main_concerns=["Requires manual review"],
                summary=summary,
                mode="fallback",
            )

        logger.info(f"[User: {user_id}] Fast analysis complete: {parsed.contract_type}")
        return DocumentAnalysis(**parsed.model_dump(), mode="fast")
