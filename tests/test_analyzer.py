"""
Unit Tests for Fast Contract Analysis
Tests prompt bounds, JSON parsing and the fallback analysis
"""

import pytest

from app.core.exceptions import GenerationError
from app.core.helpers.analyzer import TRUNCATION_MARKER, DocumentAnalyzer


@pytest.mark.unit
class TestDocumentAnalyzer:
    """Test analyze_fast"""

    @pytest.mark.asyncio
    async def test_json_response(self, backend):
        """Test a well-formed response becomes a fast analysis"""
        analysis = await DocumentAnalyzer(backend).analyze_fast("The tenant pays rent.", user_id=1)

        assert analysis.mode == "fast"
        assert analysis.contract_type == "Lease Agreement"
        assert analysis.key_terms == ["rent", "term", "deposit"]
        assert analysis.risk_level == "low"
        call = backend.calls[0]
        assert call["temperature"] == 0.1
        assert call["top_p"] == 0.8
        assert call["max_tokens"] == 300

    @pytest.mark.asyncio
    async def test_fenced_json_response(self, backend):
        """Test JSON wrapped in a code fence is accepted"""
        backend.responses.append(
            'Analysis:\n```json\n{"contractType": "NDA", "riskLevel": "High", "summary": "Mutual."}\n```'
        )

        analysis = await DocumentAnalyzer(backend).analyze_fast("Confidential information.")

        assert analysis.contract_type == "NDA"
        assert analysis.risk_level == "high"
        assert analysis.mode == "fast"

    @pytest.mark.asyncio
    async def test_prose_response_falls_back(self, backend):
        """Test an unparseable response yields a marked fallback analysis"""
        backend.responses.append("This looks like an employment contract with a non-compete. " * 10)

        analysis = await DocumentAnalyzer(backend).analyze_fast("Employment terms.")

        assert analysis.mode == "fallback"
        assert analysis.contract_type == "Unknown"
        assert analysis.risk_level == "medium"
        assert analysis.main_concerns == ["Requires manual review"]
        assert analysis.summary.startswith("This looks like an employment contract")
        assert len(analysis.summary) <= 200

    @pytest.mark.asyncio
    async def test_generation_error_propagates(self, backend):
        """Test model failures are not turned into a fallback analysis"""
        backend.error = GenerationError("timeout")

        with pytest.raises(GenerationError):
            await DocumentAnalyzer(backend).analyze_fast("Text.")

    def test_long_content_truncated(self, backend):
        """Test prompts only carry the first max_input_chars characters"""
        analyzer = DocumentAnalyzer(backend, max_input_chars=100)

        prompt = analyzer.build_prompt("A" * 100 + "B" * 50)

        assert "A" * 100 in prompt
        assert "B" not in prompt.replace(TRUNCATION_MARKER, "")
        assert TRUNCATION_MARKER in prompt

    def test_short_content_untouched(self, backend):
        """Test content under the limit is passed whole"""
        prompt = DocumentAnalyzer(backend, max_input_chars=100).build_prompt("Short clause.")

        assert "Short clause." in prompt
        assert TRUNCATION_MARKER not in prompt

    def test_serialized_analysis_uses_field_names(self, backend):
        """Test the stored analysis JSON has stable keys"""
        from app.schemas.analysis import DocumentAnalysis

        dumped = DocumentAnalysis(contract_type="Lease").model_dump(mode="json")

        assert set(dumped) == {
            "contract_type", "key_terms", "risk_level", "main_concerns", "summary", "mode", "processed_at",
        }
