"""
Unit Tests for Model Output Parsers
Tests labeled-section and JSON extraction from free-text responses
"""

import pytest

from app.core.helpers.parsers import (
    ParseFallback,
    ParsedSections,
    parse_json_object,
    parse_labeled_sections,
)
from app.schemas.analysis import AnalysisPayload


@pytest.mark.unit
class TestLabeledSections:
    """Test CLEANED_TEXT / SUMMARY style responses"""

    def test_plain_labels(self):
        """Test both sections are split at their labels"""
        response = "CLEANED_TEXT: The tenant pays rent monthly.\nSUMMARY: A lease clause."
        parsed = parse_labeled_sections(response, ["CLEANED_TEXT", "SUMMARY"])

        assert isinstance(parsed, ParsedSections)
        assert parsed.get("CLEANED_TEXT") == "The tenant pays rent monthly."
        assert parsed.get("summary") == "A lease clause."

    def test_decorated_labels(self):
        """Test numbered and bold labels are still recognised"""
        response = "1. **CLEANED_TEXT**: Clause one.\n\n2. **SUMMARY**: Short."
        parsed = parse_labeled_sections(response, ["CLEANED_TEXT", "SUMMARY"])

        assert isinstance(parsed, ParsedSections)
        assert parsed.get("CLEANED_TEXT") == "Clause one."
        assert parsed.get("SUMMARY") == "Short."

    def test_multiline_section(self):
        """Test a section runs until the next label"""
        response = "CLEANED_TEXT:\nLine one.\nLine two.\nSUMMARY: Two lines."
        parsed = parse_labeled_sections(response, ["CLEANED_TEXT", "SUMMARY"])

        assert parsed.get("CLEANED_TEXT") == "Line one.\nLine two."

    def test_missing_primary_label_falls_back(self):
        """Test a response without the primary label is an explicit fallback"""
        parsed = parse_labeled_sections("Here is your text, nicely cleaned.", ["CLEANED_TEXT", "SUMMARY"])

        assert isinstance(parsed, ParseFallback)
        assert "CLEANED_TEXT" in parsed.reason
        assert parsed.raw == "Here is your text, nicely cleaned."

    def test_empty_response_falls_back(self):
        """Test empty output never becomes an empty section"""
        assert isinstance(parse_labeled_sections("   ", ["CLEANED_TEXT"]), ParseFallback)

    def test_secondary_label_optional(self):
        """Test the summary may be missing"""
        parsed = parse_labeled_sections("CLEANED_TEXT: Only text.", ["CLEANED_TEXT", "SUMMARY"])

        assert isinstance(parsed, ParsedSections)
        assert parsed.get("SUMMARY") is None


@pytest.mark.unit
class TestJsonObject:
    """Test JSON extraction and validation"""

    def test_bare_json(self):
        """Test a clean JSON response validates"""
        parsed = parse_json_object(
            '{"contractType": "NDA", "keyTerms": ["confidentiality"], "riskLevel": "high", '
            '"mainConcerns": [], "summary": "Mutual NDA."}',
            AnalysisPayload,
        )

        assert isinstance(parsed, AnalysisPayload)
        assert parsed.contract_type == "NDA"
        assert parsed.risk_level == "high"

    def test_json_in_code_fence_with_prose(self):
        """Test JSON surrounded by prose and fences is found"""
        response = (
            "Sure! Here is the analysis:\n```json\n"
            '{"contractType": "Lease", "summary": "Has {braces} in text"}\n```\nLet me know.'
        )
        parsed = parse_json_object(response, AnalysisPayload)

        assert isinstance(parsed, AnalysisPayload)
        assert parsed.summary == "Has {braces} in text"

    def test_no_json_falls_back(self):
        """Test prose-only output is a fallback"""
        parsed = parse_json_object("This contract looks fine to me.", AnalysisPayload)

        assert isinstance(parsed, ParseFallback)
        assert parsed.reason == "no JSON object found"

    def test_invalid_json_falls_back(self):
        """Test a malformed object is a fallback"""
        parsed = parse_json_object('{"contractType": "Lease",}', AnalysisPayload)

        assert isinstance(parsed, ParseFallback)
        assert parsed.reason.startswith("invalid JSON")

    def test_schema_mismatch_falls_back(self):
        """Test a JSON object missing required fields is a fallback"""
        parsed = parse_json_object('{"summary": "no type"}', AnalysisPayload)

        assert isinstance(parsed, ParseFallback)
        assert parsed.reason.startswith("schema mismatch")

    def test_risk_level_normalized(self):
        """Test unknown risk levels collapse to medium"""
        parsed = parse_json_object('{"contractType": "Lease", "riskLevel": "SEVERE"}', AnalysisPayload)

        assert parsed.risk_level == "medium"
