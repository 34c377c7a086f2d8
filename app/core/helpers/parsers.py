"""
Strict parsers for free-text model output.

Each parser returns either a typed result or an explicit ParseFallback,
so a malformed response can never quietly turn into an empty string.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class ParseFallback:
    """Marker for model output that did not have the expected shape."""

    reason: str
    raw: str


@dataclass
class ParsedSections:
    """Labeled sections found in a model response, keyed by upper-case label."""

    sections: Dict[str, str] = field(default_factory=dict)

    def get(self, label: str, default: Optional[str] = None) -> Optional[str]:
        return self.sections.get(label.upper(), default)


def _label_pattern(label: str) -> str:
    # tolerates "1. CLEANED_TEXT:", "**SUMMARY**:" and "Cleaned text -"
    words = re.split(r"[_\s]+", label.strip())
    body = r"[_ \t]+".join(re.escape(w) for w in words)
    return rf"(?:^|\n)[ \t]*(?:\d+[.)][ \t]*)?[*#]*[ \t]*{body}[ \t]*[*]*[ \t]*[:\-][*]*"


def parse_labeled_sections(
    text: str, labels: Sequence[str]
) -> Union[ParsedSections, ParseFallback]:
    """
    Split a response into the sections introduced by the given labels.

    The first label is the primary one: if it is missing or its section
    is empty, the whole parse falls back.

    Args:
        text: Raw model response
        labels: Section labels in the order the prompt asked for them

    Returns:
        ParsedSections, or ParseFallback when the primary label is absent
    """
    if not text or not text.strip():
        return ParseFallback(reason="empty response", raw=text or "")

    positions: List[tuple] = []
    for label in labels:
        match = re.search(_label_pattern(label), text, flags=re.IGNORECASE)
        if match:
            positions.append((match.start(), match.end(), label.upper()))

    positions.sort()
    sections: Dict[str, str] = {}
    for i, (_, end, label) in enumerate(positions):
        stop = positions[i + 1][0] if i + 1 < len(positions) else len(text)
        sections[label] = text[end:stop].strip()

    primary = labels[0].upper()
    if not sections.get(primary):
        return ParseFallback(reason=f"missing {primary} section", raw=text)

    return ParsedSections(sections=sections)


def _find_json_block(text: str) -> Optional[str]:
    """Return the first balanced {...} block, ignoring braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        start = text.find("{", start + 1)
    return None


def parse_json_object(text: str, model: Type[ModelT]) -> Union[ModelT, ParseFallback]:
    """
    Parse the first JSON object in a response and validate it.

    Args:
        text: Raw model response, possibly wrapped in prose or code fences
        model: Pydantic model to validate against

    Returns:
        A model instance, or ParseFallback describing why parsing failed
    """
    if not text or not text.strip():
        return ParseFallback(reason="empty response", raw=text or "")

    block = _find_json_block(text)
    if block is None:
        return ParseFallback(reason="no JSON object found", raw=text)

    try:
        data = json.loads(block)
    except json.JSONDecodeError as e:
        return ParseFallback(reason=f"invalid JSON: {e}", raw=text)

    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.debug(f"JSON did not match {model.__name__}: {e}")
        return ParseFallback(reason=f"schema mismatch: {e.error_count()} error(s)", raw=text)
