"""
Pydantic schemas for the structured document analysis.
"""
from datetime import datetime, timezone
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

RiskLevel = Literal["low", "medium", "high"]


class AnalysisPayload(BaseModel):
    """Shape the model is asked to return. Accepts camelCase or snake_case keys."""

    model_config = ConfigDict(populate_by_name=True)

    contract_type: str = Field(alias="contractType")
    key_terms: List[str] = Field(default_factory=list, alias="keyTerms")
    risk_level: RiskLevel = Field(default="medium", alias="riskLevel")
    main_concerns: List[str] = Field(default_factory=list, alias="mainConcerns")
    summary: str = ""

    @field_validator("risk_level", mode="before")
    @classmethod
    def normalize_risk(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in ("low", "medium", "high"):
                return "medium"
        return v

    @field_validator("key_terms", "main_concerns", mode="before")
    @classmethod
    def coerce_list(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(item) for item in v]


class DocumentAnalysis(AnalysisPayload):
    """Analysis attached to a processed document."""

    mode: Literal["fast", "fallback"] = "fast"
    processed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="processedAt"
    )
