"""
Procurement program classification payloads.

A program record arrives from an ingest job (SAM.gov opportunities,
award feeds). Classification is a pure function of the record and the
current rule set; the result is copied onto the stored program.
"""
from __future__ import annotations

from typing import Any, Optional
from pydantic import BaseModel, Field

CLASSIFICATION_VERSION = "v1"

RELEVANT_THRESHOLD = 35
HIGHLY_RELEVANT_THRESHOLD = 60


class ProgramRecord(BaseModel):
    """Searchable fields of an opportunity. Values may be text, lists or objects."""
    title: Any = None
    summary: Any = None
    agency: Any = None
    naics: Any = None
    psc: Any = None
    url: Any = None


class MatchReason(BaseModel):
    type: str = Field(description="agency_blacklist | suppression | rule")
    rule_id: Optional[str] = None
    label: Optional[str] = None
    reason: Optional[str] = None
    add_score: Optional[int] = None
    weight: Optional[int] = None


class ClassificationResult(BaseModel):
    service_lane: Optional[str] = None
    topic: Optional[str] = None
    relevance_score: int = Field(0, ge=0, le=100)
    match_confidence: float = Field(0.0, ge=0, le=1)
    match_reasons: list[MatchReason] = []
    suppressed: bool = False
    suppressed_reason: Optional[str] = None
    classification_version: str = CLASSIFICATION_VERSION

    @property
    def relevance_band(self) -> str:
        if self.suppressed:
            return "suppressed"
        if self.relevance_score >= HIGHLY_RELEVANT_THRESHOLD:
            return "highly_relevant"
        if self.relevance_score >= RELEVANT_THRESHOLD:
            return "relevant"
        return "low"


class ClassifyResponse(BaseModel):
    result: ClassificationResult
    relevance_band: str = Field(description="suppressed | highly_relevant | relevant | low")
