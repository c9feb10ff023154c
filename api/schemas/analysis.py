"""Domain schemas for case analysis.

These models flow between the context gatherer, the precedent search adapter,
the scoring engine and the persistence gateway. Wire names are camelCase so the
same models can be returned from the API unchanged.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

OutcomePrediction = Literal["favorable", "unfavorable", "uncertain"]

FAVORABLE_THRESHOLD = 65
UNCERTAIN_THRESHOLD = 45


def outcome_for_score(score: int) -> OutcomePrediction:
    """Map a merit score onto an outcome prediction."""
    if score >= FAVORABLE_THRESHOLD:
        return "favorable"
    if score >= UNCERTAIN_THRESHOLD:
        return "uncertain"
    return "unfavorable"


def round_half_up(value: float) -> Any:
    """Round a finite float to the nearest integer with halves rounded up. Non-finite values pass through."""
    if not math.isfinite(value):
        return value
    return math.floor(value + 0.5)


class CamelModel(BaseModel):
    """Base model with camelCase aliases that still accepts field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CaseRecord(CamelModel):
    """A case as stored by the case-management subsystem."""

    id: str = Field(description="Case identifier")
    user_id: str = Field(description="Owner of the case")
    venue: Optional[str] = Field(default=None, description="Venue or category, e.g. LTB")
    province: Optional[str] = Field(default=None, description="Jurisdiction, e.g. ON")
    description: Optional[str] = Field(default=None, description="Free-text description")
    merit_score: Optional[int] = Field(default=None, ge=0, le=100)


class EvidenceItem(CamelModel):
    """Evidence metadata attached to a case."""

    file_name: str
    description: Optional[str] = None
    file_type: Optional[str] = None
    ocr_text: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def none_tags_to_empty(cls, v: Any) -> Any:
        return v or []


class Precedent(CamelModel):
    """A prior decided matter retrieved from the precedent index."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str
    citation: str
    court: str
    date: str = Field(description="Decision date as reported by the index")
    url: str
    summary: str = ""
    relevance: int = Field(description="100 for the first result, decreasing by position")


class AnalysisResult(CamelModel):
    """Merit assessment of a case. Superseded by later runs, never mutated."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    merit_score: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=1.0)
    outcome_prediction: OutcomePrediction
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    legal_basis: str = ""
    similar_cases: List[Precedent] = Field(default_factory=list)

    @model_validator(mode="after")
    def outcome_matches_score(self) -> "AnalysisResult":
        expected = outcome_for_score(self.merit_score)
        if self.outcome_prediction != expected:
            raise ValueError(
                f"outcome_prediction '{self.outcome_prediction}' does not match "
                f"merit_score {self.merit_score} (expected '{expected}')"
            )
        return self


class CacheEntry(CamelModel):
    """A persisted analysis tagged with its creation time."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    analysis_id: str
    analysis: AnalysisResult
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def age(self, now: Optional[datetime] = None) -> timedelta:
        now = now or datetime.now(timezone.utc)
        return now - self.created_at

    def is_fresh(self, window: timedelta, now: Optional[datetime] = None) -> bool:
        return self.age(now) < window


class EvidenceDigestEntry(CamelModel):
    """Compact view of one evidence item used in prompts."""

    name: str
    type: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    ocr_preview: Optional[str] = None


class CaseContext(CamelModel):
    """Normalized analysis context shared by both pipelines."""

    case_id: Optional[str] = None
    case: Optional[CaseRecord] = None
    details: Dict[str, Any] = Field(default_factory=dict, description="Caller-supplied case details")
    evidence: List[EvidenceDigestEntry] = Field(default_factory=list)
    evidence_count: int = 0
    existing_analysis: Optional[AnalysisResult] = None

    @property
    def venue(self) -> Optional[str]:
        return self.case.venue if self.case else None

    @property
    def province(self) -> Optional[str]:
        return self.case.province if self.case else None

    @property
    def description(self) -> str:
        return (self.case.description if self.case else None) or ""
