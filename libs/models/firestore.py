"""Pydantic models for Firestore collections.

These models define the structure of the documents stored in Firestore
and are used for data validation and serialization.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FirestoreCase(BaseModel):
    """Represents a case record owned by the case-management subsystem."""
    case_id: str = Field(..., description="Unique identifier of the case.")
    user_id: str = Field(..., description="UID of the user who owns the case.")
    venue: str | None = Field(None, description="Venue or category, e.g. 'LTB' or 'HRTO'.")
    province: str | None = Field(None, description="Province or territory code, e.g. 'ON'.")
    description: str | None = Field(None, description="Free-text description of the matter.")
    merit_score: int | None = Field(None, ge=0, le=100, description="Most recent merit score.")


class FirestoreEvidence(BaseModel):
    """Represents evidence metadata attached to a case."""
    case_id: str = Field(..., description="The case this evidence belongs to.")
    file_name: str = Field(..., description="Label of the uploaded evidence.")
    description: str | None = Field(None, description="User-provided description.")
    file_type: str | None = Field(None, description="MIME type or file category.")
    ocr_text: str | None = Field(None, description="Extracted text, if any.")
    tags: List[str] = Field(default_factory=list, description="Tags assigned to the evidence.")


class FirestoreCaseLawAnalysis(BaseModel):
    """Represents one persisted precedent-scoring analysis. Never updated in place."""
    analysis_id: str = Field(..., description="Unique identifier for the analysis.")
    case_id: str = Field(..., description="The analysed case.")
    user_id: str = Field(..., description="UID of the user who requested the analysis.")
    merit_score: int = Field(..., ge=0, le=100)
    confidence: float = Field(..., ge=0.0, le=1.0)
    outcome_prediction: Literal["favorable", "unfavorable", "uncertain"]
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    legal_basis: str = ""
    search_query: str | None = Field(None, description="Query sent to the precedent index.")
    jurisdiction: str | None = Field(None, description="Precedent index jurisdiction code.")
    created_at: datetime = Field(default_factory=_utcnow, description="Timestamp of the analysis.")


class FirestoreSimilarCase(BaseModel):
    """Represents a precedent stored alongside an analysis."""
    analysis_id: str
    title: str
    citation: str
    court: str
    decision_date: str
    url: str
    summary: str = ""
    relevance_score: int


class FirestorePipelineRun(BaseModel):
    """Represents a synthesized multi-agent report stored for a case."""
    run_id: str = Field(..., description="Unique identifier for the pipeline run.")
    case_id: str = Field(..., description="The analysed case.")
    pathway_type: str = Field("multi_agent_analysis", description="Kind of pathway recommendation.")
    recommendation: str = Field("", description="Narrative summary of the run.")
    confidence_score: float = Field(..., ge=0.0, le=1.0, description="Merit score scaled to 0-1.")
    next_steps: List[Dict[str, Any]] = Field(default_factory=list)
    relevant_laws: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
