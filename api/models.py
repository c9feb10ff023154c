"""Request and response models for the case analysis API.

Wire names are camelCase; handlers populate models by field name.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import Field, field_validator

from api.schemas.agent_outputs import AgentResult, AgentRole, SynthesizedReport
from api.schemas.analysis import AnalysisResult, CamelModel, Precedent

NO_CASE_ID = "no-case"


class CaseLawAnalysisRequest(CamelModel):
    """Request to score a case against precedents."""

    case_id: UUID = Field(description="Case to analyze", examples=["3f2b8c1e-6a4d-4d1b-9a57-0c6e2f1d8a90"])
    force_refresh: bool = Field(default=False, description="Ignore any reusable prior analysis")


class CaseLawAnalysisResponse(CamelModel):
    """Successful precedent scoring response."""

    success: Literal[True] = True
    analysis: AnalysisResult
    cached: bool = Field(description="True when a prior analysis was reused")
    precedents_found: int = Field(ge=0, description="Number of precedents behind this analysis")


class DegradedResponse(CamelModel):
    """Returned with HTTP 200 when the precedent index is not configured."""

    success: Literal[False] = False
    error: str
    fallback: Literal[True] = True
    message: str


class MultiAgentRequest(CamelModel):
    """Request to run the multi-agent pipeline."""

    case_id: Optional[UUID] = Field(default=None, description="Stored case to load, if any")
    case_details: Dict[str, Any] = Field(description="Caller-supplied case details")
    case_type: str = Field(min_length=1, max_length=100, examples=["Landlord-Tenant"])
    province: str = Field(min_length=1, max_length=50, examples=["ON"])
    agents: Optional[List[AgentRole]] = Field(
        default=None,
        min_length=1,
        description="Stages to run. Defaults to all; always executed in canonical order",
    )

    @field_validator("case_type", "province")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class MultiAgentResponse(CamelModel):
    """Successful multi-agent response."""

    success: Literal[True] = True
    case_id: str = Field(description="Case identifier, or 'no-case'")
    run_id: str
    agents: List[AgentResult]
    final_analysis: SynthesizedReport
    total_duration: int = Field(ge=0, description="Elapsed milliseconds")


class PrecedentSearchRequest(CamelModel):
    """Free-text precedent search."""

    query: str = Field(min_length=1, max_length=500)
    jurisdiction: Optional[str] = Field(default=None, description="Province or territory, e.g. ON")
    max_results: int = Field(default=10, ge=1, le=10)

    @field_validator("query")
    @classmethod
    def query_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Query must not be empty")
        return v.strip()


class PrecedentSearchResponse(CamelModel):
    success: Literal[True] = True
    results: List[Precedent]
    query: str
    jurisdiction: str


class HealthResponse(CamelModel):
    """Response model for health check endpoints."""

    status: Literal["healthy", "unhealthy", "ready", "not_ready"] = Field(examples=["healthy"])
    service: str = Field(examples=["case-analysis-api"])
    version: str = Field(examples=["0.1.0"])
    timestamp: float = Field(default_factory=time.time, description="Unix timestamp")
    details: Optional[Dict[str, str]] = Field(default=None, examples=[{"redis": "connected"}])
