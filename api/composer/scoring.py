"""
Merit scoring for the precedent scoring pipeline.

Two strategies produce an ``AnalysisResult``:
- model-assisted: the reasoning backend scores the case against the retrieved
  precedents under a strict JSON-schema contract
- deterministic: a fixed formula over evidence count, precedent count,
  description length and venue

The deterministic strategy never fails and backs every model-assisted call.
"""

from __future__ import annotations

import time
from typing import Any, List, Literal, Optional

import structlog
from pydantic import ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from api.composer.prompts import MERIT_ANALYZER_SYSTEM_PROMPT, build_merit_analysis_prompt
from api.errors import UpstreamFailure
from api.llm.reasoning_client import ReasoningClient
from api.schemas.analysis import AnalysisResult, CamelModel, CaseContext, Precedent, outcome_for_score, round_half_up

logger = structlog.get_logger(__name__)

BASE_SCORE = 40
EVIDENCE_POINTS, EVIDENCE_CAP = 5, 25
PRECEDENT_POINTS, PRECEDENT_CAP = 3, 15
DESCRIPTION_BONUS, DESCRIPTION_BONUS_LENGTH = 10, 200
VENUE_BONUS = 5
BONUS_VENUES = frozenset({"LTB", "SMALL_CLAIMS"})
MAX_DETERMINISTIC_SCORE = 95

CONFIDENT_EVIDENCE_COUNT = 3
HIGH_CONFIDENCE, BASE_CONFIDENCE = 0.75, 0.5

DEFAULT_RECOMMENDATIONS = [
    "Review similar cases for applicable precedents",
    "Ensure all relevant documentation is uploaded",
    "Consider timeline requirements for your jurisdiction",
]

MERIT_ASSESSMENT_SCHEMA_NAME = "merit_assessment"

# Range checks are enforced by MeritAssessment; strict mode rejects min/max keywords
MERIT_ASSESSMENT_SCHEMA = {
    "type": "object",
    "properties": {
        "meritScore": {"type": "number"},
        "confidence": {"type": "number"},
        "outcomePrediction": {"type": "string", "enum": ["favorable", "unfavorable", "uncertain"]},
        "strengths": {"type": "array", "items": {"type": "string"}},
        "weaknesses": {"type": "array", "items": {"type": "string"}},
        "recommendations": {"type": "array", "items": {"type": "string"}},
        "legalBasis": {"type": "string"},
    },
    "required": [
        "meritScore",
        "confidence",
        "outcomePrediction",
        "strengths",
        "weaknesses",
        "recommendations",
        "legalBasis",
    ],
    "additionalProperties": False,
}


class MeritAssessment(CamelModel):
    """Structured output contract of the model-assisted analyzer."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    merit_score: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=1.0)
    outcome_prediction: Literal["favorable", "unfavorable", "uncertain"]
    strengths: List[str]
    weaknesses: List[str]
    recommendations: List[str]
    legal_basis: str

    @field_validator("merit_score", mode="before")
    @classmethod
    def round_fractional_score(cls, v: Any) -> Any:
        if isinstance(v, float):
            return round_half_up(v)
        return v


def deterministic_score(context: CaseContext, precedents: List[Precedent]) -> AnalysisResult:
    """Score a case with the fixed formula. Pure and total."""
    evidence_count = context.evidence_count
    precedent_count = len(precedents)

    score = BASE_SCORE
    score += min(evidence_count * EVIDENCE_POINTS, EVIDENCE_CAP)
    score += min(precedent_count * PRECEDENT_POINTS, PRECEDENT_CAP)
    if len(context.description) > DESCRIPTION_BONUS_LENGTH:
        score += DESCRIPTION_BONUS
    if context.venue in BONUS_VENUES:
        score += VENUE_BONUS
    score = min(score, MAX_DETERMINISTIC_SCORE)

    confidence = HIGH_CONFIDENCE if evidence_count >= CONFIDENT_EVIDENCE_COUNT else BASE_CONFIDENCE

    if evidence_count > 0:
        strengths = [f"{evidence_count} pieces of supporting evidence uploaded"]
    else:
        strengths = ["Case details provided"]
    if precedent_count > 0:
        strengths.append(f"{precedent_count} similar precedents identified")

    weaknesses = []
    if evidence_count < CONFIDENT_EVIDENCE_COUNT:
        weaknesses.append("Limited documentary evidence")
    if precedent_count == 0:
        weaknesses.append("No comparable precedents were found")

    return AnalysisResult(
        merit_score=score,
        confidence=confidence,
        outcome_prediction=outcome_for_score(score),
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=list(DEFAULT_RECOMMENDATIONS),
        legal_basis=f"Analysis based on {precedent_count} similar cases from the CanLII database.",
        similar_cases=list(precedents),
    )


class MeritScoringEngine:
    """Selects a scoring strategy and guarantees a result."""

    def __init__(self, reasoning_client: Optional[ReasoningClient] = None):
        self.reasoning_client = reasoning_client

    def uses_model(self, precedents: List[Precedent]) -> bool:
        return self.reasoning_client is not None and len(precedents) > 0

    async def score(self, context: CaseContext, precedents: List[Precedent]) -> AnalysisResult:
        if not self.uses_model(precedents):
            logger.info(
                "Using deterministic scoring",
                case_id=context.case_id,
                reasoning_configured=self.reasoning_client is not None,
                precedents=len(precedents),
            )
            return deterministic_score(context, precedents)

        try:
            return await self._score_with_model(context, precedents)
        except (UpstreamFailure, ValidationError) as e:
            logger.warning(
                "Model-assisted scoring failed, falling back to deterministic",
                case_id=context.case_id,
                error=str(e)[:200],
                error_type=type(e).__name__,
            )
            return deterministic_score(context, precedents)

    async def _score_with_model(self, context: CaseContext, precedents: List[Precedent]) -> AnalysisResult:
        start_time = time.time()
        raw = await self.reasoning_client.complete_structured(
            MERIT_ANALYZER_SYSTEM_PROMPT,
            build_merit_analysis_prompt(context, precedents),
            MERIT_ASSESSMENT_SCHEMA_NAME,
            MERIT_ASSESSMENT_SCHEMA,
        )
        assessment = MeritAssessment.model_validate(raw)

        outcome = outcome_for_score(assessment.merit_score)
        if assessment.outcome_prediction != outcome:
            logger.warning(
                "Model outcome disagrees with score, using derived outcome",
                case_id=context.case_id,
                merit_score=assessment.merit_score,
                model_outcome=assessment.outcome_prediction,
                derived_outcome=outcome,
            )

        logger.info(
            "Model-assisted scoring completed",
            case_id=context.case_id,
            merit_score=assessment.merit_score,
            elapsed_ms=int((time.time() - start_time) * 1000),
        )
        return AnalysisResult(
            merit_score=assessment.merit_score,
            confidence=assessment.confidence,
            outcome_prediction=outcome,
            strengths=assessment.strengths,
            weaknesses=assessment.weaknesses,
            recommendations=assessment.recommendations,
            legal_basis=assessment.legal_basis,
            similar_cases=list(precedents),
        )
