"""Stage output schemas for the multi-agent pipeline.

Each reasoning stage returns one variant of a tagged union, discriminated by
``stage``. Outputs are validated where the backend response is parsed, so a
malformed upstream response fails at its origin rather than during synthesis.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from api.schemas.analysis import CamelModel, round_half_up

AgentRole = Literal["researcher", "analyst", "strategist", "drafter"]

AGENT_ORDER: tuple[AgentRole, ...] = ("researcher", "analyst", "strategist", "drafter")


class StageModel(CamelModel):
    """Lenient base for backend-produced payloads: unknown keys and nulls are dropped."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# --- Researcher ---

class Statute(StageModel):
    name: Optional[str] = None
    sections: List[str] = Field(default_factory=list)
    application: Optional[str] = None


class KeyPrecedent(StageModel):
    citation: Optional[str] = None
    court: Optional[str] = None
    outcome: Optional[str] = None
    relevance: Optional[str] = None


class ProceduralRequirement(StageModel):
    step: Optional[str] = None
    deadline: Optional[str] = None
    source: Optional[str] = None


class ResearchOutput(StageModel):
    stage: Literal["researcher"] = "researcher"
    relevant_statutes: List[Statute] = Field(default_factory=list)
    key_precedents: List[KeyPrecedent] = Field(default_factory=list)
    procedural_requirements: List[ProceduralRequirement] = Field(default_factory=list)
    key_issues: List[str] = Field(default_factory=list)
    research_summary: Optional[str] = None


# --- Analyst ---

class Strength(StageModel):
    factor: Optional[str] = None
    impact: Optional[str] = None
    evidence: Optional[str] = None


class Weakness(StageModel):
    factor: Optional[str] = None
    impact: Optional[str] = None
    mitigation: Optional[str] = None


class EvidenceAssessment(StageModel):
    quality: Optional[str] = None
    gaps: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class RiskFactor(StageModel):
    risk: Optional[str] = None
    likelihood: Optional[str] = None
    impact: Optional[str] = None


class AnalysisOutput(StageModel):
    stage: Literal["analyst"] = "analyst"
    merit_score: Optional[int] = Field(default=None, ge=0, le=100)
    confidence: Optional[Literal["high", "medium", "low"]] = None
    success_probability: Optional[str] = None
    strengths: List[Strength] = Field(default_factory=list)
    weaknesses: List[Weakness] = Field(default_factory=list)
    evidence_assessment: EvidenceAssessment = Field(default_factory=EvidenceAssessment)
    risk_factors: List[RiskFactor] = Field(default_factory=list)
    analysis_summary: Optional[str] = None

    @field_validator("merit_score", mode="before")
    @classmethod
    def round_fractional_score(cls, v: Any) -> Any:
        if isinstance(v, float):
            return round_half_up(v)
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def normalize_confidence(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v


# --- Strategist ---

class PrimaryStrategy(StageModel):
    approach: Optional[str] = None
    rationale: Optional[str] = None
    timeline: Optional[str] = None
    estimated_cost: Optional[str] = None


class AlternativeStrategy(StageModel):
    approach: Optional[str] = None
    pros: List[str] = Field(default_factory=list)
    cons: List[str] = Field(default_factory=list)
    when: Optional[str] = None


class ActionStep(StageModel):
    step: Optional[Union[int, str]] = None
    action: Optional[str] = None
    deadline: Optional[str] = None
    priority: Optional[str] = None
    resources: Optional[str] = None


class NegotiationStrategy(StageModel):
    leverage: List[str] = Field(default_factory=list)
    targets: Optional[str] = None
    walk_away_point: Optional[str] = None


class ContingencyPlan(StageModel):
    scenario: Optional[str] = None
    response: Optional[str] = None


class StrategyOutput(StageModel):
    stage: Literal["strategist"] = "strategist"
    primary_strategy: Optional[PrimaryStrategy] = None
    alternative_strategies: List[AlternativeStrategy] = Field(default_factory=list)
    action_plan: List[ActionStep] = Field(default_factory=list)
    negotiation_strategy: Optional[NegotiationStrategy] = None
    contingency_plans: List[ContingencyPlan] = Field(default_factory=list)
    strategy_summary: Optional[str] = None


# --- Drafter ---

class RequiredDocument(StageModel):
    name: Optional[str] = None
    form: Optional[str] = None
    deadline: Optional[str] = None
    priority: Optional[str] = None
    description: Optional[str] = None


class OutlineSection(StageModel):
    heading: Optional[str] = None
    content: Optional[str] = None
    tips: Optional[str] = None


class DocumentOutline(StageModel):
    document: Optional[str] = None
    sections: List[OutlineSection] = Field(default_factory=list)


class KeyArgument(StageModel):
    argument: Optional[str] = None
    support: Optional[str] = None
    anticipated_response: Optional[str] = None


class FilingInstructions(StageModel):
    where: Optional[str] = None
    how: Optional[str] = None
    fees: Optional[str] = None
    copies: Optional[str] = None


class DraftingOutput(StageModel):
    stage: Literal["drafter"] = "drafter"
    required_documents: List[RequiredDocument] = Field(default_factory=list)
    document_outlines: List[DocumentOutline] = Field(default_factory=list)
    key_arguments: List[KeyArgument] = Field(default_factory=list)
    filing_instructions: Optional[FilingInstructions] = None
    drafting_summary: Optional[str] = None


StageOutput = Annotated[
    Union[ResearchOutput, AnalysisOutput, StrategyOutput, DraftingOutput],
    Field(discriminator="stage"),
]

STAGE_OUTPUT_MODELS: Dict[str, type[StageModel]] = {
    "researcher": ResearchOutput,
    "analyst": AnalysisOutput,
    "strategist": StrategyOutput,
    "drafter": DraftingOutput,
}


class AgentResult(CamelModel):
    """Output of one stage, in pipeline order."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    agent: AgentRole
    output: StageOutput
    duration: int = Field(ge=0, description="Elapsed milliseconds")

    @model_validator(mode="after")
    def output_matches_agent(self) -> "AgentResult":
        if self.output.stage != self.agent:
            raise ValueError(f"{self.agent} result carries {self.output.stage} output")
        return self


class SynthesizedReport(CamelModel):
    """Unified report merged from all stage outputs."""

    merit_score: int = Field(default=50, ge=0, le=100)
    success_probability: str = "Unknown"
    confidence: str = "medium"

    relevant_laws: List[Statute] = Field(default_factory=list)
    precedents: List[KeyPrecedent] = Field(default_factory=list)
    key_issues: List[str] = Field(default_factory=list)

    strengths: List[Strength] = Field(default_factory=list)
    weaknesses: List[Weakness] = Field(default_factory=list)
    evidence_gaps: List[str] = Field(default_factory=list)
    risk_factors: List[RiskFactor] = Field(default_factory=list)

    primary_strategy: Optional[PrimaryStrategy] = None
    action_plan: List[ActionStep] = Field(default_factory=list)
    negotiation_strategy: Optional[NegotiationStrategy] = None

    required_documents: List[RequiredDocument] = Field(default_factory=list)
    key_arguments: List[KeyArgument] = Field(default_factory=list)
    filing_instructions: Optional[FilingInstructions] = None

    summary: str = ""
    next_steps: List[ActionStep] = Field(default_factory=list)


class PipelineRun(CamelModel):
    """One completed multi-agent invocation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    run_id: str
    case_id: Optional[str] = None
    agents: List[AgentResult]
    final_analysis: SynthesizedReport
    total_duration: int = Field(ge=0, description="Elapsed milliseconds")
