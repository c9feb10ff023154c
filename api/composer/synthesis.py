"""Merge multi-agent stage outputs into one report."""

from typing import List, Optional, TypeVar

from api.schemas.agent_outputs import (
    AgentResult,
    AnalysisOutput,
    DraftingOutput,
    ResearchOutput,
    StageModel,
    StrategyOutput,
    SynthesizedReport,
)

NEXT_STEPS_LIMIT = 5

T = TypeVar("T", bound=StageModel)


def stage_output(agent_results: List[AgentResult], output_type: type[T]) -> Optional[T]:
    """Return the first output of ``output_type``, or None if that stage did not run."""
    for result in agent_results:
        if isinstance(result.output, output_type):
            return result.output
    return None


def synthesize_results(agent_results: List[AgentResult]) -> SynthesizedReport:
    """Build the final report. Missing stages contribute defaults."""
    research = stage_output(agent_results, ResearchOutput) or ResearchOutput()
    analysis = stage_output(agent_results, AnalysisOutput) or AnalysisOutput()
    strategy = stage_output(agent_results, StrategyOutput) or StrategyOutput()
    drafting = stage_output(agent_results, DraftingOutput) or DraftingOutput()

    summaries = [
        research.research_summary,
        analysis.analysis_summary,
        strategy.strategy_summary,
        drafting.drafting_summary,
    ]

    report = SynthesizedReport(
        relevant_laws=research.relevant_statutes,
        precedents=research.key_precedents,
        key_issues=research.key_issues,
        strengths=analysis.strengths,
        weaknesses=analysis.weaknesses,
        evidence_gaps=analysis.evidence_assessment.gaps,
        risk_factors=analysis.risk_factors,
        primary_strategy=strategy.primary_strategy,
        action_plan=strategy.action_plan,
        negotiation_strategy=strategy.negotiation_strategy,
        required_documents=drafting.required_documents,
        key_arguments=drafting.key_arguments,
        filing_instructions=drafting.filing_instructions,
        summary="\n\n".join(s for s in summaries if s),
        next_steps=strategy.action_plan[:NEXT_STEPS_LIMIT],
    )

    # Unset analyst fields keep the report defaults
    if analysis.merit_score is not None:
        report.merit_score = analysis.merit_score
    if analysis.success_probability:
        report.success_probability = analysis.success_probability
    if analysis.confidence:
        report.confidence = analysis.confidence
    return report
