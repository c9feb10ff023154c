"""
Prompt templates for the case analysis reasoning calls.

Two families live here:
- the merit analyzer prompt used by the scoring engine
- the four role prompts of the multi-agent pipeline (researcher, analyst,
  strategist, drafter)

Each stage prompt serializes only the upstream outputs that stage is allowed
to see. System prompts are parameterized by case type and province; user
prompts embed the JSON shape the stage must return.
"""

import json
from typing import Any, List, Optional

from api.schemas.agent_outputs import AnalysisOutput, ResearchOutput, StrategyOutput
from api.schemas.analysis import CaseContext, Precedent

PROMPT_PRECEDENT_LIMIT = 5

EDUCATIONAL_NOTICE = "IMPORTANT: This is educational analysis, not legal advice."


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def _dump_stage(output: Optional[Any]) -> str:
    if output is None:
        return "None"
    return _dump(output.model_dump(by_alias=True, exclude={"stage"}, exclude_none=True))


# ==============================================================================
# MERIT ANALYZER
# ==============================================================================

MERIT_ANALYZER_SYSTEM_PROMPT = f"""You are a legal case analyst specializing in Canadian law. Analyze the case and similar precedents to provide:
1. Merit score (0-100) based on legal strength
2. Confidence level (0-1) in your assessment
3. Outcome prediction (favorable/unfavorable/uncertain)
4. Key strengths and weaknesses
5. Actionable recommendations

Base analysis on:
- Quality and relevance of evidence
- Applicable case law precedents
- Legal elements required for the claim type
- Jurisdiction-specific considerations

Outcome prediction must follow the score: favorable at 65 or above, uncertain from 45 to 64, unfavorable below 45.

{EDUCATIONAL_NOTICE}"""


def build_merit_analysis_prompt(context: CaseContext, precedents: List[Precedent]) -> str:
    """User prompt for the merit analyzer."""
    evidence_lines = "\n".join(
        f"{i}. {item.name}{': ' + item.description if item.description else ''}"
        for i, item in enumerate(context.evidence, start=1)
    )
    precedent_lines = "\n".join(
        f"{i}. {p.title} ({p.citation}) - {p.court}"
        for i, p in enumerate(precedents[:PROMPT_PRECEDENT_LIMIT], start=1)
    )
    return f"""Analyze this case:

CASE TYPE: {context.venue or 'General'}
PROVINCE: {context.province or 'ON'}
DESCRIPTION: {context.description or 'No description provided'}

EVIDENCE ({context.evidence_count} items):
{evidence_lines}

SIMILAR CANLII CASES:
{precedent_lines}

Provide structured JSON analysis."""


# ==============================================================================
# MULTI-AGENT STAGES
# ==============================================================================

RESEARCHER_SYSTEM_PROMPT = """You are a legal research specialist for Canadian {case_type} cases in {province}.
Your role is to identify:
1. Relevant statutes and regulations
2. Key legal precedents
3. Similar case outcomes
4. Important deadlines and procedures

Always cite specific legislation and case law. Be thorough but focused. Respond with JSON only."""

ANALYST_SYSTEM_PROMPT = """You are a legal case analyst specializing in {case_type} cases in {province}.
Your role is to:
1. Assess case strength objectively
2. Evaluate evidence quality and gaps
3. Identify strengths and weaknesses
4. Calculate merit scores based on precedents

Be honest and realistic in your assessments. Respond with JSON only."""

STRATEGIST_SYSTEM_PROMPT = """You are a legal strategist for {case_type} cases in {province}.
Your role is to:
1. Develop winning legal strategies
2. Recommend the best pathway forward
3. Provide tactical advice
4. Suggest negotiation approaches

Focus on practical, actionable strategies. Respond with JSON only."""

DRAFTER_SYSTEM_PROMPT = """You are a legal document drafter for {case_type} cases in {province}.
Your role is to:
1. Identify required forms and documents
2. Draft initial document outlines
3. Provide filing instructions
4. Suggest key arguments to include

Focus on practical document preparation guidance. Respond with JSON only."""

RESEARCH_FORMAT = """{
  "relevantStatutes": [
    { "name": "statute name", "sections": ["relevant sections"], "application": "how it applies" }
  ],
  "keyPrecedents": [
    { "citation": "case citation", "court": "court name", "outcome": "outcome", "relevance": "why relevant" }
  ],
  "proceduralRequirements": [
    { "step": "requirement", "deadline": "timeline if any", "source": "authority" }
  ],
  "keyIssues": ["issue 1", "issue 2"],
  "researchSummary": "brief summary of findings"
}"""

ANALYSIS_FORMAT = """{
  "meritScore": <0-100>,
  "confidence": "<high/medium/low>",
  "successProbability": "<percentage>",
  "strengths": [
    { "factor": "strength description", "impact": "high/medium/low", "evidence": "supporting evidence" }
  ],
  "weaknesses": [
    { "factor": "weakness description", "impact": "high/medium/low", "mitigation": "how to address" }
  ],
  "evidenceAssessment": {
    "quality": "<strong/adequate/weak/missing>",
    "gaps": ["gap 1", "gap 2"],
    "recommendations": ["what evidence to gather"]
  },
  "riskFactors": [
    { "risk": "risk description", "likelihood": "high/medium/low", "impact": "description" }
  ],
  "analysisSummary": "comprehensive summary"
}"""

STRATEGY_FORMAT = """{
  "primaryStrategy": {
    "approach": "main strategy description",
    "rationale": "why this approach",
    "timeline": "expected timeline",
    "estimatedCost": "cost range"
  },
  "alternativeStrategies": [
    { "approach": "alternative", "pros": ["pro1"], "cons": ["con1"], "when": "when to use" }
  ],
  "actionPlan": [
    { "step": 1, "action": "what to do", "deadline": "when", "priority": "high/medium/low", "resources": "what's needed" }
  ],
  "negotiationStrategy": {
    "leverage": ["leverage points"],
    "targets": "realistic settlement targets",
    "walkAwayPoint": "when to litigate instead"
  },
  "contingencyPlans": [
    { "scenario": "if this happens", "response": "do this" }
  ],
  "strategySummary": "executive summary of strategy"
}"""

DRAFTING_FORMAT = """{
  "requiredDocuments": [
    { "name": "document name", "form": "form number if applicable", "deadline": "filing deadline", "priority": "high/medium/low", "description": "what this document is for" }
  ],
  "documentOutlines": [
    { "document": "document name", "sections": [ { "heading": "section heading", "content": "what to include", "tips": "drafting tips" } ] }
  ],
  "keyArguments": [
    { "argument": "legal argument", "support": "how to support it", "anticipatedResponse": "what other side might say" }
  ],
  "filingInstructions": {
    "where": "where to file",
    "how": "filing method",
    "fees": "filing fees",
    "copies": "number of copies needed"
  },
  "draftingSummary": "summary of document preparation needs"
}"""


def _case_details(context: CaseContext) -> str:
    return _dump(context.details)


def build_researcher_prompt(context: CaseContext) -> str:
    if context.evidence:
        evidence = "\n".join(f"- {e.name}: {e.description or 'No description'}" for e in context.evidence)
    else:
        evidence = "No evidence uploaded"

    return f"""Research relevant legal resources for this case:

CASE DETAILS:
{_case_details(context)}

EVIDENCE AVAILABLE:
{evidence}

Return your research in this JSON format:
{RESEARCH_FORMAT}"""


def build_analyst_prompt(context: CaseContext, research: Optional[ResearchOutput]) -> str:
    if context.evidence:
        evidence = _dump([e.model_dump(by_alias=True) for e in context.evidence])
    else:
        evidence = "No evidence uploaded"

    if context.existing_analysis is not None:
        existing = _dump(context.existing_analysis.model_dump(by_alias=True, exclude={"similar_cases"}))
    else:
        existing = "None"

    return f"""Analyze this case based on the research provided:

CASE DETAILS:
{_case_details(context)}

RESEARCH FINDINGS:
{_dump_stage(research)}

EVIDENCE:
{evidence}

EXISTING ANALYSIS (if any):
{existing}

Return your analysis in this JSON format:
{ANALYSIS_FORMAT}"""


def build_strategist_prompt(
    context: CaseContext, research: Optional[ResearchOutput], analysis: Optional[AnalysisOutput]
) -> str:
    return f"""Develop a legal strategy based on this analysis:

CASE DETAILS:
{_case_details(context)}

RESEARCH:
{_dump_stage(research)}

ANALYSIS:
{_dump_stage(analysis)}

Return your strategy in this JSON format:
{STRATEGY_FORMAT}"""


def build_drafter_prompt(context: CaseContext, strategy: Optional[StrategyOutput]) -> str:
    return f"""Provide document preparation guidance based on this strategy:

CASE DETAILS:
{_case_details(context)}

STRATEGY:
{_dump_stage(strategy)}

Return your guidance in this JSON format:
{DRAFTING_FORMAT}"""


def stage_system_prompt(template: str, case_type: str, province: str) -> str:
    return template.format(case_type=case_type, province=province)
