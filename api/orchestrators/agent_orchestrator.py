"""Agent Orchestrator for the multi-agent case analysis.

Stages run strictly in the fixed order researcher -> analyst -> strategist ->
drafter, filtered to the requested subset. Each stage is a function of the
shared context and the results accumulated so far, and returns the extended
result list. A stage only reads the upstream outputs it is entitled to:

- researcher: context
- analyst: context, researcher
- strategist: context, researcher, analyst
- drafter: context, strategist
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

import structlog
from pydantic import ValidationError

from api.composer.prompts import (
    ANALYST_SYSTEM_PROMPT,
    DRAFTER_SYSTEM_PROMPT,
    RESEARCHER_SYSTEM_PROMPT,
    STRATEGIST_SYSTEM_PROMPT,
    build_analyst_prompt,
    build_drafter_prompt,
    build_researcher_prompt,
    build_strategist_prompt,
    stage_system_prompt,
)
from api.composer.synthesis import stage_output
from api.errors import AgentStageFailed, ReasoningBackendUnavailable, UpstreamFailure
from api.llm.reasoning_client import ReasoningClient
from api.schemas.agent_outputs import (
    AGENT_ORDER,
    STAGE_OUTPUT_MODELS,
    AgentResult,
    AgentRole,
    AnalysisOutput,
    ResearchOutput,
    StageModel,
    StrategyOutput,
)
from api.schemas.analysis import CaseContext

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StageFailurePolicy:
    """How many times a stage is attempted before the run is aborted."""

    max_attempts: int = 1

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


@dataclass(frozen=True)
class StageRequest:
    """Inputs shared by every stage of one run."""

    context: CaseContext
    case_type: str
    province: str
    run_id: Optional[str] = None


StageFunction = Callable[[StageRequest, List[AgentResult]], Awaitable[List[AgentResult]]]


def select_agents(requested: Optional[Iterable[str]]) -> List[AgentRole]:
    """Requested stages in canonical order. None selects all stages."""
    if requested is None:
        return list(AGENT_ORDER)
    wanted = set(requested)
    return [role for role in AGENT_ORDER if role in wanted]


class AgentOrchestrator:
    """Runs the ordered reasoning stages against the reasoning backend."""

    def __init__(
        self,
        reasoning_client: Optional[ReasoningClient],
        policy: Optional[StageFailurePolicy] = None,
    ):
        self.reasoning_client = reasoning_client
        self.policy = policy or StageFailurePolicy()
        self.stages: Dict[AgentRole, StageFunction] = {
            "researcher": self._researcher_stage,
            "analyst": self._analyst_stage,
            "strategist": self._strategist_stage,
            "drafter": self._drafter_stage,
        }

    async def run(
        self,
        context: CaseContext,
        case_type: str,
        province: str,
        agents: Optional[Iterable[str]] = None,
        run_id: Optional[str] = None,
    ) -> List[AgentResult]:
        """Fold the selected stages over an empty result list.

        Raises:
            ReasoningBackendUnavailable: If no reasoning backend is configured.
            AgentStageFailed: If a stage exhausts its failure policy. Later
                stages are not run.
        """
        if self.reasoning_client is None:
            raise ReasoningBackendUnavailable("Reasoning backend is not configured")

        request = StageRequest(context=context, case_type=case_type, province=province, run_id=run_id)
        results: List[AgentResult] = []
        for role in select_agents(agents):
            results = await self.stages[role](request, results)
        return results

    async def _invoke(self, request: StageRequest, role: AgentRole, template: str, user_prompt: str) -> AgentResult:
        system_prompt = stage_system_prompt(template, request.case_type, request.province)
        output_model = STAGE_OUTPUT_MODELS[role]

        logger.info("Agent stage started", run_id=request.run_id, agent=role)
        start_time = time.time()

        last_error: Optional[Exception] = None
        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                payload = await self.reasoning_client.complete_json(system_prompt, user_prompt)
                payload = {k: v for k, v in payload.items() if k != "stage"}
                output: StageModel = output_model.model_validate(payload)
            except (UpstreamFailure, ValidationError) as e:
                last_error = e
                logger.warning(
                    "Agent stage attempt failed",
                    run_id=request.run_id,
                    agent=role,
                    attempt=attempt,
                    max_attempts=self.policy.max_attempts,
                    error=str(e)[:200],
                    error_type=type(e).__name__,
                )
                continue

            duration = int((time.time() - start_time) * 1000)
            logger.info("Agent stage completed", run_id=request.run_id, agent=role, elapsed_ms=duration)
            return AgentResult(agent=role, output=output, duration=duration)

        raise AgentStageFailed(role, self.policy.max_attempts, last_error) from last_error

    async def _researcher_stage(self, request: StageRequest, results: List[AgentResult]) -> List[AgentResult]:
        prompt = build_researcher_prompt(request.context)
        return [*results, await self._invoke(request, "researcher", RESEARCHER_SYSTEM_PROMPT, prompt)]

    async def _analyst_stage(self, request: StageRequest, results: List[AgentResult]) -> List[AgentResult]:
        research = stage_output(results, ResearchOutput)
        prompt = build_analyst_prompt(request.context, research)
        return [*results, await self._invoke(request, "analyst", ANALYST_SYSTEM_PROMPT, prompt)]

    async def _strategist_stage(self, request: StageRequest, results: List[AgentResult]) -> List[AgentResult]:
        research = stage_output(results, ResearchOutput)
        analysis = stage_output(results, AnalysisOutput)
        prompt = build_strategist_prompt(request.context, research, analysis)
        return [*results, await self._invoke(request, "strategist", STRATEGIST_SYSTEM_PROMPT, prompt)]

    async def _drafter_stage(self, request: StageRequest, results: List[AgentResult]) -> List[AgentResult]:
        strategy = stage_output(results, StrategyOutput)
        prompt = build_drafter_prompt(request.context, strategy)
        return [*results, await self._invoke(request, "drafter", DRAFTER_SYSTEM_PROMPT, prompt)]
