"""Multi-agent pipeline: context -> ordered stages -> synthesis -> persistence."""

from __future__ import annotations

import time
import uuid
from typing import Any, Dict, Iterable, Optional

import structlog

from api.composer.synthesis import synthesize_results
from api.models import NO_CASE_ID, MultiAgentResponse
from api.orchestrators.agent_orchestrator import AgentOrchestrator
from api.persistence import PersistenceGateway
from api.schemas.agent_outputs import PipelineRun
from api.tools.context_gatherer import gather_case_context

logger = structlog.get_logger(__name__)


class MultiAgentPipeline:
    """Runs one multi-agent request end to end."""

    def __init__(self, gateway: PersistenceGateway, orchestrator: AgentOrchestrator):
        self.gateway = gateway
        self.orchestrator = orchestrator

    async def run(
        self,
        user_id: str,
        case_details: Dict[str, Any],
        case_type: str,
        province: str,
        case_id: Optional[str] = None,
        agents: Optional[Iterable[str]] = None,
    ) -> MultiAgentResponse:
        """Run the requested stages and synthesize a report.

        Raises:
            CaseNotFoundError: If ``case_id`` is given but not visible to the caller.
            ReasoningBackendUnavailable: If no reasoning backend is configured.
            AgentStageFailed: If a stage fails; no report is produced.
        """
        start_time = time.time()
        run_id = str(uuid.uuid4())
        logger.info("Multi-agent analysis started", run_id=run_id, case_id=case_id, case_type=case_type)

        context = await gather_case_context(
            self.gateway, case_id, user_id, case_details=case_details, include_existing_analysis=True
        )
        results = await self.orchestrator.run(context, case_type, province, agents, run_id=run_id)
        report = synthesize_results(results)

        run = PipelineRun(
            run_id=run_id,
            case_id=case_id,
            agents=results,
            final_analysis=report,
            total_duration=int((time.time() - start_time) * 1000),
        )

        if case_id is not None:
            try:
                await self.gateway.save_pipeline_run(case_id, run)
            except Exception as e:
                logger.error("Failed to save pipeline run", run_id=run_id, case_id=case_id, error=str(e))

        logger.info(
            "Multi-agent analysis completed",
            run_id=run_id,
            agents=[r.agent for r in results],
            elapsed_ms=run.total_duration,
        )
        return MultiAgentResponse(
            case_id=case_id or NO_CASE_ID,
            run_id=run_id,
            agents=run.agents,
            final_analysis=run.final_analysis,
            total_duration=run.total_duration,
        )
