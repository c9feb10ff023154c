"""Precedent scoring pipeline.

Flow: reusable prior analysis -> degraded-mode check -> context -> precedent
search -> scoring -> persistence -> response.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta
from typing import Optional, Union

import structlog

from api.composer.scoring import MeritScoringEngine
from api.models import CaseLawAnalysisResponse, DegradedResponse
from api.persistence import PersistenceGateway
from api.schemas.analysis import AnalysisResult, CaseContext, Precedent
from api.tools.context_gatherer import gather_case_context
from api.tools.precedent_search import PrecedentSearchClient, build_search_query, get_jurisdiction_code
from api.tools.staleness import DEFAULT_STALENESS_WINDOW, find_reusable_analysis

logger = structlog.get_logger(__name__)

INDEX_UNAVAILABLE_ERROR = "CanLII API not configured"
INDEX_UNAVAILABLE_MESSAGE = (
    "CanLII case law analysis is not available. Please contact support to enable this feature."
)


def degraded_response() -> DegradedResponse:
    return DegradedResponse(error=INDEX_UNAVAILABLE_ERROR, message=INDEX_UNAVAILABLE_MESSAGE)


class CaseLawPipeline:
    """Runs one precedent scoring request end to end."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        search_client: Optional[PrecedentSearchClient],
        scoring_engine: MeritScoringEngine,
        staleness_window: timedelta = DEFAULT_STALENESS_WINDOW,
    ):
        self.gateway = gateway
        self.search_client = search_client
        self.scoring_engine = scoring_engine
        self.staleness_window = staleness_window

    async def analyze(
        self,
        case_id: str,
        user_id: str,
        force_refresh: bool = False,
        now: Optional[datetime] = None,
    ) -> Union[CaseLawAnalysisResponse, DegradedResponse]:
        """Score a case, reusing a fresh prior analysis when allowed.

        Raises:
            CaseNotFoundError: If the case is missing or not owned by ``user_id``.
        """
        start_time = time.time()

        entry = await find_reusable_analysis(
            self.gateway, case_id, user_id, force_refresh=force_refresh, window=self.staleness_window, now=now
        )
        if entry is not None:
            return CaseLawAnalysisResponse(
                analysis=entry.analysis,
                cached=True,
                precedents_found=len(entry.analysis.similar_cases),
            )

        if self.search_client is None:
            logger.warning("Precedent index not configured, returning degraded response", case_id=case_id)
            return degraded_response()

        context = await gather_case_context(self.gateway, case_id, user_id)
        search_query = build_search_query(context.case, context.evidence)
        jurisdiction = get_jurisdiction_code(context.province)

        precedents = await self.search_client.search(search_query, jurisdiction)
        analysis = await self.scoring_engine.score(context, precedents)

        await self._persist(context, user_id, analysis, precedents, search_query, jurisdiction)

        logger.info(
            "Case law analysis completed",
            case_id=case_id,
            merit_score=analysis.merit_score,
            outcome=analysis.outcome_prediction,
            precedents=len(precedents),
            elapsed_ms=int((time.time() - start_time) * 1000),
        )
        return CaseLawAnalysisResponse(analysis=analysis, cached=False, precedents_found=len(precedents))

    async def _persist(
        self,
        context: CaseContext,
        user_id: str,
        analysis: AnalysisResult,
        precedents: list[Precedent],
        search_query: str,
        jurisdiction: str,
    ) -> None:
        """Write the analysis, its precedents and the case merit score.

        Write failures are logged and do not fail the request.
        """
        case_id = context.case_id
        try:
            analysis_id = await self.gateway.save_analysis(
                case_id, user_id, analysis, search_query=search_query, jurisdiction=jurisdiction
            )
            if precedents:
                await self.gateway.save_precedents(analysis_id, precedents, case_id=case_id, user_id=user_id)
        except Exception as e:
            logger.error("Failed to save analysis", case_id=case_id, error=str(e), error_type=type(e).__name__)

        try:
            await self.gateway.update_case_merit_score(case_id, analysis.merit_score)
        except Exception as e:
            logger.error("Failed to update case merit score", case_id=case_id, error=str(e), error_type=type(e).__name__)
