"""FastAPI dependency providers.

Each provider builds its component from settings once per process. Tests
replace them through ``app.dependency_overrides``.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Optional

import structlog
from fastapi import Depends

from api.composer.scoring import MeritScoringEngine
from api.llm.reasoning_client import ReasoningClient
from api.orchestrators.agent_orchestrator import AgentOrchestrator, StageFailurePolicy
from api.orchestrators.case_law_pipeline import CaseLawPipeline
from api.orchestrators.multi_agent_pipeline import MultiAgentPipeline
from api.persistence import FirestoreGateway, PersistenceGateway
from api.tools.precedent_search import PrecedentSearchClient
from libs.caching.analysis_cache import AnalysisCache
from libs.common.settings import get_settings
from libs.firebase.client import get_firestore_async_client

logger = structlog.get_logger(__name__)


@lru_cache
def get_persistence_gateway() -> PersistenceGateway:
    settings = get_settings()
    cache = AnalysisCache(ttl_seconds=settings.analysis_staleness_hours * 3600)
    return FirestoreGateway(get_firestore_async_client(), cache=cache)


@lru_cache
def get_precedent_search_client() -> Optional[PrecedentSearchClient]:
    """The precedent index client, or None when no API key is configured."""
    settings = get_settings()
    if not settings.precedent_index_configured:
        logger.warning("Precedent index not configured", hint="Set CASEPATH_CANLII_API_KEY")
        return None
    return PrecedentSearchClient(
        api_key=settings.canlii_api_key,
        base_url=settings.canlii_base_url,
        timeout=settings.precedent_timeout_seconds,
        max_attempts=settings.precedent_max_attempts,
    )


@lru_cache
def get_reasoning_client() -> Optional[ReasoningClient]:
    """The reasoning backend client, or None when no API key is configured."""
    settings = get_settings()
    if not settings.reasoning_backend_configured:
        logger.warning("Reasoning backend not configured", hint="Set CASEPATH_REASONING_API_KEY")
        return None
    return ReasoningClient.from_settings(settings)


def get_scoring_engine(
    reasoning_client: Optional[ReasoningClient] = Depends(get_reasoning_client),
) -> MeritScoringEngine:
    return MeritScoringEngine(reasoning_client)


def get_agent_orchestrator(
    reasoning_client: Optional[ReasoningClient] = Depends(get_reasoning_client),
) -> AgentOrchestrator:
    policy = StageFailurePolicy(max_attempts=get_settings().agent_stage_max_attempts)
    return AgentOrchestrator(reasoning_client, policy=policy)


def get_case_law_pipeline(
    gateway: PersistenceGateway = Depends(get_persistence_gateway),
    search_client: Optional[PrecedentSearchClient] = Depends(get_precedent_search_client),
    scoring_engine: MeritScoringEngine = Depends(get_scoring_engine),
) -> CaseLawPipeline:
    window = timedelta(hours=get_settings().analysis_staleness_hours)
    return CaseLawPipeline(gateway, search_client, scoring_engine, staleness_window=window)


def get_multi_agent_pipeline(
    gateway: PersistenceGateway = Depends(get_persistence_gateway),
    orchestrator: AgentOrchestrator = Depends(get_agent_orchestrator),
) -> MultiAgentPipeline:
    return MultiAgentPipeline(gateway, orchestrator)
