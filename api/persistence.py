"""Persistence gateway used by the analysis pipelines.

The pipelines depend on the ``PersistenceGateway`` capability only. The
Firestore implementation maps between Firestore documents and domain models
and puts a Redis read-through cache in front of latest-analysis lookups.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Protocol

import structlog
from google.cloud.firestore_v1.async_client import AsyncClient

from api.schemas.agent_outputs import PipelineRun
from api.schemas.analysis import AnalysisResult, CacheEntry, CaseRecord, EvidenceItem, Precedent
from libs.caching.analysis_cache import AnalysisCache
from libs.firestore.analyses import (
    add_similar_cases,
    create_case_law_analysis,
    create_pipeline_run,
    get_latest_case_law_analysis,
)
from libs.firestore.cases import get_case, list_case_evidence, update_case_merit_score
from libs.models.firestore import FirestoreCaseLawAnalysis, FirestorePipelineRun, FirestoreSimilarCase

logger = structlog.get_logger(__name__)

MAX_PERSISTED_PRECEDENTS = 5


class PersistenceGateway(Protocol):
    """Storage capability consumed by the analysis core."""

    async def load_case(self, case_id: str) -> Optional[CaseRecord]: ...

    async def load_evidence(self, case_id: str) -> List[EvidenceItem]: ...

    async def save_analysis(
        self,
        case_id: str,
        user_id: str,
        analysis: AnalysisResult,
        *,
        search_query: Optional[str] = None,
        jurisdiction: Optional[str] = None,
    ) -> str: ...

    async def save_precedents(
        self,
        analysis_id: str,
        precedents: List[Precedent],
        *,
        case_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None: ...

    async def load_latest_analysis(self, case_id: str, user_id: str) -> Optional[CacheEntry]: ...

    async def update_case_merit_score(self, case_id: str, score: int) -> None: ...

    async def save_pipeline_run(self, case_id: str, run: PipelineRun) -> str: ...


class FirestoreGateway:
    """Firestore-backed persistence gateway."""

    def __init__(self, client: AsyncClient, cache: Optional[AnalysisCache] = None):
        self.client = client
        self.cache = cache

    async def load_case(self, case_id: str) -> Optional[CaseRecord]:
        case = await get_case(self.client, case_id)
        if case is None:
            return None
        return CaseRecord(
            id=case.case_id,
            user_id=case.user_id,
            venue=case.venue,
            province=case.province,
            description=case.description,
            merit_score=case.merit_score,
        )

    async def load_evidence(self, case_id: str) -> List[EvidenceItem]:
        evidence = await list_case_evidence(self.client, case_id)
        return [
            EvidenceItem(
                file_name=item.file_name,
                description=item.description,
                file_type=item.file_type,
                ocr_text=item.ocr_text,
                tags=item.tags,
            )
            for item in evidence
        ]

    async def save_analysis(
        self,
        case_id: str,
        user_id: str,
        analysis: AnalysisResult,
        *,
        search_query: Optional[str] = None,
        jurisdiction: Optional[str] = None,
    ) -> str:
        document = FirestoreCaseLawAnalysis(
            analysis_id=str(uuid.uuid4()),
            case_id=case_id,
            user_id=user_id,
            merit_score=analysis.merit_score,
            confidence=analysis.confidence,
            outcome_prediction=analysis.outcome_prediction,
            strengths=analysis.strengths,
            weaknesses=analysis.weaknesses,
            recommendations=analysis.recommendations,
            legal_basis=analysis.legal_basis,
            search_query=search_query,
            jurisdiction=jurisdiction,
            created_at=datetime.now(timezone.utc),
        )
        analysis_id = await create_case_law_analysis(self.client, document)
        if self.cache is not None:
            await self.cache.invalidate(case_id, user_id)

        logger.info("Analysis saved", analysis_id=analysis_id, case_id=case_id, merit_score=analysis.merit_score)
        return analysis_id

    async def save_precedents(
        self,
        analysis_id: str,
        precedents: List[Precedent],
        *,
        case_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """Store the top precedents of an analysis.

        When the owning case and user are given, their cached latest analysis
        is invalidated.
        """
        similar_cases = [
            FirestoreSimilarCase(
                analysis_id=analysis_id,
                title=precedent.title,
                citation=precedent.citation,
                court=precedent.court,
                decision_date=precedent.date,
                url=precedent.url,
                summary=precedent.summary or "",
                relevance_score=precedent.relevance,
            )
            for precedent in precedents[:MAX_PERSISTED_PRECEDENTS]
        ]
        await add_similar_cases(self.client, analysis_id, similar_cases)

        if case_id is not None and user_id is not None and self.cache is not None:
            await self.cache.invalidate(case_id, user_id)

    async def load_latest_analysis(self, case_id: str, user_id: str) -> Optional[CacheEntry]:
        if self.cache is not None:
            cached = await self.cache.get_latest(case_id, user_id)
            if cached is not None:
                return CacheEntry.model_validate(cached)

        found = await get_latest_case_law_analysis(self.client, case_id, user_id)
        if found is None:
            return None

        document, similar_cases = found
        entry = CacheEntry(
            analysis_id=document.analysis_id,
            created_at=document.created_at,
            analysis=AnalysisResult(
                merit_score=document.merit_score,
                confidence=document.confidence,
                outcome_prediction=document.outcome_prediction,
                strengths=document.strengths,
                weaknesses=document.weaknesses,
                recommendations=document.recommendations,
                legal_basis=document.legal_basis,
                similar_cases=[
                    Precedent(
                        title=sc.title,
                        citation=sc.citation,
                        court=sc.court,
                        date=sc.decision_date,
                        url=sc.url,
                        summary=sc.summary,
                        relevance=sc.relevance_score,
                    )
                    for sc in similar_cases
                ],
            ),
        )

        if self.cache is not None:
            await self.cache.set_latest(case_id, user_id, entry.model_dump(mode="json"))
        return entry

    async def update_case_merit_score(self, case_id: str, score: int) -> None:
        await update_case_merit_score(self.client, case_id, score)

    async def save_pipeline_run(self, case_id: str, run: PipelineRun) -> str:
        report = run.final_analysis
        document = FirestorePipelineRun(
            run_id=run.run_id,
            case_id=case_id,
            recommendation=report.summary,
            confidence_score=report.merit_score / 100,
            next_steps=[step.model_dump(by_alias=True) for step in report.next_steps],
            relevant_laws=[law.model_dump(by_alias=True) for law in report.relevant_laws],
        )
        return await create_pipeline_run(self.client, document)
