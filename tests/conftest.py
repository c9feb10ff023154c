"""
Pytest configuration and shared fixtures.

Provides:
- Test environment variables (set before any settings are cached)
- An in-memory persistence gateway
- Case, evidence and precedent builders
- Fakeredis client
"""

import os

os.environ["CASEPATH_APP_ENV"] = "test"
os.environ.pop("CASEPATH_CANLII_API_KEY", None)
os.environ.pop("CASEPATH_REASONING_API_KEY", None)

import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from api.middleware.rate_limiter import agent_rate_limiter, analysis_rate_limiter
from api.schemas.agent_outputs import PipelineRun
from api.schemas.analysis import AnalysisResult, CacheEntry, CaseRecord, EvidenceItem, Precedent

CASE_ID = "3f2b8c1e-6a4d-4d1b-9a57-0c6e2f1d8a90"
USER_ID = "user-123"
OTHER_USER_ID = "user-456"


class InMemoryGateway:
    """Persistence gateway backed by dicts, recording every write."""

    def __init__(self):
        self.cases: Dict[str, CaseRecord] = {}
        self.evidence: Dict[str, List[EvidenceItem]] = defaultdict(list)
        self.analyses: List[dict] = []
        self.precedents: Dict[str, List[Precedent]] = {}
        self.merit_updates: List[tuple] = []
        self.pipeline_runs: List[tuple] = []
        self.precedent_owners: Dict[str, tuple] = {}
        self.fail_writes = False

    def add_case(self, case: CaseRecord, evidence: Optional[List[EvidenceItem]] = None) -> None:
        self.cases[case.id] = case
        self.evidence[case.id] = list(evidence or [])

    def seed_analysis(self, case_id: str, user_id: str, analysis: AnalysisResult, created_at: datetime) -> str:
        analysis_id = str(uuid.uuid4())
        self.analyses.append(
            {"id": analysis_id, "case_id": case_id, "user_id": user_id, "analysis": analysis, "created_at": created_at}
        )
        self.precedents[analysis_id] = list(analysis.similar_cases)
        return analysis_id

    async def load_case(self, case_id: str) -> Optional[CaseRecord]:
        return self.cases.get(case_id)

    async def load_evidence(self, case_id: str) -> List[EvidenceItem]:
        return list(self.evidence.get(case_id, []))

    async def save_analysis(self, case_id, user_id, analysis, *, search_query=None, jurisdiction=None) -> str:
        if self.fail_writes:
            raise RuntimeError("write failed")
        analysis_id = str(uuid.uuid4())
        self.analyses.append(
            {
                "id": analysis_id,
                "case_id": case_id,
                "user_id": user_id,
                "analysis": analysis.model_copy(update={"similar_cases": []}),
                "created_at": datetime.now(timezone.utc),
                "search_query": search_query,
                "jurisdiction": jurisdiction,
            }
        )
        return analysis_id

    async def save_precedents(self, analysis_id: str, precedents: List[Precedent], *, case_id=None, user_id=None) -> None:
        if self.fail_writes:
            raise RuntimeError("write failed")
        self.precedents[analysis_id] = list(precedents[:5])
        self.precedent_owners[analysis_id] = (case_id, user_id)

    async def load_latest_analysis(self, case_id: str, user_id: str) -> Optional[CacheEntry]:
        matching = [a for a in self.analyses if a["case_id"] == case_id and a["user_id"] == user_id]
        if not matching:
            return None
        latest = max(matching, key=lambda a: a["created_at"])
        analysis = latest["analysis"].model_copy(update={"similar_cases": self.precedents.get(latest["id"], [])})
        return CacheEntry(analysis_id=latest["id"], analysis=analysis, created_at=latest["created_at"])

    async def update_case_merit_score(self, case_id: str, score: int) -> None:
        if self.fail_writes:
            raise RuntimeError("write failed")
        self.merit_updates.append((case_id, score))

    async def save_pipeline_run(self, case_id: str, run: PipelineRun) -> str:
        if self.fail_writes:
            raise RuntimeError("write failed")
        self.pipeline_runs.append((case_id, run))
        return run.run_id


def make_case(**overrides) -> CaseRecord:
    data = {
        "id": CASE_ID,
        "user_id": USER_ID,
        "venue": "LTB",
        "province": "ON",
        "description": "Landlord refused to repair the heating system during winter months.",
    }
    data.update(overrides)
    return CaseRecord(**data)


def make_evidence(count: int, tags: Optional[List[str]] = None) -> List[EvidenceItem]:
    return [
        EvidenceItem(
            file_name=f"exhibit-{i}.pdf",
            description=f"Exhibit {i}",
            file_type="application/pdf",
            tags=list(tags or []),
        )
        for i in range(1, count + 1)
    ]


def make_precedents(count: int) -> List[Precedent]:
    return [
        Precedent(
            title=f"Tenant {i} v. Landlord {i}",
            citation=f"2023 ONLTB {100 + i}",
            court="Landlord and Tenant Board",
            date="2023-05-01",
            url=f"https://www.canlii.org/en/on/onltb/doc/{i}",
            summary="",
            relevance=100 - 5 * (i - 1),
        )
        for i in range(1, count + 1)
    ]


@pytest.fixture
def case_id():
    return CASE_ID


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def other_user_id():
    return OTHER_USER_ID


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def case_factory():
    return make_case


@pytest.fixture
def evidence_factory():
    return make_evidence


@pytest.fixture
def precedent_factory():
    return make_precedents


@pytest.fixture(autouse=True)
def disable_rate_limits():
    """Rate limits are exercised explicitly; keep them out of other tests."""
    analysis_rate_limiter.enabled = False
    agent_rate_limiter.enabled = False
    yield
    analysis_rate_limiter.enabled = True
    agent_rate_limiter.enabled = True
    analysis_rate_limiter.reset()
    agent_rate_limiter.reset()


@pytest.fixture
async def redis_client():
    """Provide a fakeredis client so no Redis server is needed."""
    from fakeredis import aioredis as fakeredis

    client = fakeredis.FakeRedis(decode_responses=True)
    yield client
    await client.flushdb()
    await client.aclose()
