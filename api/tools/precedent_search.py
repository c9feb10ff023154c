"""Precedent search against the CanLII case-browse API.

Search is best-effort: transport failures and non-success responses yield an
empty result set instead of failing the caller. Transient failures (network
errors, 5xx) are retried with exponential backoff; 4xx responses are not.
"""

from __future__ import annotations

import re
import time
from typing import Any, Dict, Iterable, List, Optional

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from api.errors import PrecedentSearchError
from api.schemas.analysis import CaseRecord, Precedent

logger = structlog.get_logger(__name__)

VENUE_KEYWORDS: Dict[str, str] = {
    "LTB": "landlord tenant residential tenancy eviction maintenance",
    "HRTO": "human rights discrimination employment harassment",
    "SMALL_CLAIMS": "small claims damages contract breach",
    "FAMILY": "family custody support divorce separation",
    "CRIMINAL": "criminal offence charge",
    "LABOUR": "employment termination wrongful dismissal",
}

JURISDICTION_CODES: Dict[str, str] = {
    "ON": "on", "BC": "bc", "AB": "ab", "QC": "qc",
    "MB": "mb", "SK": "sk", "NS": "ns", "NB": "nb",
    "NL": "nl", "PE": "pe", "NT": "nt", "NU": "nu", "YT": "yt",
}
DEFAULT_JURISDICTION = "on"

MAX_QUERY_LENGTH = 200
MAX_DESCRIPTION_KEYWORDS = 10
MIN_KEYWORD_LENGTH = 5
MAX_TAGS_PER_EVIDENCE = 3
MAX_RESULTS = 10
RELEVANCE_STEP = 5


class _RetryableSearchError(PrecedentSearchError):
    """5xx from the index."""


def extract_description_keywords(description: Optional[str]) -> List[str]:
    """First words longer than four characters, punctuation stripped."""
    if not description:
        return []
    words = re.sub(r"[^\w\s]", " ", description).split()
    return [w for w in words if len(w) >= MIN_KEYWORD_LENGTH][:MAX_DESCRIPTION_KEYWORDS]


def build_search_query(case: CaseRecord, evidence: Iterable[Any]) -> str:
    """Build a precedent search query from venue, description and evidence tags.

    ``evidence`` items only need a ``tags`` attribute.
    """
    parts: List[str] = []

    if case.venue and case.venue in VENUE_KEYWORDS:
        parts.append(VENUE_KEYWORDS[case.venue])

    keywords = extract_description_keywords(case.description)
    if keywords:
        parts.append(" ".join(keywords))

    for item in evidence:
        tags = getattr(item, "tags", None) or []
        if tags:
            parts.append(" ".join(tags[:MAX_TAGS_PER_EVIDENCE]))

    return " ".join(parts)[:MAX_QUERY_LENGTH]


def get_jurisdiction_code(province: Optional[str]) -> str:
    """Map a province or territory to the index's jurisdiction code."""
    if not province:
        return DEFAULT_JURISDICTION
    return JURISDICTION_CODES.get(province.strip().upper(), DEFAULT_JURISDICTION)


def rank_precedents(raw_cases: List[Dict[str, Any]], jurisdiction: str) -> List[Precedent]:
    """Convert raw index results to precedents ranked by retrieval position."""
    precedents = []
    for index, raw in enumerate(raw_cases):
        database_id = raw.get("databaseId")
        precedents.append(
            Precedent(
                title=raw.get("title") or "Untitled Case",
                citation=raw.get("citation") or database_id or "N/A",
                court=raw.get("court") or "Unknown Court",
                date=raw.get("decisionDate") or "Unknown",
                url=raw.get("url") or f"https://www.canlii.org/en/{jurisdiction}/{database_id}",
                summary=raw.get("summary") or "",
                relevance=100 - index * RELEVANCE_STEP,
            )
        )
    return precedents


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, (httpx.TransportError, _RetryableSearchError))


class PrecedentSearchClient:
    """Client for the CanLII case-browse endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.canlii.org/v1",
        timeout: float = 10.0,
        max_attempts: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._transport = transport
        self._retry_wait = retry_wait or wait_exponential(multiplier=0.5, min=0.5, max=4)

    async def _fetch(self, query: str, jurisdiction: str, max_results: int) -> Dict[str, Any]:
        url = f"{self.base_url}/caseBrowse/{jurisdiction}/en/"
        params = {"api_key": self.api_key, "resultCount": max_results, "search": query}

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception(_is_transient),
            reraise=True,
        ):
            with attempt:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.get(url, params=params)

                if response.status_code >= 500:
                    raise _RetryableSearchError(f"Precedent index error: {response.status_code}")
                if not response.is_success:
                    raise PrecedentSearchError(f"Precedent index rejected request: {response.status_code}")
                return response.json()

        raise PrecedentSearchError("Precedent search made no attempts")

    async def search(self, query: str, jurisdiction: str, max_results: int = MAX_RESULTS) -> List[Precedent]:
        """Search the index; returns an empty list on any upstream failure."""
        max_results = max(1, min(max_results, MAX_RESULTS))
        start_time = time.time()

        try:
            data = await self._fetch(query, jurisdiction, max_results)
        except (httpx.TransportError, PrecedentSearchError, ValueError) as e:
            logger.error(
                "Precedent search failed",
                jurisdiction=jurisdiction,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        raw_cases = data.get("cases") if isinstance(data, dict) else None
        precedents = rank_precedents((raw_cases or [])[:max_results], jurisdiction)

        logger.info(
            "Precedent search completed",
            jurisdiction=jurisdiction,
            query=query[:50],
            results=len(precedents),
            elapsed_ms=int((time.time() - start_time) * 1000),
        )
        return precedents
