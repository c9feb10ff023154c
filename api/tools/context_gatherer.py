"""Assemble a case record and its evidence into an analysis context."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog

from api.errors import CaseNotFoundError
from api.persistence import PersistenceGateway
from api.schemas.analysis import CaseContext, EvidenceDigestEntry, EvidenceItem

logger = structlog.get_logger(__name__)

DIGEST_TEXT_LIMIT = 300


def _truncate(text: Optional[str], limit: int = DIGEST_TEXT_LIMIT) -> Optional[str]:
    if text is None:
        return None
    return text[:limit]


def build_evidence_digest(evidence: List[EvidenceItem]) -> List[EvidenceDigestEntry]:
    """Reduce evidence items to what downstream prompts need."""
    return [
        EvidenceDigestEntry(
            name=item.file_name,
            type=item.file_type,
            description=_truncate(item.description),
            tags=item.tags,
            ocr_preview=_truncate(item.ocr_text),
        )
        for item in evidence
    ]


async def gather_case_context(
    gateway: PersistenceGateway,
    case_id: Optional[str],
    user_id: str,
    case_details: Optional[Dict[str, Any]] = None,
    include_existing_analysis: bool = False,
) -> CaseContext:
    """Load a case and its evidence into a normalized context.

    Args:
        gateway: Persistence gateway to read from.
        case_id: Case to load. When None, the context holds only ``case_details``.
        user_id: The caller; the case must belong to them.
        case_details: Caller-supplied details carried through to prompts.
        include_existing_analysis: Also attach the caller's latest stored analysis.

    Raises:
        CaseNotFoundError: If the case does not exist or belongs to someone else.
    """
    details = dict(case_details or {})
    if case_id is None:
        return CaseContext(details=details)

    case = await gateway.load_case(case_id)
    if case is None or case.user_id != user_id:
        logger.warning("Case not visible to caller", case_id=case_id, user_id=user_id, exists=case is not None)
        raise CaseNotFoundError(case_id)

    evidence = await gateway.load_evidence(case_id)

    existing_analysis = None
    if include_existing_analysis:
        entry = await gateway.load_latest_analysis(case_id, user_id)
        existing_analysis = entry.analysis if entry else None

    logger.info(
        "Case context gathered",
        case_id=case_id,
        evidence_count=len(evidence),
        has_existing_analysis=existing_analysis is not None,
    )

    return CaseContext(
        case_id=case_id,
        case=case,
        details=details,
        evidence=build_evidence_digest(evidence),
        evidence_count=len(evidence),
        existing_analysis=existing_analysis,
    )
