"""Decide whether a previously computed analysis can be reused."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

import structlog

from api.persistence import PersistenceGateway
from api.schemas.analysis import CacheEntry

logger = structlog.get_logger(__name__)

DEFAULT_STALENESS_WINDOW = timedelta(hours=24)


async def find_reusable_analysis(
    gateway: PersistenceGateway,
    case_id: str,
    user_id: str,
    force_refresh: bool = False,
    window: timedelta = DEFAULT_STALENESS_WINDOW,
    now: Optional[datetime] = None,
) -> Optional[CacheEntry]:
    """Return the latest analysis if it is younger than ``window``.

    Returns None when the caller forces a refresh, when no analysis exists, or
    when the latest one is stale. Stored entries are never modified here.
    """
    if force_refresh:
        logger.info("Analysis refresh forced", case_id=case_id)
        return None

    entry = await gateway.load_latest_analysis(case_id, user_id)
    if entry is None:
        logger.info("No prior analysis", case_id=case_id)
        return None

    age = entry.age(now)
    if not entry.is_fresh(window, now):
        logger.info(
            "Prior analysis is stale",
            case_id=case_id,
            analysis_id=entry.analysis_id,
            age_hours=round(age.total_seconds() / 3600, 1),
        )
        return None

    logger.info(
        "Reusing prior analysis",
        case_id=case_id,
        analysis_id=entry.analysis_id,
        age_hours=round(age.total_seconds() / 3600, 1),
    )
    return entry
