from typing import Optional, Union

import structlog
from fastapi import APIRouter, Depends

from api.auth import User, get_current_user
from api.dependencies import get_precedent_search_client
from api.middleware.rate_limiter import analysis_rate_limiter
from api.models import DegradedResponse, PrecedentSearchRequest, PrecedentSearchResponse
from api.orchestrators.case_law_pipeline import degraded_response
from api.tools.precedent_search import PrecedentSearchClient, get_jurisdiction_code

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post(
    "/v1/precedents/search",
    response_model=Union[PrecedentSearchResponse, DegradedResponse],
    tags=["Precedents"],
    summary="Search the precedent index",
)
async def search_precedents(
    request: PrecedentSearchRequest,
    current_user: User = Depends(get_current_user),
    _rate_limit: None = Depends(analysis_rate_limiter.check_rate_limit),
    search_client: Optional[PrecedentSearchClient] = Depends(get_precedent_search_client),
) -> Union[PrecedentSearchResponse, DegradedResponse]:
    """Free-text precedent search, ranked by retrieval position."""
    if search_client is None:
        return degraded_response()

    jurisdiction = get_jurisdiction_code(request.jurisdiction)
    results = await search_client.search(request.query, jurisdiction, max_results=request.max_results)

    logger.info("Precedent search served", uid=current_user.uid, jurisdiction=jurisdiction, results=len(results))
    return PrecedentSearchResponse(results=results, query=request.query, jurisdiction=jurisdiction)
