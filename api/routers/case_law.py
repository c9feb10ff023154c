from typing import Union

import structlog
from fastapi import APIRouter, Depends

from api.auth import User, get_current_user
from api.dependencies import get_case_law_pipeline
from api.middleware.rate_limiter import analysis_rate_limiter
from api.models import CaseLawAnalysisRequest, CaseLawAnalysisResponse, DegradedResponse
from api.orchestrators.case_law_pipeline import CaseLawPipeline

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post(
    "/v1/cases/analyze-case-law",
    response_model=Union[CaseLawAnalysisResponse, DegradedResponse],
    tags=["Case Analysis"],
    summary="Score a case against similar precedents",
)
async def analyze_case_law(
    request: CaseLawAnalysisRequest,
    current_user: User = Depends(get_current_user),
    _rate_limit: None = Depends(analysis_rate_limiter.check_rate_limit),
    pipeline: CaseLawPipeline = Depends(get_case_law_pipeline),
) -> Union[CaseLawAnalysisResponse, DegradedResponse]:
    """
    Score a stored case against precedents from the CanLII index.

    A prior analysis younger than the staleness window is returned as-is
    (``cached=true``) unless ``forceRefresh`` is set. When the precedent index
    is not configured the response is ``{success: false, fallback: true}``
    with status 200.

    Raises:
        CaseNotFoundError: 404 if the case is missing or owned by someone else
    """
    case_id = str(request.case_id)
    logger.info("Case law analysis requested", case_id=case_id, uid=current_user.uid, force_refresh=request.force_refresh)
    return await pipeline.analyze(case_id, current_user.uid, force_refresh=request.force_refresh)
