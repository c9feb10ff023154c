import structlog
from fastapi import APIRouter, Depends

from api.auth import User, get_current_user
from api.dependencies import get_multi_agent_pipeline
from api.middleware.rate_limiter import agent_rate_limiter
from api.models import MultiAgentRequest, MultiAgentResponse
from api.orchestrators.multi_agent_pipeline import MultiAgentPipeline

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post(
    "/v1/cases/multi-agent-analysis",
    response_model=MultiAgentResponse,
    tags=["Case Analysis"],
    summary="Run the multi-agent case analysis",
)
async def multi_agent_analysis(
    request: MultiAgentRequest,
    current_user: User = Depends(get_current_user),
    _rate_limit: None = Depends(agent_rate_limiter.check_rate_limit),
    pipeline: MultiAgentPipeline = Depends(get_multi_agent_pipeline),
) -> MultiAgentResponse:
    """
    Run the researcher, analyst, strategist and drafter stages (or the
    requested subset, always in that order) and return every stage output
    plus a synthesized report.

    A failing stage aborts the run with a generic 500; no partial report is
    returned.
    """
    case_id = str(request.case_id) if request.case_id else None
    logger.info(
        "Multi-agent analysis requested",
        case_id=case_id,
        uid=current_user.uid,
        agents=request.agents,
    )
    return await pipeline.run(
        current_user.uid,
        request.case_details,
        request.case_type,
        request.province,
        case_id=case_id,
        agents=request.agents,
    )
