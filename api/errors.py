"""Error taxonomy and HTTP mapping for the case analysis API.

Authentication failures are raised as ``HTTPException`` from ``api.auth``.
Request validation failures surface as 400 with per-field detail. Everything
not explicitly mapped becomes a generic 500 with no internal detail.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse

logger = structlog.get_logger(__name__)


class CaseAnalysisError(Exception):
    """Base class for case analysis failures."""


class CaseNotFoundError(CaseAnalysisError):
    """The case does not exist or is not visible to the caller."""

    def __init__(self, case_id: str):
        super().__init__(f"Case not found: {case_id}")
        self.case_id = case_id


class UpstreamFailure(CaseAnalysisError):
    """An external backend errored or returned unusable output."""


class PrecedentSearchError(UpstreamFailure):
    """The precedent index call failed."""


class ReasoningBackendError(UpstreamFailure):
    """The reasoning backend call failed."""


class StageOutputError(UpstreamFailure):
    """A reasoning response could not be parsed into the expected structure."""


class ReasoningBackendUnavailable(CaseAnalysisError):
    """No reasoning backend is configured."""


class AgentStageFailed(CaseAnalysisError):
    """A multi-agent stage failed after exhausting its failure policy."""

    def __init__(self, agent: str, attempts: int, cause: Exception):
        super().__init__(f"Agent stage '{agent}' failed after {attempts} attempt(s): {cause}")
        self.agent = agent
        self.attempts = attempts


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
    logger.warning("Invalid request", request_id=_request_id(request), issues=len(details))
    return ORJSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": details},
    )


async def case_not_found_handler(request: Request, exc: CaseNotFoundError) -> ORJSONResponse:
    logger.info("Case not found", request_id=_request_id(request), case_id=exc.case_id)
    return ORJSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Case not found"})


async def http_exception_handler(request: Request, exc: HTTPException) -> ORJSONResponse:
    content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return ORJSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def unhandled_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.error(
        "Unhandled error",
        request_id=_request_id(request),
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error mapping to an application."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(CaseNotFoundError, case_not_found_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
