"""Case Analysis API service.

FastAPI application hosting the precedent scoring pipeline and the
multi-agent case analysis pipeline.
"""

from __future__ import annotations

import logging
import time
import uuid

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from api.errors import register_exception_handlers
from api.models import HealthResponse
from api.routers import (
    case_law as case_law_router,
    multi_agent as multi_agent_router,
    precedents as precedents_router,
)
from libs.caching.redis_client import health_check as redis_health_check
from libs.common.settings import get_settings

SERVICE_NAME = "case-analysis-api"
SERVICE_VERSION = "0.1.0"
MAX_REQUEST_BYTES = 1024 * 1024

logging.basicConfig(format="%(message)s", level=get_settings().log_level)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Case Analysis API",
        description="Precedent-based merit scoring and multi-agent case analysis",
        version=SERVICE_VERSION,
        default_response_class=ORJSONResponse,
        debug=settings.debug,
    )

    register_exception_handlers(app)

    cors_origins = ["*"] if settings.is_development else settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=not settings.is_development,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        """Reject oversized request bodies."""
        if request.method in ["POST", "PUT", "PATCH"]:
            content_length = request.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > MAX_REQUEST_BYTES:
                return ORJSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={"error": f"Request body too large. Maximum size: {MAX_REQUEST_BYTES} bytes"},
                )
        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing and a request ID."""
        start_time = time.time()
        request_id = request.headers.get("x-request-id") or f"req_{uuid.uuid4().hex[:16]}"
        request.state.request_id = request_id

        logger.info(
            "Request started",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                request_id=request_id,
                error=str(e),
                process_time_ms=round((time.time() - start_time) * 1000, 2),
                exc_info=True,
            )
            raise

        logger.info(
            "Request completed",
            request_id=request_id,
            status_code=response.status_code,
            process_time_ms=round((time.time() - start_time) * 1000, 2),
        )
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(case_law_router.router, prefix="/api", tags=["Case Analysis"])
    app.include_router(multi_agent_router.router, prefix="/api", tags=["Case Analysis"])
    app.include_router(precedents_router.router, prefix="/api", tags=["Precedents"])

    @app.get("/healthz", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Liveness probe."""
        return HealthResponse(status="healthy", service=SERVICE_NAME, version=SERVICE_VERSION)

    @app.get("/readyz", response_model=HealthResponse, tags=["Health"])
    async def readiness_check() -> HealthResponse:
        """Readiness probe: reports which upstreams are configured and whether Redis answers.

        Missing upstreams degrade features but do not make the service unready.
        """
        settings = get_settings()
        details = {
            "precedent_index": "configured" if settings.precedent_index_configured else "not_configured",
            "reasoning_backend": "configured" if settings.reasoning_backend_configured else "not_configured",
        }
        if settings.redis_url or settings.app_env == "test":
            details["redis"] = "connected" if await redis_health_check() else "unavailable"
        else:
            details["redis"] = "disabled"

        return HealthResponse(status="ready", service=SERVICE_NAME, version=SERVICE_VERSION, details=details)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
