"""Case Analysis API Service.

This package contains the FastAPI application and the case analysis core.

Main components:
- main.py: FastAPI application, middleware and health endpoints
- models.py: Pydantic models for requests and responses
- orchestrators/: precedent scoring and multi-agent pipelines
- tools/: context gathering, precedent search and staleness checks
- composer/: prompts, merit scoring and result synthesis
- persistence.py: persistence gateway over Firestore and Redis
"""

# Do not import the FastAPI app here; importing `api.*` must stay side-effect free.
__all__ = []
