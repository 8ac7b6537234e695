"""FastAPI dependencies for orchestrator access."""

from fastapi import HTTPException, Request, status

from utils.logger import get_logger

logger = get_logger(__name__)


def get_orchestrator(request: Request):
    """Return the orchestrator owned by the application (built in the lifespan handler)."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        logger.error("Search orchestrator requested before startup")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Search service not initialized",
        )
    return orchestrator
