"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from server.dependencies import get_orchestrator
from server.schemas.responses import HealthResponseDTO

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponseDTO)
async def health_check(orchestrator=Depends(get_orchestrator)):
    """Health check endpoint; degraded when no provider is enabled."""
    providers = [p["name"] for p in orchestrator.provider_status() if p["enabled"]]
    return HealthResponseDTO(
        status="healthy" if providers else "degraded",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        version="1.0.0",
        providers=providers,
    )
