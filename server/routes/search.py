"""Search endpoints: search, suggestions, metrics and cache management."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from models.search_errors import AllProvidersExhaustedError
from server.dependencies import get_orchestrator
from server.schemas.requests import SearchRequest, SuggestionsRequest
from server.schemas.responses import (
    CacheClearResponseDTO,
    CacheStatsDTO,
    ErrorDTO,
    MetricsResponseDTO,
    MetricsSampleDTO,
    SearchErrorResponseDTO,
    SearchResponseDTO,
    SuggestionsResponseDTO,
)
from server.utils import validate_and_trim_context
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["Search"])


@router.post(
    "/search",
    response_model=SearchResponseDTO,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": SearchErrorResponseDTO}},
)
async def search(request: SearchRequest, orchestrator=Depends(get_orchestrator)):
    """Run a context-aware web search."""
    context = validate_and_trim_context(request.context)
    try:
        preferences = request.preferences.to_preferences() if request.preferences else None
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    try:
        response = await orchestrator.search(
            request.query,
            context,
            request.conversation_id,
            request.user_id,
            preferences,
        )
    except AllProvidersExhaustedError as e:
        logger.warning(
            "Search failed on every provider",
            extra={"extra_fields": {"conversation_id": request.conversation_id}},
        )
        body = SearchErrorResponseDTO(
            detail=str(e), errors=[ErrorDTO.from_search_error(err) for err in e.errors]
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.model_dump()
        )

    return SearchResponseDTO.from_search_response(response)


@router.post("/search/suggestions", response_model=SuggestionsResponseDTO)
async def suggestions(request: SuggestionsRequest, orchestrator=Depends(get_orchestrator)):
    context = validate_and_trim_context(request.context)
    return SuggestionsResponseDTO(
        query=request.query,
        suggestions=orchestrator.get_search_suggestions(request.query, context, request.limit),
    )


@router.get("/search/metrics", response_model=MetricsResponseDTO)
async def metrics(
    limit: int = Query(100, gt=0, le=1000),
    orchestrator=Depends(get_orchestrator),
):
    """Most recent metrics samples (newest last) and the aggregate summary."""
    samples = orchestrator.get_metrics()[-limit:]
    return MetricsResponseDTO(
        samples=[MetricsSampleDTO(**s.to_dict()) for s in samples],
        summary=orchestrator.get_metrics_summary(),
    )


@router.get("/search/cache/stats", response_model=CacheStatsDTO)
async def cache_stats(orchestrator=Depends(get_orchestrator)):
    return CacheStatsDTO(**orchestrator.get_cache_stats())


@router.delete("/search/cache", response_model=CacheClearResponseDTO)
async def clear_cache(
    user_id: str | None = Query(None, min_length=1, max_length=255),
    orchestrator=Depends(get_orchestrator),
):
    """Clear the whole cache, or only the entries scoped to user_id."""
    if user_id:
        removed = orchestrator.invalidate_user(user_id)
        return CacheClearResponseDTO(cleared=True, user_id=user_id, removed=removed)

    orchestrator.clear_cache()
    return CacheClearResponseDTO(cleared=True)
