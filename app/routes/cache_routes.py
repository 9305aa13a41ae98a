from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
import logging
from app.core.settings import settings
from app.middleware.rate_limit import limiter
from app.schemas import (
    CacheStatistics,
    ClearResponse,
    ErrorResponse,
    GalleryInvalidation,
    ModelCost,
    WarmResponse,
)
from app.services.cache_registry import CacheRegistry, get_caches

router = APIRouter()
logger = logging.getLogger(__name__)


def require_admin(x_admin_token: str | None = Header(default=None)):
    """Guard for cache-mutating actions; open when no admin token is configured."""
    if settings.admin_token and x_admin_token != settings.admin_token:
        logger.warning("Rejected cache admin action with bad or missing token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")


@router.get("/stats", response_model=CacheStatistics)
def cache_stats(caches: CacheRegistry = Depends(get_caches)):
    return caches.get_cache_statistics()


@router.get(
    "/models/{model_name}/cost",
    response_model=ModelCost,
    responses={404: {"model": ErrorResponse}},
)
def model_cost(model_name: str, caches: CacheRegistry = Depends(get_caches)):
    cost = caches.model_cache.get_model_cost(model_name)
    if cost is None:
        raise HTTPException(status_code=404, detail=f"No cached cost for model '{model_name}'")
    return ModelCost(model_name=model_name, cost=cost)


@router.post(
    "/warm",
    response_model=WarmResponse,
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}},
)
def warm_caches(caches: CacheRegistry = Depends(get_caches)):
    return WarmResponse(seeded=caches.warm_model_cache())


@router.post(
    "/clear",
    response_model=ClearResponse,
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
@limiter.limit(settings.clear_rate_limit)
def clear_caches(request: Request, caches: CacheRegistry = Depends(get_caches)):
    logger.info(f"Cache clear requested by {request.client.host if request.client else 'unknown'}")
    caches.cleanup_all_caches()
    return ClearResponse()


@router.delete(
    "/gallery/{user_id}",
    response_model=GalleryInvalidation,
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}},
)
def invalidate_gallery(user_id: str, caches: CacheRegistry = Depends(get_caches)):
    removed = caches.gallery_cache.invalidate_user_gallery(user_id)
    return GalleryInvalidation(user_id=user_id, removed=removed)
