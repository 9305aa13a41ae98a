# services/cache_registry.py
"""
Process-wide cache wiring.

One ``CacheRegistry`` is built at application startup and handed to request
handlers through ``get_caches``; nothing here lives at module scope, so tests
can build throwaway registries.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from fastapi import Request

from app.core.settings import Settings
from app.schemas import CacheStatistics
from app.services.cache_managers import GalleryCacheManager, ModelCacheManager, UserCacheManager

logger = logging.getLogger(__name__)

# Seed costs (credits per generation). The database table is authoritative;
# these cover the window before the first lookup.
DEFAULT_MODEL_COSTS: Dict[str, int] = {
    "nano-banana": 1,
    "runway-t2i": 2,
    "veo3-fast": 3,
    "minimax-2.0": 2,
    "kling-2.1-master": 3,
    "runway-video": 4,
    "seedream-3": 2,
    "seedream-4": 3,
    "flux-dev": 1,
    "luma-photon-reframe": 2,
    "gemini-25-flash-image-edit": 1,
}


class CacheRegistry:
    def __init__(
        self,
        user_cache: Optional[UserCacheManager] = None,
        model_cache: Optional[ModelCacheManager] = None,
        gallery_cache: Optional[GalleryCacheManager] = None,
    ):
        self.user_cache = user_cache if user_cache is not None else UserCacheManager()
        self.model_cache = model_cache if model_cache is not None else ModelCacheManager()
        self.gallery_cache = gallery_cache if gallery_cache is not None else GalleryCacheManager()

    @classmethod
    def from_settings(
        cls, settings: Settings, clock: Optional[Callable[[], float]] = None, start_sweepers: bool = True
    ) -> "CacheRegistry":
        extra: Dict[str, Any] = {"start_sweeper": start_sweepers}
        if clock is not None:
            extra["clock"] = clock
        return cls(
            user_cache=UserCacheManager(
                ttl=settings.user_cache_ttl_seconds,
                max_size=settings.user_cache_max_size,
                cleanup_interval=settings.user_cache_cleanup_interval_seconds,
                credits_ttl=settings.user_credits_ttl_seconds,
                **extra,
            ),
            model_cache=ModelCacheManager(
                ttl=settings.model_cache_ttl_seconds,
                max_size=settings.model_cache_max_size,
                cleanup_interval=settings.model_cache_cleanup_interval_seconds,
                cost_ttl=settings.model_cost_ttl_seconds,
                **extra,
            ),
            gallery_cache=GalleryCacheManager(
                ttl=settings.gallery_cache_ttl_seconds,
                max_size=settings.gallery_cache_max_size,
                cleanup_interval=settings.gallery_cache_cleanup_interval_seconds,
                **extra,
            ),
        )

    def warm_user_cache(self, user_id: str, user_data: Mapping[str, Any]) -> None:
        """Cache a freshly loaded user record, and its balance when present."""
        self.user_cache.set_user(user_id, dict(user_data))
        if "credit_balance" in user_data:
            self.user_cache.set_user_credits(user_id, user_data["credit_balance"])

    def warm_model_cache(self, costs: Optional[Mapping[str, int]] = None) -> int:
        costs = DEFAULT_MODEL_COSTS if costs is None else costs
        for model_name, cost in costs.items():
            self.model_cache.set_model_cost(model_name, cost)
        logger.info(f"Model cache warmed with {len(costs)} cost entries")
        return len(costs)

    def get_cache_statistics(self) -> CacheStatistics:
        return CacheStatistics(
            user_cache=self.user_cache.get_stats(),
            model_cache=self.model_cache.get_stats(),
            gallery_cache=self.gallery_cache.get_stats(),
            timestamp=datetime.now(timezone.utc),
        )

    def cleanup_all_caches(self) -> None:
        self.user_cache.clear()
        self.model_cache.clear()
        self.gallery_cache.clear()
        logger.info("All caches cleared")

    def destroy(self) -> None:
        for cache in (self.user_cache, self.model_cache, self.gallery_cache):
            cache.destroy()

    def __enter__(self) -> "CacheRegistry":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.destroy()


def get_caches(request: Request) -> CacheRegistry:
    """FastAPI dependency returning the registry built at startup."""
    return request.app.state.caches
