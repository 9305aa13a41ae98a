# services/cache_managers.py
"""Namespaced caches for user, model and gallery data.

A miss is always ``None``; callers go to the database or vendor API with the
same key and write the result back.
"""
from typing import Any, Dict, List, Optional

from app.core.cache import CacheManager

USER_PREFIX = "user:"
CREDITS_PREFIX = "credits:"
MODEL_PREFIX = "model:"
COST_PREFIX = "cost:"
GALLERY_PREFIX = "gallery:"


class UserCacheManager(CacheManager[Any]):
    def __init__(
        self,
        ttl: float = 600,
        max_size: int = 500,
        cleanup_interval: float = 120,
        credits_ttl: float = 300,
        **kwargs,
    ):
        kwargs.setdefault("name", "user_cache")
        super().__init__(ttl=ttl, max_size=max_size, cleanup_interval=cleanup_interval, **kwargs)
        self.credits_ttl = credits_ttl

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.get(f"{USER_PREFIX}{user_id}")

    def set_user(self, user_id: str, user_data: Dict[str, Any]) -> None:
        self.set(f"{USER_PREFIX}{user_id}", user_data)

    def get_user_credits(self, user_id: str) -> Optional[int]:
        return self.get(f"{CREDITS_PREFIX}{user_id}")

    def set_user_credits(self, user_id: str, credits: int) -> None:
        self.set(f"{CREDITS_PREFIX}{user_id}", credits, self.credits_ttl)


class ModelCacheManager(CacheManager[Any]):
    def __init__(
        self,
        ttl: float = 1800,
        max_size: int = 100,
        cleanup_interval: float = 300,
        cost_ttl: float = 3600,
        **kwargs,
    ):
        kwargs.setdefault("name", "model_cache")
        super().__init__(ttl=ttl, max_size=max_size, cleanup_interval=cleanup_interval, **kwargs)
        self.cost_ttl = cost_ttl

    def get_model_health(self, model_name: str) -> Optional[Dict[str, Any]]:
        return self.get(f"{MODEL_PREFIX}{model_name}")

    def set_model_health(self, model_name: str, health_data: Dict[str, Any]) -> None:
        self.set(f"{MODEL_PREFIX}{model_name}", health_data)

    def get_model_cost(self, model_name: str) -> Optional[int]:
        return self.get(f"{COST_PREFIX}{model_name}")

    def set_model_cost(self, model_name: str, cost: int) -> None:
        # Costs rarely change, so they outlive health data
        self.set(f"{COST_PREFIX}{model_name}", cost, self.cost_ttl)


class GalleryCacheManager(CacheManager[List[Dict[str, Any]]]):
    """Gallery pages, cached independently per ``(limit, offset)``."""

    def __init__(self, ttl: float = 900, max_size: int = 200, cleanup_interval: float = 300, **kwargs):
        kwargs.setdefault("name", "gallery_cache")
        super().__init__(ttl=ttl, max_size=max_size, cleanup_interval=cleanup_interval, **kwargs)

    @staticmethod
    def _key(user_id: str, limit: int, offset: int) -> str:
        return f"{GALLERY_PREFIX}{user_id}:{limit}:{offset}"

    def get_user_gallery(self, user_id: str, limit: int = 50, offset: int = 0) -> Optional[List[Dict[str, Any]]]:
        return self.get(self._key(user_id, limit, offset))

    def set_user_gallery(
        self, user_id: str, gallery: List[Dict[str, Any]], limit: int = 50, offset: int = 0
    ) -> None:
        self.set(self._key(user_id, limit, offset), gallery)

    def invalidate_user_gallery(self, user_id: str) -> int:
        """Drop every cached page for one user after their gallery changes."""
        # Trailing colon keeps "user1" from matching "user10"
        return self.delete_prefix(f"{GALLERY_PREFIX}{user_id}:")
