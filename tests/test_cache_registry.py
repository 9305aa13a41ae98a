import threading

from app.core.settings import Settings
from app.services.cache_managers import GalleryCacheManager, ModelCacheManager, UserCacheManager
from app.services.cache_registry import DEFAULT_MODEL_COSTS, CacheRegistry


def make_registry(clock, **overrides):
    return CacheRegistry.from_settings(Settings(**overrides), clock=clock, start_sweepers=False)


def test_from_settings_applies_sizes(clock):
    registry = make_registry(clock, user_cache_max_size=5, gallery_cache_ttl_seconds=12, model_cost_ttl_seconds=7)
    assert registry.user_cache.config.max_size == 5
    assert registry.gallery_cache.config.ttl == 12
    assert registry.model_cache.cost_ttl == 7
    assert not registry.user_cache.sweeper_running


def test_warm_model_cache_seeds_costs(clock):
    registry = make_registry(clock)
    assert registry.warm_model_cache() == len(DEFAULT_MODEL_COSTS)
    assert registry.model_cache.get_model_cost("runway-video") == 4
    assert registry.model_cache.get_model_cost("nano-banana") == 1
    assert registry.model_cache.get_model_cost("unknown-model") is None


def test_warm_model_cache_custom_table(clock):
    registry = make_registry(clock)
    assert registry.warm_model_cache({"flux-pro": 5}) == 1
    assert registry.model_cache.get_model_cost("flux-pro") == 5
    assert registry.model_cache.get_model_cost("flux-dev") is None


def test_warm_user_cache_with_and_without_balance(clock):
    registry = make_registry(clock)
    registry.warm_user_cache("u1", {"id": "u1", "credit_balance": 25})
    registry.warm_user_cache("u2", {"id": "u2"})
    assert registry.user_cache.get_user("u1")["credit_balance"] == 25
    assert registry.user_cache.get_user_credits("u1") == 25
    assert registry.user_cache.get_user("u2") == {"id": "u2"}
    assert registry.user_cache.get_user_credits("u2") is None


def test_statistics_cover_all_caches(clock):
    registry = make_registry(clock)
    registry.warm_model_cache()
    registry.user_cache.set_user("u1", {"id": "u1"})
    registry.user_cache.get_user("u1")

    stats = registry.get_cache_statistics()
    assert stats.user_cache.size == 1
    assert stats.user_cache.total_accesses == 1
    assert stats.model_cache.size == len(DEFAULT_MODEL_COSTS)
    assert stats.gallery_cache.size == 0
    assert stats.timestamp.tzinfo is not None


def test_cleanup_all_caches(clock):
    registry = make_registry(clock)
    registry.warm_model_cache()
    registry.user_cache.set_user("u1", {})
    registry.gallery_cache.set_user_gallery("u1", [])
    registry.cleanup_all_caches()
    assert registry.user_cache.size() == 0
    assert registry.model_cache.size() == 0
    assert registry.gallery_cache.size() == 0


def test_registries_are_isolated(clock):
    first = make_registry(clock)
    second = make_registry(clock)
    first.user_cache.set_user("u1", {"id": "u1"})
    assert second.user_cache.get_user("u1") is None


def test_destroy_stops_every_sweeper():
    with CacheRegistry() as registry:
        assert registry.user_cache.sweeper_running
        assert registry.model_cache.sweeper_running
        assert registry.gallery_cache.sweeper_running
    assert not registry.user_cache.sweeper_running
    assert not registry.model_cache.sweeper_running
    assert not registry.gallery_cache.sweeper_running


def _live_sweepers():
    return [t.name for t in threading.enumerate() if t.name.endswith("-sweeper") and t.is_alive()]


def test_empty_injected_managers_are_kept(clock):
    user = UserCacheManager(max_size=3, clock=clock, start_sweeper=False)
    model = ModelCacheManager(clock=clock, start_sweeper=False)
    gallery = GalleryCacheManager(clock=clock, start_sweeper=False)
    registry = CacheRegistry(user_cache=user, model_cache=model, gallery_cache=gallery)
    assert registry.user_cache is user
    assert registry.model_cache is model
    assert registry.gallery_cache is gallery


def test_from_settings_uses_injected_clock(clock):
    registry = make_registry(clock, user_cache_ttl_seconds=10)
    registry.user_cache.set_user("u1", {"id": "u1"})
    clock.advance(11)
    assert registry.user_cache.get_user("u1") is None


def test_destroy_leaves_no_sweeper_threads():
    before = sorted(_live_sweepers())
    registry = CacheRegistry.from_settings(Settings())
    assert len(_live_sweepers()) == len(before) + 3
    registry.destroy()
    assert sorted(_live_sweepers()) == before


def test_warm_user_cache_keeps_null_balance(clock):
    registry = make_registry(clock)
    registry.warm_user_cache("u3", {"id": "u3", "credit_balance": None})
    assert registry.user_cache.has("credits:u3")
    assert registry.user_cache.get_user_credits("u3") is None
