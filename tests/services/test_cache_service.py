# tests/services/test_cache_service.py
from unittest.mock import MagicMock

from src.services.cache_service import CacheService


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_make_key_sorts_params():
    assert CacheService.make_key("roles:list") == "roles:list"
    assert CacheService.make_key("roles:get", id=3, active=True) == "roles:get:active=True,id=3"


def test_entry_expires_after_ttl():
    """TTL이 지나면 값이 사라지고, 그 전에는 그대로 반환됩니다."""
    # 1. 준비 (Arrange)
    clock = FakeClock()
    cache = CacheService(ttl_seconds=60, clock=clock)
    cache.set("roles:list", ["Analyst"])

    # 2. 실행 및 단언 (Act & Assert)
    clock.now += 59
    assert cache.get("roles:list") == ["Analyst"]
    clock.now += 1
    assert cache.get("roles:list") is None
    assert len(cache) == 0


def test_get_or_load_calls_loader_once():
    cache = CacheService(ttl_seconds=60, clock=FakeClock())
    loader = MagicMock(return_value=[1, 2])

    assert cache.get_or_load("privileges:list", loader) == [1, 2]
    assert cache.get_or_load("privileges:list", loader) == [1, 2]
    loader.assert_called_once()


def test_invalidate_by_prefix():
    cache = CacheService(clock=FakeClock())
    cache.set("roles:list", [])
    cache.set("roles:privileges:role_id=1", [])
    cache.set("privileges:list", [])

    cache.invalidate("roles")

    assert cache.get("roles:list") is None
    assert cache.get("roles:privileges:role_id=1") is None
    assert cache.get("privileges:list") == []

    cache.invalidate()
    assert len(cache) == 0


def test_maxsize_evicts_least_recently_used():
    cache = CacheService(ttl_seconds=60, maxsize=2, clock=FakeClock())
    cache.set("roles:list", ["Analyst"])
    cache.set("privileges:list", ["SELECT"])

    cache.set("stats", {"roles": 1})

    assert len(cache) == 2
    assert cache.get("roles:list") is None
    assert cache.get("stats") == {"roles": 1}
