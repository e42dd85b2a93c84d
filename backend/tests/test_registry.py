import pytest

from report_engine.errors import LayoutNotFoundError, StructuralError
from report_engine.layout_registry import LayoutRegistry, TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def loader(schema):
    calls = []

    def load(layout_id):
        calls.append(layout_id)
        return schema if layout_id == "db-layout" else None

    load.calls = calls
    return load


class TestTTLCache:

    def test_expiry(self, clock):
        cache = TTLCache(ttl=300, clock=clock)
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert len(cache) == 1

        clock.now += 301
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_clear_and_delete(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.delete("a")
        assert cache.get("a") is None
        cache.clear()
        assert len(cache) == 0


class TestLayoutRegistry:

    def test_loader_result_cached(self, loader, clock):
        registry = LayoutRegistry(loader, TTLCache(ttl=300, clock=clock))

        first = registry.get("db-layout")
        second = registry.get("db-layout")

        assert first == second
        assert loader.calls == ["db-layout"]

    def test_cache_expires(self, loader, clock):
        registry = LayoutRegistry(loader, TTLCache(ttl=300, clock=clock))
        registry.get("db-layout")
        clock.now += 600
        registry.get("db-layout")
        assert loader.calls == ["db-layout", "db-layout"]

    def test_returns_copies(self, loader, clock):
        registry = LayoutRegistry(loader, TTLCache(clock=clock))
        registry.get("db-layout")["sections"].clear()
        assert registry.get("db-layout")["sections"]

    def test_stock_fallback(self, loader):
        schema = LayoutRegistry(loader).get("photo_focused")
        assert schema["sections"][1]["block_type"] == "photo_grid"

    def test_not_found(self, loader):
        with pytest.raises(LayoutNotFoundError):
            LayoutRegistry(loader).get("missing")

    def test_invalid_stored_layout(self):
        registry = LayoutRegistry(lambda layout_id: {"sections": []})
        with pytest.raises(StructuralError):
            registry.get("broken")
        assert len(registry.cache) == 0

    def test_invalidate(self, loader, clock):
        registry = LayoutRegistry(loader, TTLCache(clock=clock))
        registry.get("db-layout")
        registry.invalidate("db-layout")
        registry.get("db-layout")
        registry.invalidate()
        assert len(registry.cache) == 0
        assert loader.calls == ["db-layout", "db-layout"]

    def test_no_loader_uses_stock(self):
        assert LayoutRegistry().get("minimal_report")["sections"][0]["section_id"] == "header"
