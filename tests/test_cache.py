from univote.shared.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = TTLCache(ttl=30, clock=clock)
    cache.set("results", {"total": 3})

    clock.now += 29.9
    assert cache.get("results") == {"total": 3}

    clock.now += 0.1
    assert cache.get("results") is None
    assert len(cache) == 0


def test_per_entry_ttl_overrides_default():
    clock = FakeClock()
    cache = TTLCache(ttl=30, clock=clock)
    cache.set("ended", "final", ttl=300)

    clock.now += 120
    assert "ended" in cache
    clock.now += 180
    assert "ended" not in cache


def test_invalidate_and_clear():
    cache = TTLCache(ttl=30, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)

    cache.invalidate("a")
    cache.invalidate("missing")
    assert cache.get("a", "gone") == "gone"
    assert cache.get("b") == 2

    cache.clear()
    assert len(cache) == 0
