from app.core.tasks import purge_caches, start_cache_cleanup
from app.services.dedup import DeduplicationCache
from app.services.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_purge_caches_cleans_both_structures():
    clock = FakeClock()
    cache = DeduplicationCache(ttl_seconds=60, clock=clock)
    limiter = RateLimiter(window_seconds=60, clock=clock)
    cache.is_duplicate("evt-1")
    limiter.allow("203.0.113.5")

    clock.now += 120
    assert purge_caches(cache, limiter) == (1, 1)
    assert len(cache) == 0
    assert len(limiter) == 0


def test_cleanup_disabled_for_non_positive_interval():
    assert start_cache_cleanup(DeduplicationCache(), RateLimiter(), interval_seconds=0) is None
