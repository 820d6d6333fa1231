import threading

from app.services.dedup import DeduplicationCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_first_sighting_admits_and_repeat_is_duplicate():
    cache = DeduplicationCache(ttl_seconds=300, clock=FakeClock())
    assert cache.is_duplicate("evt-1") is False
    assert cache.is_duplicate("evt-1") is True
    assert cache.is_duplicate("evt-2") is False
    assert len(cache) == 2


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = DeduplicationCache(ttl_seconds=300, clock=clock)
    cache.is_duplicate("evt-1")

    clock.now += 300
    assert cache.is_duplicate("evt-1") is True

    clock.now += 1
    assert cache.is_duplicate("evt-1") is False


def test_repeat_does_not_refresh_insertion_time():
    clock = FakeClock()
    cache = DeduplicationCache(ttl_seconds=300, clock=clock)
    cache.is_duplicate("evt-1")
    clock.now += 200
    assert cache.is_duplicate("evt-1") is True

    clock.now += 101
    assert cache.is_duplicate("evt-1") is False


def test_capacity_evicts_earliest_inserted_entry():
    cache = DeduplicationCache(ttl_seconds=300, max_size=3, clock=FakeClock())
    for event_id in ("a", "b", "c"):
        cache.is_duplicate(event_id)
    # повтор "a" не должен продлить ему жизнь в очереди вытеснения
    assert cache.is_duplicate("a") is True

    cache.is_duplicate("d")
    assert len(cache) == 3
    assert "a" not in cache
    assert all(event_id in cache for event_id in ("b", "c", "d"))


def test_size_never_exceeds_maximum():
    cache = DeduplicationCache(ttl_seconds=300, max_size=10, clock=FakeClock())
    for i in range(100):
        cache.is_duplicate(f"evt-{i}")
        assert len(cache) <= 10


def test_purge_expired_returns_removed_count():
    clock = FakeClock()
    cache = DeduplicationCache(ttl_seconds=60, clock=clock)
    cache.is_duplicate("old-1")
    cache.is_duplicate("old-2")
    clock.now += 30
    cache.is_duplicate("fresh")
    clock.now += 31

    assert cache.purge_expired() == 2
    assert "fresh" in cache


def test_concurrent_submissions_admit_an_id_exactly_once():
    cache = DeduplicationCache(ttl_seconds=300)
    results = []
    barrier = threading.Barrier(8)

    def submit():
        barrier.wait()
        results.append(cache.is_duplicate("same-event"))

    threads = [threading.Thread(target=submit) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(False) == 1
    assert results.count(True) == 7
