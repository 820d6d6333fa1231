import logging
import threading
import time
from collections import OrderedDict
from typing import Callable

logger = logging.getLogger(__name__)


class DeduplicationCache:
    """
    Ограниченный по размеру и времени жизни набор принятых event_id.

    Записи никогда не обновляются после вставки, поэтому порядок вставки
    совпадает с порядком истечения и вытеснения.
    """

    def __init__(
        self,
        ttl_seconds: float = 5 * 60,
        max_size: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self.clock = clock
        self._entries: "OrderedDict[str, float]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._entries

    def _sweep(self, now: float) -> int:
        removed = 0
        while self._entries:
            oldest_id, inserted_at = next(iter(self._entries.items()))
            if now - inserted_at <= self.ttl_seconds:
                break
            del self._entries[oldest_id]
            removed += 1
        if removed:
            logger.info("Dedup cache sweep removed %d expired entries", removed)
        return removed

    def is_duplicate(self, event_id: str) -> bool:
        with self._lock:
            now = self.clock()
            self._sweep(now)

            if event_id in self._entries:
                logger.warning("Duplicate event blocked: %s", event_id)
                return True

            if len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
            self._entries[event_id] = now
            return False

    def purge_expired(self) -> int:
        with self._lock:
            return self._sweep(self.clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
