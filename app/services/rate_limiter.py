import logging
import threading
import time
from collections import OrderedDict, deque
from typing import Callable, Deque

logger = logging.getLogger(__name__)


class RateLimiter:
    """Скользящее окно запросов по адресу клиента."""

    def __init__(
        self,
        max_requests: int = 30,
        window_seconds: float = 60.0,
        max_addresses: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_addresses = max_addresses
        self.clock = clock
        # адреса упорядочены по последнему принятому запросу
        self._windows: "OrderedDict[str, Deque[float]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def _trim(self, window: Deque[float], now: float) -> None:
        while window and now - window[0] >= self.window_seconds:
            window.popleft()

    def allow(self, address: str) -> bool:
        with self._lock:
            now = self.clock()
            window = self._windows.get(address)
            if window is None:
                window = deque()
            else:
                self._trim(window, now)

            if len(window) >= self.max_requests:
                logger.warning("Rate limit exceeded for %s", address)
                return False

            if address not in self._windows:
                self._make_room(now)
                self._windows[address] = window
            window.append(now)
            self._windows.move_to_end(address)
            return True

    def _make_room(self, now: float) -> None:
        if len(self._windows) < self.max_addresses:
            return
        self._purge_idle_locked(now)
        while len(self._windows) >= self.max_addresses:
            self._windows.popitem(last=False)

    def _purge_idle_locked(self, now: float) -> int:
        idle = []
        for address, window in self._windows.items():
            self._trim(window, now)
            if not window:
                idle.append(address)
        for address in idle:
            del self._windows[address]
        return len(idle)

    def purge_idle(self) -> int:
        """Удаляем адреса без запросов в текущем окне; возвращаем число удалённых."""
        with self._lock:
            return self._purge_idle_locked(self.clock())
