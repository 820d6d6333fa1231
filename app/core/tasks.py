import logging
import threading
import time
from typing import Optional

from app.services.dedup import DeduplicationCache
from app.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)
_cleanup_thread: Optional[threading.Thread] = None
_lock = threading.Lock()


def purge_caches(dedup_cache: DeduplicationCache, rate_limiter: RateLimiter) -> tuple[int, int]:
    expired = dedup_cache.purge_expired()
    idle = rate_limiter.purge_idle()
    if idle:
        logger.info("Rate limiter dropped %d idle addresses", idle)
    return expired, idle


def start_cache_cleanup(
    dedup_cache: DeduplicationCache, rate_limiter: RateLimiter, interval_seconds: int
) -> Optional[threading.Thread]:
    """Запускает фоновый поток очистки кеша дедупликации и окон rate limit (idempotent)."""
    global _cleanup_thread

    if interval_seconds <= 0:
        return None

    with _lock:
        if _cleanup_thread and _cleanup_thread.is_alive():
            return _cleanup_thread

        def _worker():
            while True:
                time.sleep(interval_seconds)
                try:
                    purge_caches(dedup_cache, rate_limiter)
                except Exception as exc:  # pragma: no cover - логирующий guard
                    logger.warning("Failed to purge relay caches: %s", exc)

        _cleanup_thread = threading.Thread(target=_worker, name="relay-cache-cleanup", daemon=True)
        _cleanup_thread.start()
        return _cleanup_thread
