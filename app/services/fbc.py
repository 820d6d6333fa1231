import re
import time
from typing import Any, Optional

_CANONICAL_FBC = re.compile(r"^fb\.1\.[0-9]+\.[A-Za-z0-9_-]+$")
_CLICK_TOKEN = re.compile(r"^[A-Za-z0-9_-]+$")
_FBCLID_PREFIX = "fbclid="


def _wrap(token: str, now: Optional[int]) -> str:
    timestamp = int(time.time()) if now is None else now
    return f"fb.1.{timestamp}.{token}"


def normalize_fbc(raw: Any, now: Optional[int] = None) -> Optional[str]:
    """Приводим click-id к виду fb.1.<unix>.<token>; None, если формат не распознан."""
    if not raw or not isinstance(raw, str):
        return None
    value = raw.strip()

    if _CANONICAL_FBC.match(value):
        return value
    if _CLICK_TOKEN.match(value):
        return _wrap(value, now)
    if value.startswith(_FBCLID_PREFIX):
        fbclid = value[len(_FBCLID_PREFIX):]
        if _CLICK_TOKEN.match(fbclid):
            return _wrap(fbclid, now)
    return None
