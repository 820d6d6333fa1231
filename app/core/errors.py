from typing import Any, Optional

from fastapi import HTTPException, status


class RelayError(HTTPException):
    """Базовая ошибка релея; FastAPI отдаёт её как {"detail": ...}."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: Any = "Internal relay error"

    def __init__(self, detail: Any = None, status_code: Optional[int] = None):
        super().__init__(
            status_code=status_code or self.status_code,
            detail=detail if detail is not None else self.default_detail,
        )


class ValidationError(RelayError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid payload: 'data' field is required"


class RateLimitError(RelayError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Rate limit exceeded"


class UpstreamTimeoutError(RelayError):
    # доставка могла состояться, event_id уже записан в кеш дедупликации
    status_code = status.HTTP_408_REQUEST_TIMEOUT
    default_detail = "Conversions API timeout"


class UpstreamError(RelayError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Conversions API error"

    def __init__(self, status_code: Optional[int] = None, details: Any = None):
        super().__init__(
            detail={"error": self.default_detail, "details": details},
            status_code=status_code,
        )


class InternalError(RelayError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal relay error"
