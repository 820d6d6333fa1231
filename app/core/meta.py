from typing import Optional

from httpx import AsyncClient, Timeout

from app.core.config import settings

_client: Optional[AsyncClient] = None
_CONNECT_TIMEOUT_SECONDS = 3.0


def events_path(pixel_id: Optional[str] = None) -> str:
    """Путь Graph API для пакетной отправки событий пикселя."""
    return f"/{settings.meta_api_version}/{pixel_id or settings.meta_pixel_id}/events"


def get_meta_client() -> AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = AsyncClient(
            base_url=settings.meta_graph_url,
            timeout=Timeout(
                settings.meta_timeout_seconds,
                connect=min(_CONNECT_TIMEOUT_SECONDS, settings.meta_timeout_seconds),
            ),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
    return _client


async def close_meta_client() -> None:
    global _client
    if _client and not _client.is_closed:
        await _client.aclose()
    _client = None
