import gzip
import json
import logging
from typing import Any, Dict, Sequence

from httpx import AsyncClient, RequestError, Response, TimeoutException

from app.core.config import settings
from app.core.errors import UpstreamError, UpstreamTimeoutError
from app.core.meta import events_path, get_meta_client

logger = logging.getLogger(__name__)


def _response_details(response: Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class ConversionsRepository:
    """Отправка пачки событий в Meta Conversions API одним запросом."""

    def __init__(self, client_provider=get_meta_client):
        self.client_provider = client_provider

    def _encode(self, events: Sequence[Dict[str, Any]]) -> tuple[bytes, Dict[str, str]]:
        payload: Dict[str, Any] = {"data": list(events)}
        if settings.meta_test_event_code:
            payload["test_event_code"] = settings.meta_test_event_code

        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if len(body) > settings.compression_threshold_bytes:
            body = gzip.compress(body)
            headers["Content-Encoding"] = "gzip"
        return body, headers

    async def send_batch(self, events: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
        client: AsyncClient = self.client_provider()
        body, headers = self._encode(events)

        try:
            response = await client.post(
                events_path(),
                params={"access_token": settings.meta_access_token},
                content=body,
                headers=headers,
            )
        except TimeoutException as exc:
            logger.warning("Conversions API timed out (%d events)", len(events))
            raise UpstreamTimeoutError() from exc
        except RequestError as exc:
            logger.warning("Conversions API request failed: %s", exc)
            raise UpstreamError(details=str(exc)) from exc

        details = _response_details(response)
        if not response.is_success:
            logger.warning("Conversions API returned %s: %s", response.status_code, details)
            raise UpstreamError(status_code=response.status_code, details=details)
        if not isinstance(details, dict):
            details = {"response": details}
        return details
