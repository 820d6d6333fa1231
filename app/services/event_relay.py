import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple

from pydantic import ValidationError as SchemaValidationError

from app.core.config import settings
from app.core.errors import InternalError, RateLimitError, RelayError, ValidationError
from app.repositories.conversions_repository import ConversionsRepository
from app.schemas.context import RequestContext
from app.schemas.events import (
    AllDuplicatesResponse,
    ConversionEvent,
    DeduplicationSummary,
    EventBatch,
    EventIn,
    IpInfo,
    UserDataOut,
)
from app.services.dedup import DeduplicationCache
from app.services.fbc import normalize_fbc
from app.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

MISSING_EVENT_ID = "event_id is required for browser and server deduplication"


@dataclass
class AdmissionResult:
    forwarded: List[ConversionEvent] = field(default_factory=list)
    blocked: int = 0
    original_count: int = 0


class EventRelayService:
    """Приём пачки событий: rate limit -> валидация -> дедупликация -> обогащение -> отправка."""

    def __init__(
        self,
        repository: ConversionsRepository | None = None,
        dedup_cache: DeduplicationCache | None = None,
        rate_limiter: RateLimiter | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.repository = repository or ConversionsRepository()
        if dedup_cache is None:
            dedup_cache = DeduplicationCache(
                ttl_seconds=settings.dedup_ttl_seconds,
                max_size=settings.dedup_max_size,
            )
        if rate_limiter is None:
            rate_limiter = RateLimiter(
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
                max_addresses=settings.rate_limit_max_addresses,
            )
        self.dedup_cache = dedup_cache
        self.rate_limiter = rate_limiter
        self.clock = clock

    def check_rate_limit(self, context: RequestContext) -> None:
        if not self.rate_limiter.allow(context.client.address):
            raise RateLimitError()

    def decode_payload(self, payload: Any) -> Any:
        if not isinstance(payload, (bytes, str)):
            return payload
        if not payload:
            return None
        try:
            return json.loads(payload)
        except (ValueError, RecursionError) as exc:
            raise ValidationError("Request body must be valid JSON") from exc

    def validate_batch(self, payload: Any) -> List[EventIn]:
        """Пачка принимается или отклоняется целиком, до любых изменений кеша."""
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list) or not payload["data"]:
            raise ValidationError()

        for raw_event in payload["data"]:
            if not isinstance(raw_event, dict):
                raise ValidationError("Each event must be an object")
            event_id = raw_event.get("event_id")
            if not event_id or not isinstance(event_id, str):
                raise ValidationError(MISSING_EVENT_ID)

        try:
            batch = EventBatch.model_validate(payload)
        except SchemaValidationError as exc:
            raise ValidationError(
                {
                    "error": "Invalid event payload",
                    "fields": [".".join(str(part) for part in err["loc"]) for err in exc.errors()],
                }
            ) from exc
        return batch.data

    def filter_duplicates(self, events: List[EventIn]) -> Tuple[List[EventIn], int]:
        fresh = [event for event in events if not self.dedup_cache.is_duplicate(event.event_id)]
        return fresh, len(events) - len(fresh)

    def enrich(self, event: EventIn, context: RequestContext, now: int) -> ConversionEvent:
        user_data = event.user_data
        enriched_user = UserDataOut(
            client_ip_address=context.client.address,
            client_user_agent=context.user_agent,
        )
        if user_data is not None:
            if user_data.external_id:
                enriched_user.external_id = user_data.external_id
            if user_data.fbp:
                enriched_user.fbp = user_data.fbp
            if user_data.fbc:
                enriched_user.fbc = normalize_fbc(user_data.fbc, now=now)
            if user_data.country:
                country = user_data.country
                enriched_user.country = country.lower() if isinstance(country, str) else country

        return ConversionEvent(
            event_name=event.event_name or settings.default_event_name,
            event_id=event.event_id,
            event_time=event.event_time or now,
            event_source_url=event.event_source_url or context.origin,
            action_source=event.action_source or settings.default_action_source,
            custom_data=event.custom_data or {},
            user_data=enriched_user,
        )

    def admit(self, payload: Any, context: RequestContext) -> AdmissionResult:
        self.check_rate_limit(context)
        events = self.validate_batch(self.decode_payload(payload))
        fresh, blocked = self.filter_duplicates(events)

        now = int(self.clock())
        forwarded = [self.enrich(event, context, now) for event in fresh]
        return AdmissionResult(forwarded=forwarded, blocked=blocked, original_count=len(events))

    async def relay(self, payload: Any, context: RequestContext) -> Dict[str, Any]:
        try:
            result = self.admit(payload, context)
            if not result.forwarded:
                logger.info("All %d events were duplicates, nothing forwarded", result.original_count)
                return AllDuplicatesResponse(blocked=result.blocked, cache=len(self.dedup_cache)).model_dump()

            response = await self.repository.send_batch([event.to_payload() for event in result.forwarded])
        except RelayError:
            raise
        except Exception as exc:
            logger.exception("Unexpected failure while relaying events")
            raise InternalError() from exc

        logger.info(
            "Forwarded %d of %d events from %s (%d duplicates blocked)",
            len(result.forwarded),
            result.original_count,
            context.client.address,
            result.blocked,
        )
        return {
            **response,
            "deduplication": DeduplicationSummary(
                original=result.original_count,
                processed=len(result.forwarded),
                blocked=result.blocked,
            ).model_dump(),
            "ip_info": IpInfo(ip=context.client.address, type=context.client.family.value).model_dump(),
        }
