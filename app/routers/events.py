from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response

from app.schemas.context import RequestContext
from app.services.client_context import resolve_client_context
from app.services.event_relay import EventRelayService

router = APIRouter(prefix="/api/events", tags=["events"])
relay_service = EventRelayService()


def get_relay_service() -> EventRelayService:
    return relay_service


def get_request_context(request: Request) -> RequestContext:
    remote_address = request.client.host if request.client else None
    return RequestContext(
        client=resolve_client_context(request.headers, remote_address),
        user_agent=request.headers.get("user-agent", ""),
        origin=request.headers.get("origin", ""),
    )


@router.options("")
def preflight() -> Response:
    return Response(status_code=200)


@router.post("")
async def relay_events(
    request: Request,
    context: RequestContext = Depends(get_request_context),
    relay: EventRelayService = Depends(get_relay_service),
) -> Dict[str, Any]:
    # тело передаётся сырым: JSON разбирается уже после проверки лимита
    body = await request.body()
    return await relay.relay(body, context)
