import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from app.core.config import settings
from app.core.cors import RelayCORSMiddleware
from app.core.meta import close_meta_client
from app.core.tasks import start_cache_cleanup
from app.routers import events as events_router
from app.services.event_relay import EventRelayService


@asynccontextmanager
async def lifespan(app: FastAPI):
    relay = events_router.relay_service
    start_cache_cleanup(
        dedup_cache=relay.dedup_cache,
        rate_limiter=relay.rate_limiter,
        interval_seconds=settings.cache_cleanup_interval_seconds,
    )
    try:
        yield
    finally:
        await close_meta_client()


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    application = FastAPI(title="Conversions Relay API", lifespan=lifespan)
    application.add_middleware(
        RelayCORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        allow_credentials=True,
    )
    application.include_router(events_router.router)

    @application.get("/health")
    def health_check(relay: EventRelayService = Depends(events_router.get_relay_service)):
        return {
            "status": "healthy",
            "environment": settings.environment,
            "dedup_cache_size": len(relay.dedup_cache),
            "tracked_addresses": len(relay.rate_limiter),
        }

    return application


app = create_app()
