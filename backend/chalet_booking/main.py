from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chalet_booking.api import deps
from chalet_booking.api.v1 import admin, booking, search
from chalet_booking.booking.rsr_client import RsrApiClient
from chalet_booking.core.config import get_settings
from chalet_booking.core.logging import setup_logging
from chalet_booking.services.booking_widget_service import BookingWidgetService
from chalet_booking.services.search_service import ChaletSearchService
from chalet_booking.session.redis_client import close_redis_client, get_redis_client
from chalet_booking.session.store import get_session_store

logger = logging.getLogger(__name__)

settings = get_settings()
setup_logging()

rsr_client = RsrApiClient()
booking_service = BookingWidgetService(
    rsr_client,
    settings=settings,
    lock_client=get_redis_client() if settings.use_redis_state_store else None,
)
search_service = ChaletSearchService(rsr_client)


async def lifespan(app: FastAPI):
    logger.info("RSR API base URL: %s (env=%s)", settings.api_base_url, settings.app_env)
    if await get_session_store().ping():
        logger.info("Session store ready")
    else:
        logger.warning("Session store ping failed, drafts will not be saved until it recovers")
    try:
        yield
    finally:
        await rsr_client.close()
        if settings.use_redis_state_store:
            await close_redis_client()
            logger.info("Redis session store closed")


def create_app() -> FastAPI:
    app = FastAPI(title="RSR Booking Widget API", lifespan=lifespan)
    api_prefix = settings.api_prefix

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.dependency_overrides[deps.get_booking_service] = lambda: booking_service
    app.dependency_overrides[deps.get_search_service] = lambda: search_service

    app.include_router(booking.router, prefix=api_prefix)
    app.include_router(search.router, prefix=api_prefix)
    app.include_router(admin.router, prefix=api_prefix)
    return app


app = create_app()
