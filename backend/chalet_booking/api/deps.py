from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status

from chalet_booking.core.config import get_settings
from chalet_booking.core.messages import normalize_language
from chalet_booking.services.booking_widget_service import BookingWidgetService, WidgetSession
from chalet_booking.services.search_service import ChaletSearchService
from chalet_booking.session.store import KeyValueStore, get_session_store


def get_booking_service() -> BookingWidgetService:  # pragma: no cover - переопределяется в main
    raise RuntimeError("Booking service dependency is not configured")


def get_search_service() -> ChaletSearchService:  # pragma: no cover - переопределяется в main
    raise RuntimeError("Search service dependency is not configured")


def get_language(accept_language: str | None = Header(default=None)) -> str:
    return normalize_language(accept_language, default=get_settings().default_language)


def get_session(
    x_session_id: str = Header(..., alias="X-Session-Id"),
    store: KeyValueStore = Depends(get_session_store),
    language: str = Depends(get_language),
) -> WidgetSession:
    session_id = x_session_id.strip()
    if not session_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="X-Session-Id is required")
    return WidgetSession(session_id=session_id, store=store.scoped(session_id), language=language)


__all__ = [
    "get_booking_service",
    "get_search_service",
    "get_language",
    "get_session",
]
