"""Сервисы поверх формы бронирования и каталога шале."""

from .booking_widget_service import BookingWidgetService, DraftNotFoundError, WidgetSession
from .search_service import ChaletSearchService, SearchOutcome

__all__ = [
    "BookingWidgetService",
    "DraftNotFoundError",
    "WidgetSession",
    "ChaletSearchService",
    "SearchOutcome",
]
