"""Форма поиска шале: проверка ввода и запоминание последних параметров."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from chalet_booking.booking.dates import is_valid_display_format, to_iso_format
from chalet_booking.booking.models import SearchQuery
from chalet_booking.core.messages import translate
from chalet_booking.session.store import KeyValueStore

logger = logging.getLogger(__name__)

CHECK_IN_KEY = "checkIn_display"
CHECK_OUT_KEY = "checkOut_display"
ADULTS_KEY = "adults"
CHILDREN_KEY = "children"


@dataclass(frozen=True)
class SearchParams:
    check_in_display: str = ""
    check_out_display: str = ""
    adults: int = 1
    children: int = 0
    max_price: float | None = None


def _parse_count(raw: str | None, *, minimum: int) -> int | None:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value >= minimum else None


class SearchPreferences:
    """Последние введённые параметры поиска на время сессии браузера."""

    namespace = "search"

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store.scoped(self.namespace)

    async def load(self, defaults: SearchParams | None = None) -> SearchParams:
        defaults = defaults or SearchParams()
        check_in = defaults.check_in_display or await self._store.get(CHECK_IN_KEY) or ""
        check_out = defaults.check_out_display or await self._store.get(CHECK_OUT_KEY) or ""
        adults = _parse_count(await self._store.get(ADULTS_KEY), minimum=1)
        children = _parse_count(await self._store.get(CHILDREN_KEY), minimum=0)
        return replace(
            defaults,
            check_in_display=check_in,
            check_out_display=check_out,
            adults=defaults.adults if adults is None else adults,
            children=defaults.children if children is None else children,
        )

    async def remember(self, params: SearchParams) -> None:
        if params.check_in_display:
            await self._store.set(CHECK_IN_KEY, params.check_in_display)
        if params.check_out_display:
            await self._store.set(CHECK_OUT_KEY, params.check_out_display)
        await self._store.set(ADULTS_KEY, str(params.adults))
        await self._store.set(CHILDREN_KEY, str(params.children))

    async def forget(self) -> None:
        await self._store.clear()


def validate_search(params: SearchParams, language: str = "ar") -> tuple[SearchQuery | None, dict[str, str]]:
    errors: dict[str, str] = {}
    check_in = params.check_in_display
    check_out = params.check_out_display

    if not check_in or not check_out:
        if not check_in:
            errors["check_in"] = translate("booking.select_check_in", language)
        if not check_out:
            errors["check_out"] = translate("booking.select_check_out", language)
        return None, errors

    if not is_valid_display_format(check_in) or not is_valid_display_format(check_out):
        if not is_valid_display_format(check_in):
            errors["check_in"] = translate("booking.invalid_date_format", language)
        if not is_valid_display_format(check_out):
            errors["check_out"] = translate("booking.invalid_date_format", language)
        return None, errors

    check_in_iso = to_iso_format(check_in)
    check_out_iso = to_iso_format(check_out)
    if check_in_iso >= check_out_iso:
        errors["dates"] = translate("booking.check_out_after_check_in", language)
        return None, errors

    if params.adults < 1:
        errors["adults"] = translate("search.adults_min", language)
    if params.children < 0:
        errors["children"] = translate("search.children_min", language)
    if errors:
        return None, errors

    return (
        SearchQuery(
            check_in=check_in_iso,
            check_out=check_out_iso,
            max_price=params.max_price,
            adults=params.adults,
            children=params.children,
        ),
        errors,
    )


__all__ = ["SearchParams", "SearchPreferences", "validate_search"]
