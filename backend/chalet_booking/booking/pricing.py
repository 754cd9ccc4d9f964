from __future__ import annotations

import math
from dataclasses import dataclass

from chalet_booking.booking.dates import parse_display_date


@dataclass(frozen=True)
class StayEstimate:
    """Ориентировочная стоимость для отображения.

    Не является источником истины: итоговую цену считает RSR API при создании
    брони, и в запрос на бронирование эти значения не передаются.
    """

    nights: int
    price_per_night: float
    total_price: float


def calculate_nights(check_in_display: str, check_out_display: str) -> int:
    check_in = parse_display_date(check_in_display)
    check_out = parse_display_date(check_out_display)
    if check_in is None or check_out is None:
        return 0
    nights = math.ceil((check_out - check_in).total_seconds() / 86_400)
    return nights if nights > 0 else 0


def estimate_stay(
    check_in_display: str, check_out_display: str, price_per_night: float
) -> StayEstimate:
    nights = calculate_nights(check_in_display, check_out_display)
    rate = float(price_per_night or 0)
    return StayEstimate(nights=nights, price_per_night=rate, total_price=nights * rate)


__all__ = ["StayEstimate", "calculate_nights", "estimate_stay"]
