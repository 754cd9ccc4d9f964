"""Преобразования между датами для экрана (DD/MM/YYYY) и для API (YYYY-MM-DD).

Функции модуля никогда не бросают исключений: некорректный ввод даёт пустую
строку, ``None`` или ``False``. Показ ошибок пользователю остаётся за вызывающим кодом.
"""

from __future__ import annotations

import re
from datetime import date, timedelta

DISPLAY_DATE_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")


def today_iso() -> str:
    return date.today().isoformat()


def to_display_format(iso_date: str) -> str:
    """YYYY-MM-DD -> DD/MM/YYYY. Вход считается корректным."""
    if not iso_date:
        return ""
    year, _, rest = iso_date.partition("-")
    month, _, day = rest.partition("-")
    return f"{day}/{month}/{year}"


def to_iso_format(display_date: str) -> str:
    """DD/MM/YYYY -> YYYY-MM-DD простой перестановкой частей, без проверки календаря."""
    if not display_date:
        return ""
    parts = display_date.split("/")
    if len(parts) < 3:
        return ""
    day, month, year = parts[0], parts[1], parts[2]
    if not day or not month or not year:
        return ""
    return f"{year}-{month}-{day}"


def parse_display_date(display_date: str) -> date | None:
    if not isinstance(display_date, str):
        return None
    match = DISPLAY_DATE_RE.match(display_date)
    if not match:
        return None
    day, month, year = (int(group) for group in match.groups())
    try:
        parsed = date(year, month, day)
    except ValueError:
        return None
    # сверяем год/месяц/день после конструктора, как при round-trip через Date
    if (parsed.year, parsed.month, parsed.day) != (year, month, day):
        return None
    return parsed


def is_valid_display_format(value: str) -> bool:
    return parse_display_date(value) is not None


def min_check_out(check_in_display: str) -> str:
    """Минимальная дата выезда: заезд + 1 день. Пустая строка, если заезд некорректен."""
    check_in = parse_display_date(check_in_display)
    if check_in is None:
        return ""
    return (check_in + timedelta(days=1)).strftime("%d/%m/%Y")


__all__ = [
    "DISPLAY_DATE_RE",
    "today_iso",
    "to_display_format",
    "to_iso_format",
    "parse_display_date",
    "is_valid_display_format",
    "min_check_out",
]
