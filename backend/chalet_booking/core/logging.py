from __future__ import annotations

import logging

from chalet_booking.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> None:
    """Настраивает корневой логгер один раз на процесс."""
    global _configured
    if _configured:
        return

    resolved = (level or get_settings().log_level or "INFO").upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    # httpx пишет каждый запрос на INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True


__all__ = ["setup_logging", "LOG_FORMAT"]
