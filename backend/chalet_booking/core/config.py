from __future__ import annotations

import json
import re
from functools import lru_cache
from typing import Iterable, Literal

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _iter_plain_origins(raw: str) -> Iterable[str]:
    for part in re.split(r"[,\s]+", raw):
        part = part.strip().strip('"').strip("'")
        if part:
            yield part


def parse_allowed_origins(raw: str | None) -> tuple[str, ...]:
    """Преобразует ALLOWED_ORIGINS в кортеж доменов."""

    if not raw:
        return ("*",)

    raw = raw.strip()
    if raw == "*":
        return ("*",)

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        parsed = None

    if isinstance(parsed, str):
        parsed = parsed.strip()
        return (parsed,) if parsed else ("*",)

    if isinstance(parsed, (list, tuple, set)):
        values = tuple(str(item).strip() for item in parsed if str(item).strip())
        return values or ("*",)

    values = tuple(_iter_plain_origins(raw))
    return values or ("*",)


class Settings(BaseSettings):
    """Конфигурация приложения на основе переменных окружения."""

    rsr_api_url: AnyHttpUrl = Field("http://localhost:5266/api", alias="RSR_API_URL")
    rsr_api_token: str | None = Field(None, alias="RSR_API_TOKEN")
    rsr_api_timeout: float = Field(
        120.0,
        alias="RSR_API_TIMEOUT",
        description="Таймаут HTTP-запросов к RSR API (секунды)",
    )
    catalog_retry_attempts: int = Field(3, alias="CATALOG_RETRY_ATTEMPTS")

    redis_url: str = Field("redis://127.0.0.1:6379/0", alias="REDIS_URL")
    session_ttl_seconds: int = Field(259_200, alias="SESSION_TTL_SECONDS")
    use_redis_state_store: bool = Field(
        False,
        alias="USE_REDIS_STATE_STORE",
        description="Хранить черновики бронирования и параметры поиска в Redis (вместо in-memory)",
    )

    default_language: Literal["ar", "en"] = Field("ar", alias="DEFAULT_LANGUAGE")
    phone_focus_delay_ms: int = Field(
        100,
        alias="PHONE_FOCUS_DELAY_MS",
        description="Задержка перед фокусом на поле телефона после успешной проверки дат",
    )

    app_env: Literal["dev", "prod", "test"] = Field("dev", alias="APP_ENV")
    api_prefix: str = "/v1"
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    allowed_origins_raw: str | None = Field(None, alias="ALLOWED_ORIGINS")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    @property
    def api_base_url(self) -> str:
        return str(self.rsr_api_url).rstrip("/")

    @property
    def allowed_origins(self) -> tuple[str, ...]:
        return parse_allowed_origins(self.allowed_origins_raw)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings", "parse_allowed_origins"]
