from __future__ import annotations

import logging
from typing import AsyncGenerator

import httpx

from chalet_booking.session.store import KeyValueStore

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"


class BearerTokenAuth(httpx.Auth):
    """Подставляет Bearer-токен во все запросы к RSR API.

    Токен берётся из хранилища сессии (ключ ``token``), иначе из настроек.
    Ответ 401 на любой запрос, кроме логина, удаляет сохранённый токен.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        static_token: str | None = None,
    ) -> None:
        self._store = store
        self._static_token = static_token

    async def _resolve_token(self) -> str | None:
        if self._store is not None:
            token = await self._store.get(TOKEN_KEY)
            if token:
                return token
        return self._static_token or None

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self._resolve_token()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

        logger.debug(
            "RSR request %s %s has_auth=%s", request.method, request.url.path, bool(token)
        )
        response = yield request

        if response.status_code == 401 and "/login" not in request.url.path:
            if self._store is not None and token:
                logger.warning("RSR API rejected token for %s, clearing it", request.url.path)
                await self._store.delete(TOKEN_KEY)


__all__ = ["BearerTokenAuth", "TOKEN_KEY"]
