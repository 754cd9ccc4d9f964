from __future__ import annotations

import copy
import logging
from typing import Any

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from chalet_booking.booking.auth import BearerTokenAuth
from chalet_booking.booking.models import (
    AvailabilityResult,
    BookingConfirmation,
    BookingRequest,
    Chalet,
    SearchQuery,
)
from chalet_booking.core.config import get_settings

logger = logging.getLogger(__name__)

AVAILABILITY_PATH = "/bookings/available"
BOOKINGS_PATH = "/bookings"
CHALETS_PATH = "/chalets"


class RsrApiError(RuntimeError):
    """Базовая ошибка взаимодействия с RSR API."""

    def __init__(self, detail: str, *, status_code: int | None = None, message: str | None = None) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.message = message


class RsrUnavailableError(RsrApiError):
    """Сеть недоступна, истёк таймаут или сервер вернул неразборчивый ответ."""


class RsrRequestError(RsrApiError):
    """Сервер ответил статусом не 2xx; ``message`` содержит текст из тела ответа, если он есть."""


class RsrApiClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        auth: httpx.Auth | None = None,
        client: httpx.AsyncClient | None = None,
        retry_attempts: int | None = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout or settings.rsr_api_timeout,
        )
        self._auth = auth or BearerTokenAuth(static_token=settings.rsr_api_token)
        self._retry_attempts = retry_attempts or settings.catalog_retry_attempts
        self._retry_wait = retry_wait or wait_exponential(multiplier=0.5, min=0.5, max=4)

    def with_auth(self, auth: httpx.Auth) -> RsrApiClient:
        """Копия клиента с другим auth поверх того же соединения."""
        clone = copy.copy(self)
        clone._auth = auth
        return clone

    async def close(self) -> None:
        await self._client.aclose()

    # ---- бронирование: одна попытка, без повторов ---------------------------

    async def check_availability(
        self, unit_id: int, check_in_iso: str, check_out_iso: str
    ) -> AvailabilityResult:
        data = await self._request(
            "GET",
            AVAILABILITY_PATH,
            params={
                "chaletId": unit_id,
                "checkInDate": check_in_iso,
                "checkOutDate": check_out_iso,
            },
        )
        try:
            return AvailabilityResult.model_validate(data)
        except ValidationError as exc:
            raise RsrUnavailableError(f"Unexpected availability payload: {data!r}") from exc

    async def create_booking(self, booking: BookingRequest) -> BookingConfirmation:
        data = await self._request("POST", BOOKINGS_PATH, json=booking.to_payload())
        try:
            return BookingConfirmation.model_validate(data)
        except ValidationError as exc:
            raise RsrUnavailableError(f"Unexpected booking payload: {data!r}") from exc

    # ---- каталог шале: идемпотентные чтения с повторами ----------------------

    async def list_chalets(self, query: SearchQuery | None = None) -> list[Chalet]:
        params = query.to_params() if query else {}
        data = await self._get_with_retry(CHALETS_PATH, params=params)
        items = data.get("data")
        if not isinstance(items, list):
            # постраничный ответ PagedResult
            items = data.get("Items") if isinstance(data.get("Items"), list) else []
        chalets: list[Chalet] = []
        for item in items:
            try:
                chalets.append(Chalet.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed chalet payload: %s", item)
        return chalets

    async def get_chalet(self, chalet_id: int) -> Chalet:
        data = await self._get_with_retry(f"{CHALETS_PATH}/{chalet_id}")
        try:
            return Chalet.model_validate(data)
        except ValidationError as exc:
            raise RsrUnavailableError(f"Unexpected chalet payload: {data!r}") from exc

    async def _get_with_retry(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        async for attempt in AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self._retry_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type(RsrUnavailableError),
        ):
            with attempt:
                return await self._request("GET", path, params=params)
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(
                method, path, params=params, json=json, auth=self._auth
            )
        except httpx.HTTPError as exc:
            logger.error("RSR API %s %s failed: %s", method, path, exc)
            raise RsrUnavailableError(str(exc)) from exc

        if response.is_error:
            payload = self._safe_json(response)
            message = payload.get("message") if isinstance(payload.get("message"), str) else None
            logger.error(
                "RSR API HTTP %s at %s %s: %s",
                response.status_code,
                method,
                path,
                response.text,
            )
            error_cls = RsrUnavailableError if response.status_code >= 500 else RsrRequestError
            raise error_cls(
                f"HTTP_{response.status_code}",
                status_code=response.status_code,
                message=message or None,
            )

        logger.debug("RSR API %s %s -> %s", method, path, response.status_code)
        return self._safe_json(response)

    @staticmethod
    def _safe_json(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {}
        if isinstance(payload, dict):
            return payload
        if isinstance(payload, list):
            return {"data": payload}
        return {}


__all__ = [
    "RsrApiClient",
    "RsrApiError",
    "RsrUnavailableError",
    "RsrRequestError",
]
