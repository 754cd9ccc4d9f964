from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable

import redis.asyncio as redis
from redis.exceptions import LockError

from chalet_booking.booking.auth import BearerTokenAuth
from chalet_booking.booking.dates import to_display_format
from chalet_booking.booking.flow import BookingFlow
from chalet_booking.booking.fsm import BookingDraft, BookingStep, initial_draft
from chalet_booking.booking.rsr_client import RsrApiClient
from chalet_booking.core.config import Settings, get_settings
from chalet_booking.session.draft_store import BookingDraftStore
from chalet_booking.session.store import KeyValueStore

logger = logging.getLogger(__name__)


class DraftNotFoundError(LookupError):
    """Черновик не найден: истёк TTL или пользователь ушёл со страницы."""


class DraftBusyError(RuntimeError):
    """Черновик занят запросом в другом процессе дольше допустимого ожидания."""


@dataclass(frozen=True)
class WidgetSession:
    session_id: str
    store: KeyValueStore
    language: str = "ar"


class BookingWidgetService:
    """Сервис для управления черновиками бронирования поверх BookingFlow.

    Действия над одним черновиком выполняются строго по очереди (повторное
    нажатие ждёт окончания первого запроса и упирается в защиту шага).
    С ``lock_client`` очередь общая для всех процессов: она держится на
    блокировке Redis (SET NX с истечением).
    """

    lock_prefix = "rsr:lock:draft:"

    def __init__(
        self,
        client: RsrApiClient,
        *,
        settings: Settings | None = None,
        lock_client: redis.Redis | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or get_settings()
        self._lock_client = lock_client
        # блокировка переживает самый долгий запрос к RSR API
        self._lock_timeout = float(self._settings.rsr_api_timeout) + 10.0
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self._flows: dict[str, BookingFlow] = {}

    @property
    def focus_delay_ms(self) -> int:
        return self._settings.phone_focus_delay_ms

    async def open_draft(
        self,
        ctx: WidgetSession,
        *,
        unit_id: int,
        price_per_night: float = 0.0,
        initial_check_in: str = "",
        initial_check_out: str = "",
    ) -> tuple[str, BookingDraft]:
        """Открывает новый черновик; начальные даты приходят в ISO (например, из поиска)."""
        draft_id = uuid.uuid4().hex
        draft = initial_draft(
            unit_id,
            price_per_night=price_per_night,
            check_in_display=to_display_format(initial_check_in),
            check_out_display=to_display_format(initial_check_out),
        )
        await BookingDraftStore(ctx.store).save(draft_id, draft)
        logger.info("Opened booking draft %s for unit %s", draft_id, unit_id)
        return draft_id, draft

    async def get_draft(self, ctx: WidgetSession, draft_id: str) -> BookingDraft:
        draft = await BookingDraftStore(ctx.store).load(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        return draft

    async def start(self, ctx: WidgetSession, draft_id: str) -> BookingDraft:
        return await self._run(ctx, draft_id, lambda flow: flow.start())

    async def set_dates(
        self,
        ctx: WidgetSession,
        draft_id: str,
        *,
        check_in: str | None = None,
        check_out: str | None = None,
    ) -> BookingDraft:
        def apply(flow: BookingFlow) -> bool:
            applied = True
            if check_in is not None:
                applied = flow.set_check_in(check_in)
            if applied and check_out is not None:
                applied = flow.set_check_out(check_out)
            return applied

        return await self._run(ctx, draft_id, apply)

    async def check_availability(self, ctx: WidgetSession, draft_id: str) -> BookingDraft:
        return await self._run(ctx, draft_id, lambda flow: flow.check_availability())

    async def set_contact(
        self,
        ctx: WidgetSession,
        draft_id: str,
        *,
        phone_number: str | None = None,
        terms_accepted: bool | None = None,
    ) -> BookingDraft:
        def apply(flow: BookingFlow) -> bool:
            applied = True
            if phone_number is not None:
                applied = flow.set_phone(phone_number)
            if applied and terms_accepted is not None:
                applied = flow.set_terms_accepted(terms_accepted)
            return applied

        return await self._run(ctx, draft_id, apply)

    async def submit(self, ctx: WidgetSession, draft_id: str) -> BookingDraft:
        return await self._run(ctx, draft_id, lambda flow: flow.submit())

    async def edit_dates(self, ctx: WidgetSession, draft_id: str) -> BookingDraft:
        return await self._run(ctx, draft_id, lambda flow: flow.edit_dates())

    async def start_new(self, ctx: WidgetSession, draft_id: str) -> BookingDraft:
        return await self._run(ctx, draft_id, lambda flow: flow.start_new())

    async def close_draft(self, ctx: WidgetSession, draft_id: str) -> None:
        """Уход со страницы: запрос в полёте отбрасывается, черновик удаляется."""
        flow = self._flows.get(self._key(ctx, draft_id))
        if flow is not None:
            flow.close()
        await BookingDraftStore(ctx.store).delete(draft_id)
        logger.info("Closed booking draft %s", draft_id)

    async def _run(
        self,
        ctx: WidgetSession,
        draft_id: str,
        operation: Callable[[BookingFlow], bool | Awaitable[bool]],
    ) -> BookingDraft:
        key = self._key(ctx, draft_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock

        async with lock, self._shared_lock(key, draft_id):
            drafts = BookingDraftStore(ctx.store)
            draft = await drafts.load(draft_id)
            if draft is None:
                raise DraftNotFoundError(draft_id)
            loaded_revision = draft.revision

            auth = BearerTokenAuth(ctx.store, static_token=self._settings.rsr_api_token)
            flow = BookingFlow(draft, self._client.with_auth(auth), language=ctx.language)
            self._flows[key] = flow
            try:
                outcome: Any = operation(flow)
                if inspect.isawaitable(outcome):
                    await outcome
            finally:
                if self._flows.get(key) is flow:
                    del self._flows[key]

            if flow.closed:
                logger.info("Draft %s was closed while a request was in flight", draft_id)
                raise DraftNotFoundError(draft_id)

            # черновик могли изменить или удалить в другом процессе, пока шёл запрос
            stored = await drafts.load(draft_id)
            if stored is None:
                raise DraftNotFoundError(draft_id)
            if stored.revision != loaded_revision:
                logger.warning(
                    "Dropping stale result for draft %s (revision %s, stored %s)",
                    draft_id,
                    loaded_revision,
                    stored.revision,
                )
                if flow.draft.step is BookingStep.SUCCESS and flow.draft.booking_reference:
                    logger.error(
                        "Confirmed booking %s for draft %s was not saved, stored revision moved on",
                        flow.draft.booking_reference,
                        draft_id,
                    )
                return stored

            await drafts.save(draft_id, flow.draft)
            return flow.draft

    @asynccontextmanager
    async def _shared_lock(self, key: str, draft_id: str) -> AsyncIterator[None]:
        if self._lock_client is None:
            yield
            return

        shared = self._lock_client.lock(
            f"{self.lock_prefix}{key}",
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_timeout,
        )
        if not await shared.acquire():
            logger.warning("Draft %s is still locked by another worker", draft_id)
            raise DraftBusyError(draft_id)
        try:
            yield
        finally:
            try:
                await shared.release()
            except LockError as exc:
                logger.warning("Lock for draft %s expired before release: %s", draft_id, exc)

    @staticmethod
    def _key(ctx: WidgetSession, draft_id: str) -> str:
        return f"{ctx.session_id}:{draft_id}"


__all__ = ["BookingWidgetService", "DraftBusyError", "DraftNotFoundError", "WidgetSession"]
