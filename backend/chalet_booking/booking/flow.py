from __future__ import annotations

import logging
import re

from chalet_booking.booking.dates import (
    is_valid_display_format,
    min_check_out,
    parse_display_date,
    to_iso_format,
    today_iso,
)
from chalet_booking.booking.fsm import (
    Availability,
    BookingDraft,
    BookingStep,
    FlowMessage,
    MessageKind,
    initial_draft,
)
from chalet_booking.booking.models import BookingRequest
from chalet_booking.booking.pricing import StayEstimate, estimate_stay
from chalet_booking.booking.rsr_client import RsrApiClient, RsrApiError
from chalet_booking.core.messages import translate

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^[0-9]{11}$")


class FlowLifetime:
    """Токен жизни запроса: ответ, пришедший после ``cancel()``, игнорируется."""

    def __init__(self) -> None:
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self._active = False


class BookingFlow:
    """Пошаговая форма бронирования: cta -> dates -> phone -> success.

    Каждый метод-переход возвращает ``True``, если переход выполнен. Ошибки
    валидации и сети не выходят за пределы формы: они превращаются в
    ``draft.message`` и ``draft.errors``.
    """

    def __init__(
        self,
        draft: BookingDraft,
        client: RsrApiClient,
        *,
        language: str = "ar",
    ) -> None:
        self._draft = draft
        self._client = client
        self._language = language
        self._lifetime = FlowLifetime()
        self._closed = False

    @property
    def draft(self) -> BookingDraft:
        return self._draft

    @property
    def step(self) -> BookingStep:
        return self._draft.step

    @property
    def closed(self) -> bool:
        return self._closed

    def estimate(self) -> StayEstimate:
        return estimate_stay(
            self._draft.check_in_display,
            self._draft.check_out_display,
            self._draft.price_per_night,
        )

    # ---- переходы -----------------------------------------------------------

    def start(self) -> bool:
        if not self._expect(BookingStep.CTA, "start"):
            return False
        self._draft.step = BookingStep.DATES
        self._touch()
        self._log_transition("start")
        return True

    def set_check_in(self, value: str) -> bool:
        if not self._expect(BookingStep.DATES, "set_check_in"):
            return False
        self._draft.check_in_display = (value or "").strip()
        self._invalidate_dates()
        # выезд раньше нового минимума не остаётся в черновике
        minimum = self._check_out_violation(self._draft.check_out_display)
        if minimum:
            self._draft.check_out_display = ""
            self._draft.errors["check_out"] = self._t("booking.check_out_min", min_date=minimum)
        return True

    def set_check_out(self, value: str) -> bool:
        if not self._expect(BookingStep.DATES, "set_check_out"):
            return False
        value = (value or "").strip()
        self._invalidate_dates()
        minimum = self._check_out_violation(value)
        if minimum:
            self._draft.check_out_display = ""
            self._draft.errors["check_out"] = self._t("booking.check_out_min", min_date=minimum)
            return False
        self._draft.check_out_display = value
        return True

    async def check_availability(self) -> bool:
        if not self._expect(BookingStep.DATES, "check_availability"):
            return False
        if self._draft.loading:
            logger.info("BOOKING_FLOW availability check already in flight ctx=%s", self._draft.compact())
            return False

        draft = self._draft
        draft.errors = {}
        draft.message = None
        check_in = draft.check_in_display
        check_out = draft.check_out_display

        if not check_in or not check_out:
            if not check_in:
                draft.errors["check_in"] = self._t("booking.select_check_in")
            if not check_out:
                draft.errors["check_out"] = self._t("booking.select_check_out")
            self._touch()
            return False

        if not is_valid_display_format(check_in) or not is_valid_display_format(check_out):
            if not is_valid_display_format(check_in):
                draft.errors["check_in"] = self._t("booking.invalid_date_format")
            if not is_valid_display_format(check_out):
                draft.errors["check_out"] = self._t("booking.invalid_date_format")
            self._touch()
            return False

        check_in_iso = to_iso_format(check_in)
        check_out_iso = to_iso_format(check_out)
        if check_in_iso >= check_out_iso:
            text = self._t("booking.check_out_after_check_in")
            draft.errors["dates"] = text
            self._set_message(MessageKind.ERROR, "booking.check_out_after_check_in")
            self._touch()
            return False

        if check_in_iso < today_iso():
            self._set_message(MessageKind.ERROR, "booking.check_in_in_past")
            self._touch()
            return False

        lifetime = self._lifetime
        draft.loading = True
        self._touch()
        logger.info("BOOKING_FLOW availability request ctx=%s", draft.compact())
        try:
            result = await self._client.check_availability(draft.unit_id, check_in_iso, check_out_iso)
        except RsrApiError as exc:
            if not lifetime.active:
                logger.info("BOOKING_FLOW discarding stale availability error: %s", exc)
                return False
            logger.warning("Availability check failed: %s ctx=%s", exc, draft.compact())
            draft.loading = False
            self._set_message(MessageKind.ERROR, "common.error")
            self._touch()
            return False

        if not lifetime.active:
            logger.info("BOOKING_FLOW discarding stale availability result ctx=%s", draft.compact())
            return False

        draft.loading = False
        if result.is_available:
            draft.availability = Availability.AVAILABLE
            draft.step = BookingStep.PHONE
            draft.focus = "phone"
            self._set_message(MessageKind.SUCCESS, "booking.available")
            self._touch()
            self._log_transition("available")
            return True

        draft.availability = Availability.UNAVAILABLE
        self._set_message(MessageKind.ERROR, "booking.not_available")
        self._touch()
        self._log_transition("unavailable")
        return False

    def set_phone(self, value: str) -> bool:
        if not self._expect(BookingStep.PHONE, "set_phone"):
            return False
        self._draft.phone_number = (value or "").strip()
        self._draft.errors.pop("phone", None)
        self._draft.focus = None
        self._touch()
        return True

    def set_terms_accepted(self, accepted: bool) -> bool:
        if not self._expect(BookingStep.PHONE, "set_terms_accepted"):
            return False
        self._draft.terms_accepted = bool(accepted)
        self._draft.errors.pop("terms", None)
        self._touch()
        return True

    async def submit(self) -> bool:
        if not self._expect(BookingStep.PHONE, "submit"):
            return False
        draft = self._draft
        if draft.loading:
            logger.info("BOOKING_FLOW submission already in flight ctx=%s", draft.compact())
            return False

        draft.errors = {}
        draft.focus = None
        if (
            not draft.check_in_display
            or not draft.check_out_display
            or not draft.phone_number
            or draft.availability is not Availability.AVAILABLE
        ):
            self._set_message(MessageKind.ERROR, "booking.fill_all_fields")
            self._touch()
            return False

        if not PHONE_RE.match(draft.phone_number):
            draft.errors["phone"] = self._t("booking.invalid_phone")
            self._set_message(MessageKind.ERROR, "booking.invalid_phone")
            self._touch()
            return False

        if not draft.terms_accepted:
            draft.errors["terms"] = self._t("booking.accept_terms")
            self._set_message(MessageKind.ERROR, "booking.accept_terms")
            self._touch()
            return False

        request = BookingRequest(
            chalet_id=draft.unit_id,
            check_in_date=to_iso_format(draft.check_in_display),
            check_out_date=to_iso_format(draft.check_out_display),
            user_phone_number=draft.phone_number,
        )
        lifetime = self._lifetime
        draft.loading = True
        draft.message = None
        self._touch()
        logger.info("BOOKING_FLOW submitting booking ctx=%s", draft.compact())
        try:
            confirmation = await self._client.create_booking(request)
        except RsrApiError as exc:
            if not lifetime.active:
                logger.info("BOOKING_FLOW discarding stale submission error: %s", exc)
                return False
            logger.warning("Booking submission rejected: %s ctx=%s", exc, draft.compact())
            draft.loading = False
            if exc.message:
                draft.message = FlowMessage(kind=MessageKind.ERROR, text=exc.message)
            else:
                self._set_message(MessageKind.ERROR, "common.error")
            self._touch()
            return False

        if not lifetime.active:
            logger.info("BOOKING_FLOW discarding stale submission result ctx=%s", draft.compact())
            return False

        draft.loading = False
        reference = confirmation.booking_reference or (
            str(confirmation.id) if confirmation.id is not None else ""
        )
        if not reference:
            logger.error("Booking created without reference: %s", confirmation)
            self._set_message(MessageKind.ERROR, "common.error")
            self._touch()
            return False

        draft.booking_reference = reference
        draft.step = BookingStep.SUCCESS
        self._set_message(MessageKind.SUCCESS, "booking.success", reference=reference)
        self._touch()
        self._log_transition("success")
        return True

    def edit_dates(self) -> bool:
        if not self._expect(BookingStep.PHONE, "edit_dates"):
            return False
        self._draft.step = BookingStep.DATES
        self._invalidate_dates()
        self._log_transition("edit_dates")
        return True

    def start_new(self) -> bool:
        if not self._expect(BookingStep.SUCCESS, "start_new"):
            return False
        self._renew_lifetime()
        fresh = initial_draft(self._draft.unit_id, price_per_night=self._draft.price_per_night)
        fresh.revision = self._draft.revision + 1
        self._draft = fresh
        self._log_transition("start_new")
        return True

    def close(self) -> None:
        """Пользователь ушёл со страницы: ответы на текущие запросы больше не применяются."""
        self._lifetime.cancel()
        self._closed = True

    # ---- служебное ----------------------------------------------------------

    def _expect(self, step: BookingStep, action: str) -> bool:
        if self._closed:
            logger.warning("BOOKING_FLOW %s on closed flow ctx=%s", action, self._draft.compact())
            return False
        if self._draft.step is not step:
            logger.info(
                "BOOKING_FLOW rejected %s in step=%s ctx=%s",
                action,
                self._draft.step.value,
                self._draft.compact(),
            )
            return False
        return True

    def _invalidate_dates(self) -> None:
        # старый результат проверки нельзя переносить на новые даты
        self._renew_lifetime()
        draft = self._draft
        draft.availability = Availability.UNKNOWN
        draft.loading = False
        draft.message = None
        draft.errors = {}
        draft.focus = None
        self._touch()

    def _check_out_violation(self, check_out_display: str) -> str:
        """Минимальная дата выезда, если ``check_out_display`` раньше неё, иначе пустая строка."""
        minimum = min_check_out(self._draft.check_in_display)
        candidate = parse_display_date(check_out_display)
        if minimum and candidate is not None and candidate < parse_display_date(minimum):
            return minimum
        return ""

    def _renew_lifetime(self) -> None:
        self._lifetime.cancel()
        self._lifetime = FlowLifetime()

    def _set_message(self, kind: MessageKind, key: str, **params: str) -> None:
        self._draft.message = FlowMessage(kind=kind, text=self._t(key, **params), key=key)

    def _t(self, key: str, **params: str) -> str:
        return translate(key, self._language, **params)

    def _touch(self) -> None:
        self._draft.revision += 1

    def _log_transition(self, trigger: str) -> None:
        logger.info("BOOKING_FLOW %s -> step=%s ctx=%s", trigger, self._draft.step.value, self._draft.compact())


__all__ = ["BookingFlow", "FlowLifetime", "PHONE_RE"]
