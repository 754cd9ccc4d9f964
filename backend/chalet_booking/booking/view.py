"""Проекция черновика в модель для отрисовки активного шага."""

from __future__ import annotations

from pydantic import BaseModel, Field

from chalet_booking.booking.dates import min_check_out, today_iso, to_display_format
from chalet_booking.booking.fsm import BookingDraft, BookingStep
from chalet_booking.booking.pricing import estimate_stay


class MessageView(BaseModel):
    kind: str
    text: str
    key: str | None = None


class StayEstimateView(BaseModel):
    nights: int
    price_per_night: float = Field(..., alias="pricePerNight")
    total_price: float = Field(..., alias="totalPrice")

    model_config = {"populate_by_name": True}


class BookingView(BaseModel):
    draft_id: str = Field(..., alias="draftId")
    unit_id: int = Field(..., alias="unitId")
    step: str
    check_in: str = Field("", alias="checkIn")
    check_out: str = Field("", alias="checkOut")
    min_check_in: str = Field("", alias="minCheckIn")
    min_check_out: str = Field("", alias="minCheckOut")
    phone_number: str = Field("", alias="phoneNumber")
    terms_accepted: bool = Field(False, alias="termsAccepted")
    availability: str
    loading: bool = False
    can_check_availability: bool = Field(False, alias="canCheckAvailability")
    message: MessageView | None = None
    errors: dict[str, str] = Field(default_factory=dict)
    estimate: StayEstimateView | None = None
    booking_reference: str | None = Field(None, alias="bookingReference")
    focus: str | None = None
    focus_delay_ms: int | None = Field(None, alias="focusDelayMs")

    model_config = {"populate_by_name": True}


def render(draft: BookingDraft, *, draft_id: str, focus_delay_ms: int = 0) -> BookingView:
    message = None
    if draft.message is not None:
        message = MessageView(kind=draft.message.kind.value, text=draft.message.text, key=draft.message.key)

    estimate = None
    if draft.step in (BookingStep.PHONE, BookingStep.SUCCESS):
        stay = estimate_stay(draft.check_in_display, draft.check_out_display, draft.price_per_night)
        estimate = StayEstimateView(
            nights=stay.nights,
            price_per_night=stay.price_per_night,
            total_price=stay.total_price,
        )

    return BookingView(
        draft_id=draft_id,
        unit_id=draft.unit_id,
        step=draft.step.value,
        check_in=draft.check_in_display,
        check_out=draft.check_out_display,
        min_check_in=to_display_format(today_iso()),
        min_check_out=min_check_out(draft.check_in_display),
        phone_number=draft.phone_number,
        terms_accepted=draft.terms_accepted,
        availability=draft.availability.value,
        loading=draft.loading,
        can_check_availability=(
            draft.step is BookingStep.DATES
            and not draft.loading
            and bool(draft.check_in_display)
            and bool(draft.check_out_display)
        ),
        message=message,
        errors=dict(draft.errors),
        estimate=estimate,
        booking_reference=draft.booking_reference or None,
        focus=draft.focus,
        focus_delay_ms=focus_delay_ms if draft.focus else None,
    )


__all__ = ["BookingView", "MessageView", "StayEstimateView", "render"]
