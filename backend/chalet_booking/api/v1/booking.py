from __future__ import annotations

from typing import Awaitable

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, Field

from chalet_booking.api.deps import get_booking_service, get_session
from chalet_booking.booking.fsm import BookingDraft
from chalet_booking.booking.view import BookingView, render
from chalet_booking.services.booking_widget_service import (
    BookingWidgetService,
    DraftBusyError,
    DraftNotFoundError,
    WidgetSession,
)

router = APIRouter(prefix="/booking/drafts")


class OpenDraftRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unit_id: int = Field(..., alias="unitId", ge=1)
    price_per_night: float = Field(0.0, alias="pricePerNight", ge=0)
    initial_check_in: str = Field("", alias="initialCheckIn")
    initial_check_out: str = Field("", alias="initialCheckOut")


class DatesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    check_in: str | None = Field(None, alias="checkIn")
    check_out: str | None = Field(None, alias="checkOut")


class ContactRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone_number: str | None = Field(None, alias="phoneNumber")
    terms_accepted: bool | None = Field(None, alias="termsAccepted")


async def _view(
    service: BookingWidgetService, draft_id: str, pending: Awaitable[BookingDraft]
) -> BookingView:
    try:
        draft = await pending
    except DraftNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking draft not found")
    except DraftBusyError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Booking draft is busy, retry later")
    return render(draft, draft_id=draft_id, focus_delay_ms=service.focus_delay_ms)


@router.post("", response_model=BookingView, status_code=status.HTTP_201_CREATED, response_model_by_alias=True)
async def open_draft(
    payload: OpenDraftRequest,
    session: WidgetSession = Depends(get_session),
    service: BookingWidgetService = Depends(get_booking_service),
) -> BookingView:
    draft_id, draft = await service.open_draft(
        session,
        unit_id=payload.unit_id,
        price_per_night=payload.price_per_night,
        initial_check_in=payload.initial_check_in,
        initial_check_out=payload.initial_check_out,
    )
    return render(draft, draft_id=draft_id, focus_delay_ms=service.focus_delay_ms)


@router.get("/{draft_id}", response_model=BookingView, response_model_by_alias=True)
async def get_draft(
    draft_id: str,
    session: WidgetSession = Depends(get_session),
    service: BookingWidgetService = Depends(get_booking_service),
) -> BookingView:
    return await _view(service, draft_id, service.get_draft(session, draft_id))


@router.delete("/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_draft(
    draft_id: str,
    session: WidgetSession = Depends(get_session),
    service: BookingWidgetService = Depends(get_booking_service),
) -> Response:
    await service.close_draft(session, draft_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{draft_id}/start", response_model=BookingView, response_model_by_alias=True)
async def start_booking(
    draft_id: str,
    session: WidgetSession = Depends(get_session),
    service: BookingWidgetService = Depends(get_booking_service),
) -> BookingView:
    return await _view(service, draft_id, service.start(session, draft_id))


@router.put("/{draft_id}/dates", response_model=BookingView, response_model_by_alias=True)
async def set_dates(
    draft_id: str,
    payload: DatesRequest,
    session: WidgetSession = Depends(get_session),
    service: BookingWidgetService = Depends(get_booking_service),
) -> BookingView:
    return await _view(
        service,
        draft_id,
        service.set_dates(session, draft_id, check_in=payload.check_in, check_out=payload.check_out),
    )


@router.post("/{draft_id}/availability", response_model=BookingView, response_model_by_alias=True)
async def check_availability(
    draft_id: str,
    session: WidgetSession = Depends(get_session),
    service: BookingWidgetService = Depends(get_booking_service),
) -> BookingView:
    return await _view(service, draft_id, service.check_availability(session, draft_id))


@router.put("/{draft_id}/contact", response_model=BookingView, response_model_by_alias=True)
async def set_contact(
    draft_id: str,
    payload: ContactRequest,
    session: WidgetSession = Depends(get_session),
    service: BookingWidgetService = Depends(get_booking_service),
) -> BookingView:
    return await _view(
        service,
        draft_id,
        service.set_contact(
            session,
            draft_id,
            phone_number=payload.phone_number,
            terms_accepted=payload.terms_accepted,
        ),
    )


@router.post("/{draft_id}/submit", response_model=BookingView, response_model_by_alias=True)
async def submit_booking(
    draft_id: str,
    session: WidgetSession = Depends(get_session),
    service: BookingWidgetService = Depends(get_booking_service),
) -> BookingView:
    return await _view(service, draft_id, service.submit(session, draft_id))


@router.post("/{draft_id}/edit-dates", response_model=BookingView, response_model_by_alias=True)
async def edit_dates(
    draft_id: str,
    session: WidgetSession = Depends(get_session),
    service: BookingWidgetService = Depends(get_booking_service),
) -> BookingView:
    return await _view(service, draft_id, service.edit_dates(session, draft_id))


@router.post("/{draft_id}/new", response_model=BookingView, response_model_by_alias=True)
async def start_new_booking(
    draft_id: str,
    session: WidgetSession = Depends(get_session),
    service: BookingWidgetService = Depends(get_booking_service),
) -> BookingView:
    return await _view(service, draft_id, service.start_new(session, draft_id))


__all__ = ["router"]
