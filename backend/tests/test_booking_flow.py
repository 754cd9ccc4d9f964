import asyncio
import sys
from datetime import date
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from chalet_booking.booking.flow import BookingFlow
from chalet_booking.booking.fsm import Availability, BookingStep, MessageKind, initial_draft
from chalet_booking.booking.models import AvailabilityResult, BookingConfirmation, BookingRequest
from chalet_booking.booking.rsr_client import RsrRequestError, RsrUnavailableError
from chalet_booking.core.messages import translate


class DummyRsrClient:
    def __init__(
        self,
        *,
        available: bool = True,
        reference: str = "RSR-1001",
        availability_error: Exception | None = None,
        booking_error: Exception | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.available = available
        self.reference = reference
        self.availability_error = availability_error
        self.booking_error = booking_error
        self.gate = gate
        self.availability_calls: list[tuple[int, str, str]] = []
        self.booking_calls: list[BookingRequest] = []

    def with_auth(self, auth):
        return self

    async def check_availability(self, unit_id: int, check_in_iso: str, check_out_iso: str):
        self.availability_calls.append((unit_id, check_in_iso, check_out_iso))
        if self.gate is not None:
            await self.gate.wait()
        if self.availability_error is not None:
            raise self.availability_error
        return AvailabilityResult(is_available=self.available)

    async def create_booking(self, booking: BookingRequest):
        self.booking_calls.append(booking)
        if self.gate is not None:
            await self.gate.wait()
        if self.booking_error is not None:
            raise self.booking_error
        return BookingConfirmation(booking_reference=self.reference)


@pytest.fixture(autouse=True)
def fixed_today(monkeypatch):
    today = date(2025, 6, 1)

    class FixedDate(date):
        @classmethod
        def today(cls):  # noqa: D401
            return today

    monkeypatch.setattr("chalet_booking.booking.dates.date", FixedDate)
    return today


def make_flow(client: DummyRsrClient, language: str = "en", **draft_kwargs) -> BookingFlow:
    draft = initial_draft(42, price_per_night=1000, **draft_kwargs)
    return BookingFlow(draft, client, language=language)  # type: ignore[arg-type]


def to_phone_step(flow: BookingFlow) -> None:
    assert flow.start()
    assert flow.set_check_in("10/06/2025")
    assert flow.set_check_out("12/06/2025")
    assert asyncio.run(flow.check_availability())
    assert flow.step is BookingStep.PHONE


def test_end_to_end_successful_booking():
    client = DummyRsrClient(available=True, reference="RSR-1001")
    flow = make_flow(client)
    assert flow.step is BookingStep.CTA

    assert flow.start()
    assert flow.step is BookingStep.DATES

    flow.set_check_in("10/06/2025")
    flow.set_check_out("12/06/2025")
    assert asyncio.run(flow.check_availability())
    assert flow.step is BookingStep.PHONE
    assert flow.draft.availability is Availability.AVAILABLE
    assert flow.draft.focus == "phone"
    assert client.availability_calls == [(42, "2025-06-10", "2025-06-12")]

    flow.set_phone("01012345678")
    flow.set_terms_accepted(True)
    assert asyncio.run(flow.submit())

    assert flow.step is BookingStep.SUCCESS
    assert flow.draft.booking_reference == "RSR-1001"
    assert flow.draft.message.kind is MessageKind.SUCCESS
    assert "RSR-1001" in flow.draft.message.text
    request = client.booking_calls[0]
    assert request.to_payload() == {
        "ChaletId": 42,
        "CheckInDate": "2025-06-10",
        "CheckOutDate": "2025-06-12",
        "UserPhoneNumber": "01012345678",
    }


def test_unavailable_dates_stay_on_dates_step_without_booking_call():
    client = DummyRsrClient(available=False)
    flow = make_flow(client)
    flow.start()
    flow.set_check_in("10/06/2025")
    flow.set_check_out("12/06/2025")

    assert asyncio.run(flow.check_availability()) is False
    assert flow.step is BookingStep.DATES
    assert flow.draft.availability is Availability.UNAVAILABLE
    assert flow.draft.message.key == "booking.not_available"

    flow.set_phone("01012345678")
    assert asyncio.run(flow.submit()) is False
    assert client.booking_calls == []


def test_network_error_keeps_availability_unknown():
    client = DummyRsrClient(availability_error=RsrUnavailableError("boom"))
    flow = make_flow(client)
    flow.start()
    flow.set_check_in("10/06/2025")
    flow.set_check_out("12/06/2025")

    assert asyncio.run(flow.check_availability()) is False
    assert flow.step is BookingStep.DATES
    assert flow.draft.availability is Availability.UNKNOWN
    assert flow.draft.loading is False
    assert flow.draft.message.key == "common.error"
    assert flow.draft.message.text == translate("common.error", "en")


@pytest.mark.parametrize(
    "check_in,check_out,field",
    [
        ("", "12/06/2025", "check_in"),
        ("10/06/2025", "", "check_out"),
        ("31/02/2025", "12/06/2025", "check_in"),
    ],
)
def test_invalid_dates_never_reach_network(check_in, check_out, field):
    client = DummyRsrClient()
    flow = make_flow(client)
    flow.start()
    flow.set_check_in(check_in)
    flow.set_check_out(check_out)

    assert asyncio.run(flow.check_availability()) is False
    assert field in flow.draft.errors
    assert client.availability_calls == []


def test_moving_check_in_past_check_out_clears_check_out():
    client = DummyRsrClient()
    flow = make_flow(client)
    flow.start()
    flow.set_check_out("12/06/2025")

    assert flow.set_check_in("15/06/2025") is True
    assert flow.draft.check_in_display == "15/06/2025"
    assert flow.draft.check_out_display == ""
    assert "16/06/2025" in flow.draft.errors["check_out"]

    assert asyncio.run(flow.check_availability()) is False
    assert client.availability_calls == []


def test_moving_check_in_keeps_check_out_that_is_still_valid():
    flow = make_flow(DummyRsrClient())
    flow.start()
    flow.set_check_in("10/06/2025")
    flow.set_check_out("14/06/2025")

    assert flow.set_check_in("12/06/2025") is True
    assert flow.draft.check_out_display == "14/06/2025"
    assert flow.draft.errors == {}


def test_rejected_check_out_does_not_leave_previous_value():
    flow = make_flow(DummyRsrClient())
    flow.start()
    flow.set_check_in("10/06/2025")
    flow.set_check_out("20/06/2025")

    assert flow.set_check_out("09/06/2025") is False
    assert flow.draft.check_out_display == ""


def test_check_out_before_check_in_is_rejected_at_check():
    client = DummyRsrClient()
    flow = make_flow(client)
    flow.start()
    # даты, пришедшие в черновик в обход полей ввода
    flow.draft.check_in_display = "15/06/2025"
    flow.draft.check_out_display = "12/06/2025"

    assert asyncio.run(flow.check_availability()) is False
    assert "dates" in flow.draft.errors
    assert flow.draft.message.key == "booking.check_out_after_check_in"
    assert client.availability_calls == []


def test_check_in_in_the_past_is_rejected():
    client = DummyRsrClient()
    flow = make_flow(client)
    flow.start()
    flow.set_check_in("20/05/2025")
    flow.set_check_out("22/05/2025")

    assert asyncio.run(flow.check_availability()) is False
    assert flow.draft.message.key == "booking.check_in_in_past"
    assert client.availability_calls == []


def test_check_in_today_is_allowed():
    client = DummyRsrClient()
    flow = make_flow(client)
    flow.start()
    flow.set_check_in("01/06/2025")
    flow.set_check_out("02/06/2025")

    assert asyncio.run(flow.check_availability()) is True


def test_check_out_below_minimum_is_not_accepted():
    flow = make_flow(DummyRsrClient())
    flow.start()
    flow.set_check_in("10/06/2025")

    assert flow.set_check_out("10/06/2025") is False
    assert flow.draft.check_out_display == ""
    assert "11/06/2025" in flow.draft.errors["check_out"]

    assert flow.set_check_out("11/06/2025") is True
    assert flow.draft.check_out_display == "11/06/2025"


def test_cannot_reach_phone_step_without_availability_check():
    client = DummyRsrClient()
    flow = make_flow(client)
    flow.start()
    flow.set_check_in("10/06/2025")
    flow.set_check_out("12/06/2025")

    assert flow.set_phone("01012345678") is False
    assert asyncio.run(flow.submit()) is False
    assert flow.step is BookingStep.DATES
    assert client.booking_calls == []


def test_submit_requires_available_state_even_if_step_was_tampered():
    client = DummyRsrClient()
    flow = make_flow(client)
    flow.draft.step = BookingStep.PHONE
    flow.draft.check_in_display = "10/06/2025"
    flow.draft.check_out_display = "12/06/2025"
    flow.draft.phone_number = "01012345678"
    flow.draft.terms_accepted = True

    assert asyncio.run(flow.submit()) is False
    assert flow.draft.message.key == "booking.fill_all_fields"
    assert client.booking_calls == []


def test_changing_check_in_after_check_resets_availability():
    client = DummyRsrClient()
    flow = make_flow(client)
    flow.start()
    flow.set_check_in("10/06/2025")
    flow.set_check_out("12/06/2025")
    asyncio.run(flow.check_availability())
    assert flow.draft.availability is Availability.AVAILABLE

    assert flow.edit_dates()
    assert flow.draft.availability is Availability.UNKNOWN
    flow.set_check_in("09/06/2025")
    assert flow.draft.availability is Availability.UNKNOWN
    assert flow.draft.message is None
    assert flow.draft.errors == {}

    assert asyncio.run(flow.submit()) is False
    assert client.booking_calls == []


def test_date_edit_clears_previous_result_and_message():
    client = DummyRsrClient(available=False)
    flow = make_flow(client)
    flow.start()
    flow.set_check_in("10/06/2025")
    flow.set_check_out("12/06/2025")
    asyncio.run(flow.check_availability())
    assert flow.draft.availability is Availability.UNAVAILABLE

    flow.set_check_out("13/06/2025")
    assert flow.draft.availability is Availability.UNKNOWN
    assert flow.draft.message is None


def test_short_phone_is_rejected_client_side():
    client = DummyRsrClient()
    flow = make_flow(client)
    to_phone_step(flow)
    flow.set_phone("12345")
    flow.set_terms_accepted(True)

    assert asyncio.run(flow.submit()) is False
    assert flow.draft.errors["phone"] == translate("booking.invalid_phone", "en")
    assert flow.step is BookingStep.PHONE
    assert client.booking_calls == []


@pytest.mark.parametrize("phone", ["010123456789", "0101234567a", "٠١٠١٢٣٤٥٦٧٨"])
def test_phone_must_be_eleven_ascii_digits(phone):
    client = DummyRsrClient()
    flow = make_flow(client)
    to_phone_step(flow)
    flow.set_phone(phone)
    flow.set_terms_accepted(True)

    assert asyncio.run(flow.submit()) is False
    assert client.booking_calls == []


def test_terms_must_be_accepted():
    client = DummyRsrClient()
    flow = make_flow(client)
    to_phone_step(flow)
    flow.set_phone("01012345678")

    assert asyncio.run(flow.submit()) is False
    assert "terms" in flow.draft.errors
    assert client.booking_calls == []


def test_server_rejection_message_is_shown_verbatim():
    client = DummyRsrClient(
        booking_error=RsrRequestError("HTTP_409", status_code=409, message="Dates already booked")
    )
    flow = make_flow(client)
    to_phone_step(flow)
    flow.set_phone("01012345678")
    flow.set_terms_accepted(True)

    assert asyncio.run(flow.submit()) is False
    assert flow.step is BookingStep.PHONE
    assert flow.draft.message.text == "Dates already booked"
    assert flow.draft.booking_reference == ""
    assert flow.draft.loading is False


def test_server_rejection_without_message_falls_back_to_generic():
    client = DummyRsrClient(booking_error=RsrRequestError("HTTP_400", status_code=400))
    flow = make_flow(client, language="ar")
    to_phone_step(flow)
    flow.set_phone("01012345678")
    flow.set_terms_accepted(True)

    assert asyncio.run(flow.submit()) is False
    assert flow.draft.message.text == translate("common.error", "ar")


def test_edit_dates_returns_to_dates_step():
    flow = make_flow(DummyRsrClient())
    to_phone_step(flow)

    assert flow.edit_dates()
    assert flow.step is BookingStep.DATES
    assert flow.draft.availability is Availability.UNKNOWN


def test_start_new_clears_draft():
    flow = make_flow(DummyRsrClient())
    to_phone_step(flow)
    flow.set_phone("01012345678")
    flow.set_terms_accepted(True)
    asyncio.run(flow.submit())

    assert flow.start_new()
    draft = flow.draft
    assert draft.step is BookingStep.CTA
    assert draft.unit_id == 42
    assert draft.price_per_night == 1000
    assert draft.check_in_display == ""
    assert draft.phone_number == ""
    assert draft.terms_accepted is False
    assert draft.booking_reference == ""
    assert draft.availability is Availability.UNKNOWN


def test_transitions_out_of_order_are_rejected():
    flow = make_flow(DummyRsrClient())
    assert flow.set_check_in("10/06/2025") is False
    assert flow.edit_dates() is False
    assert flow.start_new() is False
    assert asyncio.run(flow.check_availability()) is False
    assert flow.step is BookingStep.CTA


def test_booking_reference_only_present_on_success():
    flow = make_flow(DummyRsrClient())
    to_phone_step(flow)
    assert flow.draft.booking_reference == ""
    flow.set_phone("01012345678")
    flow.set_terms_accepted(True)
    asyncio.run(flow.submit())
    assert flow.step is BookingStep.SUCCESS
    assert flow.draft.booking_reference


def test_estimate_is_display_only():
    client = DummyRsrClient()
    flow = make_flow(client)
    to_phone_step(flow)

    estimate = flow.estimate()
    assert estimate.nights == 2
    assert estimate.total_price == 2000

    flow.set_phone("01012345678")
    flow.set_terms_accepted(True)
    asyncio.run(flow.submit())
    payload = client.booking_calls[0].to_payload()
    assert "TotalPrice" not in payload
    assert all("price" not in key.lower() and "night" not in key.lower() for key in payload)


def test_double_submit_issues_one_request():
    async def scenario():
        gate = asyncio.Event()
        client = DummyRsrClient(gate=gate)
        flow = make_flow(client)
        flow.start()
        flow.set_check_in("10/06/2025")
        flow.set_check_out("12/06/2025")
        gate.set()
        await flow.check_availability()
        gate.clear()
        flow.set_phone("01012345678")
        flow.set_terms_accepted(True)

        first = asyncio.create_task(flow.submit())
        await asyncio.sleep(0)
        second = await flow.submit()
        gate.set()
        return client, await first, second

    client, first, second = asyncio.run(scenario())
    assert first is True
    assert second is False
    assert len(client.booking_calls) == 1


def test_double_availability_check_issues_one_request():
    async def scenario():
        gate = asyncio.Event()
        client = DummyRsrClient(gate=gate)
        flow = make_flow(client)
        flow.start()
        flow.set_check_in("10/06/2025")
        flow.set_check_out("12/06/2025")

        first = asyncio.create_task(flow.check_availability())
        await asyncio.sleep(0)
        assert flow.draft.loading is True
        second = await flow.check_availability()
        gate.set()
        return client, await first, second

    client, first, second = asyncio.run(scenario())
    assert (first, second) == (True, False)
    assert len(client.availability_calls) == 1


def test_result_after_close_is_ignored():
    async def scenario():
        gate = asyncio.Event()
        client = DummyRsrClient(gate=gate)
        flow = make_flow(client)
        flow.start()
        flow.set_check_in("10/06/2025")
        flow.set_check_out("12/06/2025")

        pending = asyncio.create_task(flow.check_availability())
        await asyncio.sleep(0)
        flow.close()
        gate.set()
        return flow, await pending

    flow, applied = asyncio.run(scenario())
    assert applied is False
    assert flow.step is BookingStep.DATES
    assert flow.draft.availability is Availability.UNKNOWN
    assert flow.start() is False


def test_result_for_previous_dates_is_ignored():
    async def scenario():
        gate = asyncio.Event()
        client = DummyRsrClient(gate=gate)
        flow = make_flow(client)
        flow.start()
        flow.set_check_in("10/06/2025")
        flow.set_check_out("12/06/2025")

        pending = asyncio.create_task(flow.check_availability())
        await asyncio.sleep(0)
        flow.set_check_out("14/06/2025")
        gate.set()
        return flow, await pending

    flow, applied = asyncio.run(scenario())
    assert applied is False
    assert flow.step is BookingStep.DATES
    assert flow.draft.availability is Availability.UNKNOWN
    assert flow.draft.loading is False
    assert flow.draft.check_out_display == "14/06/2025"


def test_initial_dates_are_kept_from_search():
    flow = make_flow(DummyRsrClient(), check_in_display="10/06/2025", check_out_display="12/06/2025")
    flow.start()
    assert asyncio.run(flow.check_availability())
