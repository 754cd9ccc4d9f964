from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class BookingStep(Enum):
    CTA = "cta"
    DATES = "dates"
    PHONE = "phone"
    SUCCESS = "success"


class Availability(Enum):
    UNKNOWN = "unknown"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class MessageKind(Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class FlowMessage:
    kind: MessageKind
    text: str
    key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "text": self.text, "key": self.key}

    @classmethod
    def from_dict(cls, raw: Any) -> FlowMessage | None:
        if not isinstance(raw, dict) or not raw.get("text"):
            return None
        try:
            kind = MessageKind(raw.get("kind"))
        except ValueError:
            kind = MessageKind.ERROR
        return cls(kind=kind, text=str(raw["text"]), key=raw.get("key"))


@dataclass
class BookingDraft:
    unit_id: int
    price_per_night: float = 0.0
    check_in_display: str = ""
    check_out_display: str = ""
    phone_number: str = ""
    terms_accepted: bool = False
    availability: Availability = Availability.UNKNOWN
    step: BookingStep = BookingStep.CTA
    booking_reference: str = ""
    loading: bool = False
    message: FlowMessage | None = None
    errors: dict[str, str] = field(default_factory=dict)
    focus: str | None = None
    revision: int = 0
    updated_at: float = field(default_factory=lambda: datetime.utcnow().timestamp())

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit_id": self.unit_id,
            "price_per_night": self.price_per_night,
            "check_in_display": self.check_in_display,
            "check_out_display": self.check_out_display,
            "phone_number": self.phone_number,
            "terms_accepted": self.terms_accepted,
            "availability": self.availability.value,
            "step": self.step.value,
            "booking_reference": self.booking_reference,
            "loading": self.loading,
            "message": self.message.to_dict() if self.message else None,
            "errors": dict(self.errors),
            "focus": self.focus,
            "revision": self.revision,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> BookingDraft | None:
        if not isinstance(raw, dict) or raw.get("unit_id") is None:
            return None
        try:
            availability = Availability(raw.get("availability") or Availability.UNKNOWN.value)
        except ValueError:
            availability = Availability.UNKNOWN
        try:
            step = BookingStep(raw.get("step") or BookingStep.CTA.value)
        except ValueError:
            step = BookingStep.CTA
        return cls(
            unit_id=int(raw["unit_id"]),
            price_per_night=float(raw.get("price_per_night") or 0),
            check_in_display=str(raw.get("check_in_display") or ""),
            check_out_display=str(raw.get("check_out_display") or ""),
            phone_number=str(raw.get("phone_number") or ""),
            terms_accepted=bool(raw.get("terms_accepted")),
            availability=availability,
            step=step,
            booking_reference=str(raw.get("booking_reference") or ""),
            loading=bool(raw.get("loading")),
            message=FlowMessage.from_dict(raw.get("message")),
            errors={str(k): str(v) for k, v in (raw.get("errors") or {}).items()},
            focus=raw.get("focus"),
            revision=int(raw.get("revision") or 0),
            updated_at=raw.get("updated_at", datetime.utcnow().timestamp()),
        )

    def compact(self) -> dict[str, Any]:
        return {
            "unit_id": self.unit_id,
            "step": self.step.value,
            "check_in": self.check_in_display,
            "check_out": self.check_out_display,
            "availability": self.availability.value,
            "loading": self.loading,
            "revision": self.revision,
        }


def initial_draft(
    unit_id: int,
    *,
    price_per_night: float = 0.0,
    check_in_display: str = "",
    check_out_display: str = "",
) -> BookingDraft:
    return BookingDraft(
        unit_id=unit_id,
        price_per_night=price_per_night,
        check_in_display=check_in_display,
        check_out_display=check_out_display,
    )


__all__ = [
    "BookingStep",
    "Availability",
    "MessageKind",
    "FlowMessage",
    "BookingDraft",
    "initial_draft",
]
