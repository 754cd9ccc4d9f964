"""Модели обмена с RSR API (поля в PascalCase, как их отдаёт сервер)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RsrModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AvailabilityResult(RsrModel):
    is_available: bool = Field(..., alias="IsAvailable")


class BookingRequest(RsrModel):
    chalet_id: int = Field(..., alias="ChaletId")
    check_in_date: str = Field(..., alias="CheckInDate")
    check_out_date: str = Field(..., alias="CheckOutDate")
    user_phone_number: str = Field(..., alias="UserPhoneNumber")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class BookingConfirmation(RsrModel):
    id: int | None = Field(None, alias="Id")
    booking_reference: str = Field("", alias="BookingReference")
    status: str | None = Field(None, alias="Status")
    total_price: float | None = Field(None, alias="TotalPrice")


class Chalet(RsrModel):
    id: int = Field(..., alias="Id")
    title_en: str = Field("", alias="TitleEn")
    title_ar: str = Field("", alias="TitleAr")
    description_en: str = Field("", alias="DescriptionEn")
    description_ar: str = Field("", alias="DescriptionAr")
    price_per_night: float = Field(0.0, alias="PricePerNight")
    adults_capacity: int = Field(0, alias="AdultsCapacity")
    children_capacity: int = Field(0, alias="ChildrenCapacity")
    image_url: str | None = Field(None, alias="ImageUrl")
    is_featured: bool = Field(False, alias="IsFeatured")

    def title(self, language: str) -> str:
        if language == "en":
            return self.title_en or self.title_ar
        return self.title_ar or self.title_en


@dataclass(frozen=True)
class SearchQuery:
    check_in: str | None = None
    check_out: str | None = None
    max_price: float | None = None
    adults: int | None = None
    children: int | None = None

    def to_params(self) -> dict[str, Any]:
        # пустые и нулевые значения сервер не ждёт
        params: dict[str, Any] = {}
        if self.check_in:
            params["checkInDate"] = self.check_in
        if self.check_out:
            params["checkOutDate"] = self.check_out
        if self.max_price:
            params["maxPrice"] = self.max_price
        if self.adults:
            params["adults"] = self.adults
        if self.children:
            params["children"] = self.children
        return params


__all__ = [
    "AvailabilityResult",
    "BookingRequest",
    "BookingConfirmation",
    "Chalet",
    "SearchQuery",
]
