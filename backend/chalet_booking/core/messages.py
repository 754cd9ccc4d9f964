"""Локализованные тексты виджета бронирования (ar/en)."""

from __future__ import annotations

from typing import Any

SUPPORTED_LANGUAGES = ("ar", "en")
FALLBACK_LANGUAGE = "ar"

MESSAGES: dict[str, dict[str, str]] = {
    "common.error": {
        "en": "Something went wrong. Please try again.",
        "ar": "حدث خطأ ما. يرجى المحاولة مرة أخرى.",
    },
    "booking.select_check_in": {
        "en": "Select check-in date",
        "ar": "اختر تاريخ الوصول",
    },
    "booking.select_check_out": {
        "en": "Select check-out date",
        "ar": "اختر تاريخ المغادرة",
    },
    "booking.invalid_date_format": {
        "en": "Invalid date format",
        "ar": "صيغة التاريخ غير صحيحة",
    },
    "booking.check_out_after_check_in": {
        "en": "Check-out date must be after check-in date",
        "ar": "تاريخ المغادرة يجب أن يكون بعد تاريخ الوصول",
    },
    "booking.check_out_min": {
        "en": "Check-out date must be on or after {min_date}",
        "ar": "تاريخ المغادرة يجب أن يكون في {min_date} أو بعده",
    },
    "booking.check_in_in_past": {
        "en": "Check-in date cannot be in the past",
        "ar": "لا يمكن حجز تاريخ مضى",
    },
    "booking.available": {
        "en": "The chalet is available for the selected dates",
        "ar": "الشاليه متاح في التواريخ المختارة",
    },
    "booking.not_available": {
        "en": "The chalet is not available for the selected dates",
        "ar": "الشاليه غير متاح في التواريخ المختارة",
    },
    "booking.fill_all_fields": {
        "en": "Please fill in all fields",
        "ar": "يرجى ملء جميع الحقول",
    },
    "booking.invalid_phone": {
        "en": "Phone number must be exactly 11 digits",
        "ar": "رقم الهاتف يجب أن يتكون من 11 رقمًا",
    },
    "booking.accept_terms": {
        "en": "You must accept the terms and conditions",
        "ar": "يجب الموافقة على الشروط والأحكام",
    },
    "booking.success": {
        "en": "Booking request sent successfully!\nBooking Reference: {reference}",
        "ar": "تم إرسال طلب الحجز بنجاح!\nرقم الحجز: {reference}",
    },
    "search.adults_min": {
        "en": "At least one adult is required",
        "ar": "يجب اختيار بالغ واحد على الأقل",
    },
    "search.children_min": {
        "en": "Children count cannot be negative",
        "ar": "عدد الأطفال لا يمكن أن يكون سالبًا",
    },
}


def normalize_language(value: str | None, default: str = FALLBACK_LANGUAGE) -> str:
    """Выбирает поддерживаемый язык из значения Accept-Language."""
    if not value:
        return default
    for part in value.split(","):
        code = part.split(";")[0].strip().lower()[:2]
        if code in SUPPORTED_LANGUAGES:
            return code
    return default


def translate(key: str, language: str = FALLBACK_LANGUAGE, **params: Any) -> str:
    variants = MESSAGES.get(key)
    if variants is None:
        return key
    template = variants.get(language) or variants[FALLBACK_LANGUAGE]
    if params:
        return template.format(**params)
    return template


__all__ = [
    "MESSAGES",
    "SUPPORTED_LANGUAGES",
    "FALLBACK_LANGUAGE",
    "normalize_language",
    "translate",
]
