from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, Field

from chalet_booking.api.deps import get_search_service, get_session
from chalet_booking.booking.models import Chalet
from chalet_booking.booking.rsr_client import RsrApiError
from chalet_booking.search.form import SearchParams, SearchPreferences
from chalet_booking.services.booking_widget_service import WidgetSession
from chalet_booking.services.search_service import ChaletSearchService

router = APIRouter(prefix="/search")


class SearchForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    check_in: str = Field("", alias="checkIn")
    check_out: str = Field("", alias="checkOut")
    adults: int = 1
    children: int = 0
    max_price: float | None = Field(None, alias="maxPrice")

    def to_params(self) -> SearchParams:
        return SearchParams(
            check_in_display=self.check_in.strip(),
            check_out_display=self.check_out.strip(),
            adults=self.adults,
            children=self.children,
            max_price=self.max_price,
        )

    @classmethod
    def from_params(cls, params: SearchParams) -> SearchForm:
        return cls(
            check_in=params.check_in_display,
            check_out=params.check_out_display,
            adults=params.adults,
            children=params.children,
            max_price=params.max_price,
        )


class ChaletSummary(BaseModel):
    id: int
    title: str
    price_per_night: float = Field(..., alias="pricePerNight")
    adults_capacity: int = Field(..., alias="adultsCapacity")
    children_capacity: int = Field(..., alias="childrenCapacity")
    image_url: str | None = Field(None, alias="imageUrl")
    is_featured: bool = Field(False, alias="isFeatured")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_chalet(cls, chalet: Chalet, language: str) -> ChaletSummary:
        return cls(
            id=chalet.id,
            title=chalet.title(language),
            price_per_night=chalet.price_per_night,
            adults_capacity=chalet.adults_capacity,
            children_capacity=chalet.children_capacity,
            image_url=chalet.image_url,
            is_featured=chalet.is_featured,
        )


class SearchResponse(BaseModel):
    form: SearchForm
    check_in_date: str | None = Field(None, alias="checkInDate")
    check_out_date: str | None = Field(None, alias="checkOutDate")
    results: list[ChaletSummary] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


@router.get("/preferences", response_model=SearchForm)
async def get_preferences(session: WidgetSession = Depends(get_session)) -> SearchForm:
    params = await SearchPreferences(session.store).load()
    return SearchForm.from_params(params)


@router.put("/preferences", response_model=SearchForm)
async def save_preferences(
    payload: SearchForm, session: WidgetSession = Depends(get_session)
) -> SearchForm:
    preferences = SearchPreferences(session.store)
    await preferences.remember(payload.to_params())
    return SearchForm.from_params(await preferences.load())


@router.delete("/preferences", status_code=status.HTTP_204_NO_CONTENT)
async def clear_preferences(session: WidgetSession = Depends(get_session)) -> Response:
    await SearchPreferences(session.store).forget()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("", response_model=SearchResponse)
async def search_chalets(
    payload: SearchForm,
    session: WidgetSession = Depends(get_session),
    service: ChaletSearchService = Depends(get_search_service),
) -> SearchResponse:
    try:
        outcome = await service.search(session.store, payload.to_params(), language=session.language)
    except RsrApiError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))

    return SearchResponse(
        form=payload,
        check_in_date=outcome.query.check_in if outcome.query else None,
        check_out_date=outcome.query.check_out if outcome.query else None,
        results=[ChaletSummary.from_chalet(chalet, session.language) for chalet in outcome.chalets],
        errors=outcome.errors,
    )


__all__ = ["router"]
