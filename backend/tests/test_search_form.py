import asyncio
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from chalet_booking.booking.models import Chalet, SearchQuery
from chalet_booking.search.form import SearchParams, SearchPreferences, validate_search
from chalet_booking.services.search_service import ChaletSearchService
from chalet_booking.session.store import InMemoryKeyValueStore


class DummyCatalogClient:
    def __init__(self) -> None:
        self.queries: list[SearchQuery] = []

    async def list_chalets(self, query: SearchQuery):
        self.queries.append(query)
        return [Chalet(id=1, title_en="Sea View", price_per_night=1200)]


def test_valid_search_builds_iso_query():
    params = SearchParams("10/06/2025", "12/06/2025", adults=2, children=1, max_price=3000)
    query, errors = validate_search(params, "en")

    assert errors == {}
    assert query == SearchQuery(
        check_in="2025-06-10", check_out="2025-06-12", max_price=3000, adults=2, children=1
    )
    assert query.to_params() == {
        "checkInDate": "2025-06-10",
        "checkOutDate": "2025-06-12",
        "maxPrice": 3000,
        "adults": 2,
        "children": 1,
    }


def test_missing_dates_are_reported_per_field():
    query, errors = validate_search(SearchParams("", ""), "en")
    assert query is None
    assert set(errors) == {"check_in", "check_out"}


def test_invalid_calendar_date_is_reported():
    query, errors = validate_search(SearchParams("31/02/2025", "12/06/2025"), "ar")
    assert query is None
    assert errors == {"check_in": "صيغة التاريخ غير صحيحة"}


def test_check_out_must_follow_check_in():
    query, errors = validate_search(SearchParams("12/06/2025", "12/06/2025"), "en")
    assert query is None
    assert "dates" in errors


def test_adults_must_be_positive():
    query, errors = validate_search(SearchParams("10/06/2025", "12/06/2025", adults=0), "en")
    assert query is None
    assert "adults" in errors


def test_preferences_remember_last_search():
    async def scenario():
        store = InMemoryKeyValueStore().scoped("visitor")
        preferences = SearchPreferences(store)
        await preferences.remember(SearchParams("10/06/2025", "12/06/2025", adults=3, children=2))
        return await SearchPreferences(store).load()

    loaded = asyncio.run(scenario())
    assert loaded == SearchParams("10/06/2025", "12/06/2025", adults=3, children=2)


def test_preferences_prefer_explicit_values_and_defaults():
    async def scenario():
        store = InMemoryKeyValueStore()
        preferences = SearchPreferences(store)
        empty = await preferences.load()
        await preferences.remember(SearchParams("10/06/2025", "", adults=2, children=0))
        explicit = await preferences.load(SearchParams(check_in_display="01/07/2025"))
        await preferences.forget()
        cleared = await preferences.load()
        return empty, explicit, cleared

    empty, explicit, cleared = asyncio.run(scenario())
    assert empty == SearchParams()
    assert explicit.check_in_display == "01/07/2025"
    assert explicit.check_out_display == ""
    assert explicit.adults == 2
    assert explicit.children == 0
    assert cleared == SearchParams()


def test_search_service_remembers_input_even_when_invalid():
    async def scenario():
        store = InMemoryKeyValueStore()
        client = DummyCatalogClient()
        service = ChaletSearchService(client)  # type: ignore[arg-type]
        invalid = await service.search(store, SearchParams("10/06/2025", ""), language="en")
        valid = await service.search(store, SearchParams("10/06/2025", "12/06/2025", adults=2), language="en")
        remembered = await SearchPreferences(store).load()
        return client, invalid, valid, remembered

    client, invalid, valid, remembered = asyncio.run(scenario())
    assert invalid.chalets == []
    assert "check_out" in invalid.errors
    assert len(client.queries) == 1
    assert [chalet.id for chalet in valid.chalets] == [1]
    assert remembered.check_out_display == "12/06/2025"
    assert remembered.adults == 2


def test_remembered_zero_children_wins_over_defaults():
    async def scenario():
        preferences = SearchPreferences(InMemoryKeyValueStore())
        await preferences.remember(SearchParams("10/06/2025", "12/06/2025", adults=2, children=0))
        return await preferences.load(SearchParams(children=3))

    loaded = asyncio.run(scenario())
    assert loaded.children == 0
    assert loaded.adults == 2
