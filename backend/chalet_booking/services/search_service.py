from __future__ import annotations

import logging
from dataclasses import dataclass, field

from chalet_booking.booking.models import Chalet, SearchQuery
from chalet_booking.booking.rsr_client import RsrApiClient
from chalet_booking.search.form import SearchParams, SearchPreferences, validate_search
from chalet_booking.session.store import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class SearchOutcome:
    params: SearchParams
    query: SearchQuery | None = None
    chalets: list[Chalet] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


class ChaletSearchService:
    def __init__(self, client: RsrApiClient) -> None:
        self._client = client

    async def search(
        self, store: KeyValueStore, params: SearchParams, *, language: str = "ar"
    ) -> SearchOutcome:
        """Запоминает ввод, проверяет его и запрашивает каталог шале."""
        await SearchPreferences(store).remember(params)
        query, errors = validate_search(params, language)
        if query is None:
            return SearchOutcome(params=params, errors=errors)
        chalets = await self._client.list_chalets(query)
        logger.info("Chalet search %s returned %d results", query.to_params(), len(chalets))
        return SearchOutcome(params=params, query=query, chalets=chalets)


__all__ = ["ChaletSearchService", "SearchOutcome"]
