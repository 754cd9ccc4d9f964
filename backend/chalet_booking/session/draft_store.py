from __future__ import annotations

import logging
from datetime import datetime

from chalet_booking.booking.fsm import BookingDraft
from chalet_booking.session.store import KeyValueStore

logger = logging.getLogger(__name__)


class BookingDraftStore:
    """Черновики бронирования в рамках одной сессии посетителя."""

    namespace = "booking"

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store.scoped(self.namespace)

    async def load(self, draft_id: str) -> BookingDraft | None:
        raw = await self._store.get_json(self._key(draft_id))
        draft = BookingDraft.from_dict(raw)
        if raw is not None and draft is None:
            logger.warning("Stored draft %s is malformed, ignoring: %s", draft_id, raw)
        return draft

    async def save(self, draft_id: str, draft: BookingDraft) -> None:
        draft.updated_at = datetime.utcnow().timestamp()
        await self._store.set_json(self._key(draft_id), draft.to_dict())
        logger.debug("Saved draft %s ctx=%s", draft_id, draft.compact())

    async def delete(self, draft_id: str) -> None:
        await self._store.delete(self._key(draft_id))

    @staticmethod
    def _key(draft_id: str) -> str:
        return f"draft:{draft_id}"


__all__ = ["BookingDraftStore"]
