"""Инструменты работы с пользовательскими сессиями."""

from .draft_store import BookingDraftStore
from .store import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore, get_session_store

__all__ = [
    "BookingDraftStore",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "get_session_store",
]
