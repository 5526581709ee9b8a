"""
Client-side query cache with push-driven stale marking.

Each displayed query is identified by a QueryKey (collection path + filter
params). Monitoring events mark whole collections stale; the next get() for
a stale key refetches. Collections no event covers (branches, employees, ...)
stay cached until the caller invalidates them after its own mutations.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, TypeVar

from monitoring.events import DEVICE_STATUS_CHANGE, INITIAL_STATUS, NEW_ALERT

T = TypeVar("T")

POS_DEVICES = "/api/v1/pos-devices"
CUSTOMERS = "/api/v1/customers"
ALERTS = "/api/v1/alerts"
UNREAD_ALERTS = "/api/v1/alerts/unread"

INVALIDATION_RULES: dict[str, frozenset[str]] = {
    DEVICE_STATUS_CHANGE: frozenset({POS_DEVICES, CUSTOMERS}),
    NEW_ALERT: frozenset({ALERTS, UNREAD_ALERTS}),
    INITIAL_STATUS: frozenset(),
}

WATCHED_COLLECTIONS: frozenset[str] = frozenset().union(*INVALIDATION_RULES.values())


@dataclass(frozen=True)
class QueryKey:
    collection: str
    params: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def of(cls, collection: str, **params: Any) -> "QueryKey":
        return cls(collection, tuple(sorted((k, v) for k, v in params.items() if v is not None)))


@dataclass
class CacheEntry:
    value: Any
    stale: bool = False
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class QueryCache:
    def __init__(self):
        self._entries: dict[QueryKey, CacheEntry] = {}

    async def get(self, key: QueryKey, fetcher: Callable[[], Awaitable[T]]) -> T:
        """Cached value, refetched when the key is missing or stale."""
        entry = self._entries.get(key)
        if entry is not None and not entry.stale:
            return entry.value
        value = await fetcher()
        self._entries[key] = CacheEntry(value)
        return value

    def peek(self, key: QueryKey) -> Any:
        entry = self._entries.get(key)
        return None if entry is None else entry.value

    def set(self, key: QueryKey, value: Any) -> None:
        self._entries[key] = CacheEntry(value)

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        return entry is None or entry.stale

    def invalidate(self, collection: str) -> int:
        """Mark every cached key of one collection stale. Returns keys touched."""
        touched = 0
        for key, entry in self._entries.items():
            if key.collection == collection:
                entry.stale = True
                touched += 1
        return touched

    def invalidate_many(self, collections) -> int:
        return sum(self.invalidate(c) for c in collections)

    def apply_event(self, message: dict[str, Any]) -> frozenset[str]:
        """Stale-mark the collections a monitoring message affects."""
        collections = INVALIDATION_RULES.get(message.get("type", ""), frozenset())
        self.invalidate_many(collections)
        return collections

    def __len__(self) -> int:
        return len(self._entries)
