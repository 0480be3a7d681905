"""
Ledger Cache

One time-boxed slot per entity collection, shared by every screen of an
app session. The cache is constructed once and injected into the
repository; nothing about it is global.

ORDERING:
Every fetch takes a sequence token from `next_sequence()` before it
starts. `put()` only accepts a token newer than the one the slot already
holds, so an earlier-started fetch that completes late can never
overwrite a newer result (last-writer-by-sequence, not by wall clock).

`invalidate()` also raises a per-collection floor to the last issued
token. A fetch that was already running when a mutation landed may hold
pre-mutation data; its `put()` is refused.

ATOMICITY:
A slot is an immutable CacheSlot replaced as a whole. Readers see either
the old slot or the new one, never a partial update.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Optional


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Collection(str, Enum):
    """Entity collections the cache keeps a slot for."""
    CONTACTS = "contacts"
    DEBTS = "debts"
    PAYMENTS = "payments"

    @property
    def id_field(self) -> str:
        """Name of the identity attribute on this collection's records."""
        return _ID_FIELDS[self]


_ID_FIELDS = {
    Collection.CONTACTS: "id",
    Collection.DEBTS: "record_id",
    Collection.PAYMENTS: "payment_id",
}


@dataclass(frozen=True)
class CacheSlot:
    records: tuple
    last_refreshed: datetime
    sequence: int


class LedgerCache:
    """
    Per-collection record cache with a TTL.

    Usage:
        cache = LedgerCache(ttl=timedelta(minutes=5))
        seq = cache.next_sequence(Collection.DEBTS)
        cache.put(Collection.DEBTS, debts, sequence=seq)
        cache.get(Collection.DEBTS)  # -> debts until the TTL passes
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(minutes=5),
        clock: Optional[Clock] = None,
    ):
        if ttl <= timedelta(0):
            raise ValueError("Cache TTL must be positive")
        self.ttl = ttl
        self._clock = clock or utc_now
        self._slots: dict[Collection, CacheSlot] = {}
        self._issued: dict[Collection, int] = {c: 0 for c in Collection}
        self._floor: dict[Collection, int] = {c: 0 for c in Collection}

    # =========================================================================
    # SEQUENCE TOKENS
    # =========================================================================

    def next_sequence(self, collection: Collection) -> int:
        """Issue a fresh, strictly increasing fetch token."""
        self._issued[collection] += 1
        return self._issued[collection]

    def current_sequence(self, collection: Collection) -> int:
        """Token of the fetch whose records are in the slot (0 when empty)."""
        slot = self._slots.get(collection)
        return slot.sequence if slot else 0

    def accepts(self, collection: Collection, sequence: int) -> bool:
        """Whether a put carrying `sequence` would be stored."""
        if sequence <= self._floor[collection]:
            return False
        return sequence > self.current_sequence(collection)

    # =========================================================================
    # READS
    # =========================================================================

    def is_valid(self, collection: Collection) -> bool:
        """True iff the slot is non-empty and younger than the TTL."""
        slot = self._slots.get(collection)
        if slot is None or not slot.records:
            return False
        return self._clock() - slot.last_refreshed < self.ttl

    def get(
        self,
        collection: Collection,
        force_refresh: bool = False,
    ) -> Optional[list]:
        """
        Cached records, or None to signal a miss.

        A miss means the caller must refetch and `put()`.
        """
        if force_refresh or not self.is_valid(collection):
            return None
        return list(self._slots[collection].records)

    def last_known(self, collection: Collection) -> Optional[list]:
        """Whatever the slot holds, expired or not. Used when a refresh fails."""
        slot = self._slots.get(collection)
        if slot is None:
            return None
        return list(slot.records)

    def last_refreshed(self, collection: Collection) -> Optional[datetime]:
        slot = self._slots.get(collection)
        return slot.last_refreshed if slot else None

    # =========================================================================
    # WRITES
    # =========================================================================

    def put(
        self,
        collection: Collection,
        records: list,
        sequence: Optional[int] = None,
    ) -> bool:
        """
        Replace the slot wholesale and stamp it with the current time.

        This is the only way `last_refreshed` advances. Returns False when
        the put was refused because a newer fetch already landed or the
        collection was invalidated after the fetch started.
        """
        if sequence is None:
            sequence = self.next_sequence(collection)
        if not self.accepts(collection, sequence):
            return False
        self._slots[collection] = CacheSlot(
            records=tuple(records),
            last_refreshed=self._clock(),
            sequence=sequence,
        )
        return True

    def invalidate(self, collection: Collection) -> None:
        """Clear the slot and refuse puts from fetches already under way."""
        self._slots.pop(collection, None)
        self._floor[collection] = self._issued[collection]

    def upsert_single(
        self,
        collection: Collection,
        record: Any,
        sort_key: Optional[Callable[[Any], Any]] = None,
    ) -> bool:
        """
        Replace or append one record inside a still-valid slot.

        Keeps the slot's `last_refreshed` and sequence. Does nothing (and
        returns False) when the slot is missing or expired, since a partial
        slot would pass for a complete collection.
        """
        if not self.is_valid(collection):
            return False

        slot = self._slots[collection]
        id_field = collection.id_field
        record_id = getattr(record, id_field)

        records = []
        replaced = False
        for existing in slot.records:
            if getattr(existing, id_field) == record_id:
                records.append(record)
                replaced = True
            else:
                records.append(existing)
        if not replaced:
            records.append(record)
        if sort_key is not None:
            records.sort(key=sort_key)

        self._slots[collection] = CacheSlot(
            records=tuple(records),
            last_refreshed=slot.last_refreshed,
            sequence=slot.sequence,
        )
        return True

    def clear(self) -> None:
        """Drop every slot (e.g. on logout)."""
        for collection in Collection:
            self.invalidate(collection)
