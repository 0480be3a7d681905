"""
Cache Package
"""

from debt_ledger.cache.ledger_cache import (
    CacheSlot,
    Clock,
    Collection,
    LedgerCache,
    utc_now,
)

__all__ = [
    "CacheSlot",
    "Clock",
    "Collection",
    "LedgerCache",
    "utc_now",
]
