"""
Debt Ledger - Synchronization Core

Client-side core for tracking informal debts between a user and their
contacts. It decodes records from a backend whose response shape drifts
between revisions, keeps a short-lived cache of contacts, debts and
payments, and derives ledger totals from canonical records.

DESIGN PRINCIPLES:
1. The backend is the source of truth; the cache only accelerates reads
2. Derived values are always recomputed, never stored
3. Reads degrade to cached-or-empty; writes always report an outcome
4. Every significant step is visible on the diagnostics channel
"""

__version__ = "1.0.0"
__author__ = "Debt Ledger Team"
