"""
Aggregation Engine

Derived ledger views (overdue flag, totals, per-contact balances,
dashboard overview) computed from canonical records.

DESIGN DECISION: Aggregation is PURE.
- No I/O, no cache access, no mutation of inputs
- "now" is always passed in, never read from the system clock here
- Sums are exact Decimals starting from Decimal("0")

Given the same records and the same `now`, every function returns an
identical result, so a caller may memoize views. This module does not.

Paid debts are excluded from every sum and count.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from debt_ledger.models.records import DebtRecord, LedgerOverview, PaymentRecord


ZERO = Decimal("0")


# =============================================================================
# DEBTS
# =============================================================================

def overdue_of(debt: DebtRecord, now: datetime) -> bool:
    """An unpaid debt is overdue once `now` is strictly past its due date."""
    return not debt.is_paid_back and now > debt.due_date


def _unpaid(debts: Iterable[DebtRecord]) -> list[DebtRecord]:
    return [d for d in debts if not d.is_paid_back]


def total_owed_by_me(debts: Iterable[DebtRecord]) -> Decimal:
    """What the user still owes: unpaid debts with is_my_debt."""
    return sum((d.amount for d in _unpaid(debts) if d.is_my_debt), ZERO)


def total_owed_to_me(debts: Iterable[DebtRecord]) -> Decimal:
    """What contacts still owe the user."""
    return sum((d.amount for d in _unpaid(debts) if not d.is_my_debt), ZERO)


def debts_for_contact(
    debts: Iterable[DebtRecord],
    contact_id: str,
) -> list[DebtRecord]:
    return [d for d in debts if d.contact_id == contact_id]


def net_balance(debts: Iterable[DebtRecord], contact_id: str) -> Decimal:
    """
    Signed balance with one contact.

    Positive: the contact owes the user on net.
    Negative: the user owes the contact on net.
    """
    own = debts_for_contact(debts, contact_id)
    return total_owed_to_me(own) - total_owed_by_me(own)


def balances_by_contact(debts: Iterable[DebtRecord]) -> dict[str, Decimal]:
    """
    Net balance for every contact that has at least one unpaid debt.

    Same sign convention as `net_balance`.
    """
    balances: dict[str, Decimal] = {}
    for debt in _unpaid(debts):
        current = balances.get(debt.contact_id, ZERO)
        if debt.is_my_debt:
            balances[debt.contact_id] = current - debt.amount
        else:
            balances[debt.contact_id] = current + debt.amount
    return balances


def overview(debts: Iterable[DebtRecord], now: datetime) -> LedgerOverview:
    """Dashboard totals in a single pass over the debts."""
    total_i_owe = ZERO
    total_they_owe = ZERO
    active = 0
    overdue = 0

    for debt in debts:
        if debt.is_paid_back:
            continue
        active += 1
        if debt.is_my_debt:
            total_i_owe += debt.amount
        else:
            total_they_owe += debt.amount
        if overdue_of(debt, now):
            overdue += 1

    return LedgerOverview(
        total_i_owe=total_i_owe,
        total_they_owe=total_they_owe,
        active_count=active,
        overdue_count=overdue,
    )


def my_debts(debts: Iterable[DebtRecord]) -> list[DebtRecord]:
    """Unpaid debts the user owes."""
    return [d for d in _unpaid(debts) if d.is_my_debt]


def their_debts(debts: Iterable[DebtRecord]) -> list[DebtRecord]:
    """Unpaid debts owed to the user."""
    return [d for d in _unpaid(debts) if not d.is_my_debt]


def overdue_debts(debts: Iterable[DebtRecord], now: datetime) -> list[DebtRecord]:
    return [d for d in debts if overdue_of(d, now)]


def days_until_due(debt: DebtRecord, now: datetime) -> int:
    """Whole days until the due date; negative once overdue."""
    return (debt.due_date - now).days


def sort_debts(debts: Iterable[DebtRecord]) -> list[DebtRecord]:
    """Stable display order: due date, then creation date, then id."""
    return sorted(debts, key=lambda d: (d.due_date, d.created_date, d.record_id))


# =============================================================================
# PAYMENTS
# =============================================================================

def total_paid_by_me(payments: Iterable[PaymentRecord]) -> Decimal:
    return sum((p.paid_amount for p in payments if p.was_my_debt), ZERO)


def total_paid_to_me(payments: Iterable[PaymentRecord]) -> Decimal:
    return sum((p.paid_amount for p in payments if not p.was_my_debt), ZERO)


def recent_payments(
    payments: Iterable[PaymentRecord],
    now: datetime,
    days: int = 30,
    limit: Optional[int] = None,
) -> list[PaymentRecord]:
    """Payments made in the last `days` days, newest first."""
    cutoff = now - timedelta(days=days)
    recent = sorted(
        (p for p in payments if p.payment_date >= cutoff),
        key=lambda p: (p.payment_date, p.payment_id),
        reverse=True,
    )
    if limit is not None:
        return recent[:limit]
    return recent
