"""
Aggregation Package

Pure functions over canonical records.
"""

from debt_ledger.aggregation.engine import (
    balances_by_contact,
    days_until_due,
    debts_for_contact,
    my_debts,
    net_balance,
    overdue_debts,
    overdue_of,
    overview,
    recent_payments,
    sort_debts,
    their_debts,
    total_owed_by_me,
    total_owed_to_me,
    total_paid_by_me,
    total_paid_to_me,
)

__all__ = [
    "balances_by_contact",
    "days_until_due",
    "debts_for_contact",
    "my_debts",
    "net_balance",
    "overdue_debts",
    "overdue_of",
    "overview",
    "recent_payments",
    "sort_debts",
    "their_debts",
    "total_owed_by_me",
    "total_owed_to_me",
    "total_paid_by_me",
    "total_paid_to_me",
]
