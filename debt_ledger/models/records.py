"""
Core Data Models for the Debt Ledger

These models define the canonical in-memory records for every entity the
backend returns, plus the drafts callers submit for writes.

DESIGN DECISION: Canonical records are lenient and immutable.
- Lenient: a record decoded from a drifting backend may carry defaulted
  values (empty name, zero amount). The invariants from the data model are
  enforced on drafts by the validator, before anything reaches the backend.
- Immutable: the cache hands the same record objects to every screen, so
  records are frozen. Changes go through `model_copy(update=...)`.

Derived values (overdue flag, totals, balances) are NOT stored here.
They live in the aggregation engine and are recomputed on demand.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


_NON_DIGIT = re.compile(r"[^\d]")
_NON_PHONE = re.compile(r"[^\d+]")


def phone_digits(phone: str) -> str:
    """Strip everything but digits from a phone number."""
    return _NON_DIGIT.sub("", phone or "")


# =============================================================================
# CANONICAL RECORDS
# =============================================================================

class Contact(BaseModel):
    """
    A person the user exchanges debts with.

    `id` is server-assigned and stays empty until the contact is created.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default="",
        description="Server-assigned contact ID"
    )
    full_name: str = Field(
        default="",
        description="Contact's full name"
    )
    phone_number: str = Field(
        default="",
        description="Phone number as entered"
    )
    email: Optional[str] = Field(
        default=None,
        description="Optional email address"
    )
    created_date: Optional[datetime] = Field(
        default=None,
        description="When the backend created the contact"
    )

    @property
    def display_name(self) -> str:
        return self.full_name.strip()

    @property
    def initials(self) -> str:
        """First letters of the first and last name, '?' when there is no name."""
        names = self.full_name.split()
        if not names:
            return "?"
        if len(names) == 1:
            return names[0][0].upper()
        return f"{names[0][0]}{names[-1][0]}".upper()

    @property
    def phone_digits(self) -> str:
        return phone_digits(self.phone_number)

    @property
    def formatted_phone_number(self) -> str:
        """Group Uzbek numbers as '+998 XX XXX XX XX'; other numbers are unchanged."""
        cleaned = _NON_PHONE.sub("", self.phone_number)
        if cleaned.startswith("+998") and len(cleaned) == 13:
            return (
                f"+998 {cleaned[4:6]} {cleaned[6:9]} "
                f"{cleaned[9:11]} {cleaned[11:]}"
            )
        return self.phone_number


class DebtRecord(BaseModel):
    """
    One debt between the user and a contact.

    `is_my_debt` is True when the user owes the contact.
    `contact_name` is a denormalized display copy and may drift from
    the contact's current name.
    """
    model_config = ConfigDict(frozen=True)

    record_id: str = Field(
        default="",
        description="Server-assigned debt ID"
    )
    contact_id: str = Field(
        default="",
        description="ID of the contact this debt is with"
    )
    contact_name: str = Field(
        default="",
        description="Contact name at the time the record was stored"
    )
    amount: Decimal = Field(
        default=Decimal("0"),
        description="Debt amount"
    )
    description: str = ""
    created_date: datetime
    due_date: datetime
    is_my_debt: bool = False
    is_paid_back: bool = False


class PaymentRecord(BaseModel):
    """
    Historical trace of a settlement.

    Payments are append-only and reference their debt by id only.
    """
    model_config = ConfigDict(frozen=True)

    payment_id: str = ""
    original_debt_id: str = ""
    contact_name: str = ""
    paid_amount: Decimal = Decimal("0")
    payment_description: str = ""
    payment_date: datetime
    was_my_debt: bool = False


class LedgerOverview(BaseModel):
    """
    Dashboard totals.

    Produced either by the backend's overview endpoint or by the
    aggregation engine; both paths yield this exact shape.
    """
    model_config = ConfigDict(frozen=True)

    total_i_owe: Decimal = Decimal("0")
    total_they_owe: Decimal = Decimal("0")
    active_count: int = Field(default=0, ge=0)
    overdue_count: int = Field(default=0, ge=0)


# =============================================================================
# DRAFTS - what callers submit for writes
# =============================================================================

# Drafts accept both snake_case and camelCase keys (fullName, isMyDebt, ...)
_DRAFT_CONFIG = ConfigDict(
    str_strip_whitespace=True,
    alias_generator=to_camel,
    populate_by_name=True,
)

class ContactDraft(BaseModel):
    """Fields for creating or updating a contact."""
    model_config = _DRAFT_CONFIG

    full_name: str = ""
    phone_number: str = ""
    email: Optional[str] = None


class DebtDraft(BaseModel):
    """
    Fields for creating or updating a debt.

    There is no paid flag: a debt only becomes paid through mark-as-paid.
    When `due_date` is omitted the backend's creation date plus the
    default due period applies.
    """
    model_config = _DRAFT_CONFIG

    contact_id: str = ""
    amount: Decimal = Decimal("0")
    description: str = ""
    is_my_debt: bool = False
    due_date: Optional[datetime] = None
    contact_name: Optional[str] = None


class PaymentDraft(BaseModel):
    """Fields for recording a payment."""
    model_config = _DRAFT_CONFIG

    original_debt_id: str = ""
    contact_name: str = ""
    paid_amount: Decimal = Decimal("0")
    payment_description: str = ""
    was_my_debt: bool = False
