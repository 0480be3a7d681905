"""
Outbound Request Bodies

The backend accepts a single, stable snake_case spelling for writes, even
though it answers reads with several. Amounts go out as JSON numbers and
due dates as plain dates (YYYY-MM-DD).
"""

from typing import Any, Optional

from debt_ledger.models.records import ContactDraft, DebtDraft, PaymentDraft


def contact_body(draft: ContactDraft) -> dict[str, Any]:
    body: dict[str, Any] = {
        "fullname": draft.full_name,
        "phone_number": draft.phone_number,
    }
    if draft.email:
        body["email"] = draft.email
    return body


def debt_body(
    draft: DebtDraft,
    contact_name: Optional[str] = None,
) -> dict[str, Any]:
    """
    Body for creating or updating a debt.

    `due_date` is left out when the draft has none, so the backend applies
    its own default. No paid flag is ever sent.
    """
    body: dict[str, Any] = {
        "contact_id": draft.contact_id,
        "debt_amount": float(draft.amount),
        "debt_description": draft.description,
        "is_my_debt": draft.is_my_debt,
    }
    name = contact_name or draft.contact_name
    if name:
        body["contact_name"] = name
    if draft.due_date is not None:
        body["due_date"] = draft.due_date.date().isoformat()
    return body


def payment_body(draft: PaymentDraft) -> dict[str, Any]:
    return {
        "original_debt_id": draft.original_debt_id,
        "contact_name": draft.contact_name,
        "paid_amount": float(draft.paid_amount),
        "payment_description": draft.payment_description,
        "was_my_debt": draft.was_my_debt,
    }


def mark_paid_body(payment_description: Optional[str] = None) -> dict[str, Any]:
    body: dict[str, Any] = {}
    if payment_description:
        body["payment_description"] = payment_description
    return body
