"""
Local Draft Validation

Every write is checked here before the transport is touched. A draft
that fails produces a ValidationResult whose `field_errors` become the
`ValidationFailed{fields}` failure; the backend never sees it.

Rules (limits are tunable through LedgerSettings):
- Contact: full name 2-50 characters, phone 9-15 digits once everything
  but digits is stripped, email (if given) a standard address
- Debt: contact reference present, amount within the accepted range,
  description 3-500 characters
- Payment: debt reference present, paid amount within the accepted range

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the caller decides what to do.
"""

import re
from decimal import Decimal
from typing import Optional

from debt_ledger.config import LedgerSettings, get_settings
from debt_ledger.models.records import (
    ContactDraft,
    DebtDraft,
    PaymentDraft,
    phone_digits,
)
from debt_ledger.models.validation import ValidationIssue, ValidationResult


EMAIL_PATTERN = re.compile(r"^[\w\-.]+@([\w-]+\.)+[\w-]{2,4}$")


class LedgerValidator:
    """Validates contact, debt and payment drafts against the ledger rules."""

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    # =========================================================================
    # CONTACTS
    # =========================================================================

    def validate_contact(self, draft: ContactDraft) -> ValidationResult:
        issues = []
        s = self._settings

        name = draft.full_name.strip()
        if not name:
            issues.append(ValidationIssue(
                field="full_name",
                issue_type="missing",
                message="Full name is required",
            ))
        elif len(name) < s.min_name_length:
            issues.append(ValidationIssue(
                field="full_name",
                issue_type="too_short",
                message=f"Full name must be at least {s.min_name_length} characters",
            ))
        elif len(name) > s.max_name_length:
            issues.append(ValidationIssue(
                field="full_name",
                issue_type="too_long",
                message=f"Full name must be at most {s.max_name_length} characters",
            ))

        digits = phone_digits(draft.phone_number)
        if not draft.phone_number.strip():
            issues.append(ValidationIssue(
                field="phone_number",
                issue_type="missing",
                message="Phone number is required",
            ))
        elif not s.min_phone_digits <= len(digits) <= s.max_phone_digits:
            issues.append(ValidationIssue(
                field="phone_number",
                issue_type="invalid_format",
                message=(
                    f"Phone number must have {s.min_phone_digits}"
                    f"-{s.max_phone_digits} digits"
                ),
                suggested_fix="Include the country code, e.g. +998 90 123 45 67",
            ))

        if draft.email and not EMAIL_PATTERN.match(draft.email.strip()):
            issues.append(ValidationIssue(
                field="email",
                issue_type="invalid_format",
                message="Email address is not valid",
            ))

        return ValidationResult(entity="contact", issues=issues)

    # =========================================================================
    # DEBTS
    # =========================================================================

    def validate_debt(self, draft: DebtDraft) -> ValidationResult:
        issues = []
        s = self._settings

        if not draft.contact_id.strip():
            issues.append(ValidationIssue(
                field="contact_id",
                issue_type="missing",
                message="A contact must be selected",
            ))

        issues.extend(self._check_amount("amount", draft.amount))

        description = draft.description.strip()
        if not description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
            ))
        elif len(description) < s.min_description_length:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_short",
                message=f"Description must be at least {s.min_description_length} characters",
            ))
        elif len(description) > s.max_description_length:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=f"Description must be at most {s.max_description_length} characters",
            ))

        return ValidationResult(entity="debt", issues=issues)

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    def validate_payment(self, draft: PaymentDraft) -> ValidationResult:
        issues = []

        if not draft.original_debt_id.strip():
            issues.append(ValidationIssue(
                field="original_debt_id",
                issue_type="missing",
                message="A payment must reference a debt",
            ))

        issues.extend(self._check_amount("paid_amount", draft.paid_amount))

        if len(draft.payment_description) > self._settings.max_description_length:
            issues.append(ValidationIssue(
                field="payment_description",
                issue_type="too_long",
                message=(
                    "Payment description must be at most "
                    f"{self._settings.max_description_length} characters"
                ),
            ))

        return ValidationResult(entity="payment", issues=issues)

    def _check_amount(self, field: str, amount: Decimal) -> list[ValidationIssue]:
        s = self._settings
        minimum = Decimal(str(s.min_debt_amount))
        maximum = Decimal(str(s.max_debt_amount))

        if not amount.is_finite() or amount <= 0:
            return [ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message="Amount must be greater than zero",
            )]
        if amount < minimum:
            return [ValidationIssue(
                field=field,
                issue_type="too_small",
                message=f"Amount must be at least {minimum}",
            )]
        if amount > maximum:
            return [ValidationIssue(
                field=field,
                issue_type="too_large",
                message=f"Amount must be at most {maximum}",
            )]
        return []
