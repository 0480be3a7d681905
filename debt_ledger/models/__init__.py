"""
Data Models Package

Canonical records, drafts, operation results and diagnostic events.
"""

from debt_ledger.models.records import (
    Contact,
    ContactDraft,
    DebtDraft,
    DebtRecord,
    LedgerOverview,
    PaymentDraft,
    PaymentRecord,
    phone_digits,
)
from debt_ledger.models.results import (
    FailureKind,
    LedgerFailure,
    OperationResult,
)
from debt_ledger.models.validation import ValidationIssue, ValidationResult
from debt_ledger.models.diagnostics import (
    DecodeWarning,
    DiagnosticEvent,
    DiagnosticEventBuilder,
    DiagnosticEventType,
    DiagnosticSeverity,
)

__all__ = [
    # Records
    "Contact",
    "ContactDraft",
    "DebtDraft",
    "DebtRecord",
    "LedgerOverview",
    "PaymentDraft",
    "PaymentRecord",
    "phone_digits",
    # Results
    "FailureKind",
    "LedgerFailure",
    "OperationResult",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Diagnostics
    "DecodeWarning",
    "DiagnosticEvent",
    "DiagnosticEventBuilder",
    "DiagnosticEventType",
    "DiagnosticSeverity",
]
