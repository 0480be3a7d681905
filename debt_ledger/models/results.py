"""
Operation Results and the Failure Taxonomy

UI-facing code reacts only to this taxonomy, never to raw transport
exceptions. Every write returns an OperationResult with a definite
success or failure; a write is never silently dropped.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Failure categories surfaced to callers."""
    VALIDATION_FAILED = "validation_failed"  # Local or backend field errors
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"                    # e.g. delete blocked by active debts
    TRANSPORT_ERROR = "transport_error"      # Network failure or backend refusal
    UNKNOWN = "unknown"                      # Unexpected or unsupported


class LedgerFailure(BaseModel):
    """Structured description of why an operation failed."""

    kind: FailureKind
    message: str = Field(
        ...,
        description="Human-readable reason"
    )
    fields: dict[str, str] = Field(
        default_factory=dict,
        description="Per-field errors for VALIDATION_FAILED"
    )
    active_debt_count: Optional[int] = Field(
        default=None,
        ge=0,
        description="Number of unpaid debts blocking a contact delete"
    )


class OperationResult(BaseModel):
    """Outcome of a write operation."""

    success: bool
    record_id: Optional[str] = Field(
        default=None,
        description="ID of the created or affected record"
    )
    record: Optional[Any] = Field(
        default=None,
        description="Decoded record returned by the backend, if any"
    )
    changed: bool = Field(
        default=True,
        description="False when the operation succeeded without a state change"
    )
    message: Optional[str] = None
    failure: Optional[LedgerFailure] = None

    @property
    def failure_kind(self) -> Optional[FailureKind]:
        return self.failure.kind if self.failure else None

    @classmethod
    def ok(
        cls,
        record_id: Optional[str] = None,
        record: Optional[Any] = None,
        changed: bool = True,
        message: Optional[str] = None,
    ) -> "OperationResult":
        return cls(
            success=True,
            record_id=record_id,
            record=record,
            changed=changed,
            message=message,
        )

    @classmethod
    def fail(cls, failure: LedgerFailure) -> "OperationResult":
        return cls(
            success=False,
            changed=False,
            message=failure.message,
            failure=failure,
        )

    @classmethod
    def validation_failed(
        cls,
        fields: dict[str, str],
        message: str = "Validation failed",
    ) -> "OperationResult":
        return cls.fail(LedgerFailure(
            kind=FailureKind.VALIDATION_FAILED,
            message=message,
            fields=fields,
        ))

    @classmethod
    def not_found(cls, message: str) -> "OperationResult":
        return cls.fail(LedgerFailure(kind=FailureKind.NOT_FOUND, message=message))

    @classmethod
    def conflict(
        cls,
        message: str,
        active_debt_count: Optional[int] = None,
    ) -> "OperationResult":
        return cls.fail(LedgerFailure(
            kind=FailureKind.CONFLICT,
            message=message,
            active_debt_count=active_debt_count,
        ))

    @classmethod
    def transport_error(cls, message: str) -> "OperationResult":
        return cls.fail(LedgerFailure(kind=FailureKind.TRANSPORT_ERROR, message=message))

    @classmethod
    def unknown(cls, message: str) -> "OperationResult":
        return cls.fail(LedgerFailure(kind=FailureKind.UNKNOWN, message=message))
