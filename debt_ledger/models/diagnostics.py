"""
Diagnostic Models for the Debt Ledger

Read paths never raise to the UI. What went wrong on the way (a failed
fetch, a field that could not be decoded, a fallback that kicked in) is
reported as a DiagnosticEvent on the diagnostics channel instead.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class DiagnosticEventType(str, Enum):
    """Types of events the repository reports."""
    # Cache
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    STALE_WRITE_DISCARDED = "stale_write_discarded"

    # Fetching
    FETCH_STARTED = "fetch_started"
    FETCH_JOINED = "fetch_joined"
    FETCH_COMPLETED = "fetch_completed"
    FETCH_FAILED = "fetch_failed"
    FALLBACK_USED = "fallback_used"

    # Decoding
    DECODE_WARNING = "decode_warning"

    # Writes
    VALIDATION_FAILED = "validation_failed"
    MUTATION_COMPLETED = "mutation_completed"
    MUTATION_FAILED = "mutation_failed"
    DELETE_BLOCKED = "delete_blocked"
    OPERATION_UNSUPPORTED = "operation_unsupported"

    # System
    UNEXPECTED_ERROR = "unexpected_error"


class DiagnosticSeverity(str, Enum):
    """Severity level for diagnostic events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class DecodeWarning(BaseModel):
    """A field the decoder could not parse and replaced with a safe default."""

    entity: str = Field(
        ...,
        description="Entity being decoded (contact, debt, payment, overview)"
    )
    field: str = Field(
        ...,
        description="Canonical field name"
    )
    source_key: Optional[str] = Field(
        default=None,
        description="Backend key the raw value came from"
    )
    raw_value: Optional[str] = Field(
        default=None,
        description="Raw value, stringified and truncated"
    )
    message: str


class DiagnosticEvent(BaseModel):
    """A single diagnostic event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: DiagnosticEventType
    severity: DiagnosticSeverity = DiagnosticSeverity.INFO

    collection: Optional[str] = Field(
        default=None,
        description="Entity collection involved (contacts, debts, payments)"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the record involved"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "collection": self.collection,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class DiagnosticEventBuilder:
    """
    Helper class to build diagnostic events with common patterns.

    Usage:
        event = DiagnosticEventBuilder.cache_hit("contacts", 12)
        event = DiagnosticEventBuilder.fetch_failed("debts", "timeout")
    """

    @staticmethod
    def cache_hit(collection: str, record_count: int) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.CACHE_HIT,
            severity=DiagnosticSeverity.DEBUG,
            collection=collection,
            description=f"Served {record_count} {collection} from cache",
            details={"record_count": record_count},
        )

    @staticmethod
    def cache_miss(collection: str, force_refresh: bool) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.CACHE_MISS,
            severity=DiagnosticSeverity.DEBUG,
            collection=collection,
            description=(
                f"Refresh of {collection} forced" if force_refresh
                else f"No valid {collection} in cache"
            ),
            details={"force_refresh": force_refresh},
        )

    @staticmethod
    def stale_write_discarded(
        collection: str,
        sequence: int,
        current_sequence: int,
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.STALE_WRITE_DISCARDED,
            severity=DiagnosticSeverity.INFO,
            collection=collection,
            description=f"Discarded {collection} fetch #{sequence}; cache already holds #{current_sequence}",
            details={"sequence": sequence, "current_sequence": current_sequence},
        )

    @staticmethod
    def fetch_started(collection: str, sequence: int, path: str) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.FETCH_STARTED,
            severity=DiagnosticSeverity.DEBUG,
            collection=collection,
            description=f"Fetching {collection} (#{sequence})",
            details={"sequence": sequence, "path": path},
        )

    @staticmethod
    def fetch_joined(collection: str) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.FETCH_JOINED,
            severity=DiagnosticSeverity.DEBUG,
            collection=collection,
            description=f"Joined in-flight fetch of {collection}",
        )

    @staticmethod
    def fetch_completed(
        collection: str,
        sequence: int,
        record_count: int,
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.FETCH_COMPLETED,
            collection=collection,
            description=f"Fetched {record_count} {collection} (#{sequence})",
            details={"sequence": sequence, "record_count": record_count},
        )

    @staticmethod
    def fetch_failed(
        collection: str,
        error_message: str,
        served_from_cache: bool = False,
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.FETCH_FAILED,
            severity=DiagnosticSeverity.WARNING,
            collection=collection,
            description=(
                f"Fetching {collection} failed; serving last cached copy"
                if served_from_cache
                else f"Fetching {collection} failed; no cached copy available"
            ),
            details={"served_from_cache": served_from_cache},
            error_message=error_message,
        )

    @staticmethod
    def fallback_used(operation: str, reason: str) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.FALLBACK_USED,
            severity=DiagnosticSeverity.INFO,
            description=f"{operation}: using client-side fallback",
            details={"operation": operation, "reason": reason},
        )

    @staticmethod
    def decode_warning(collection: str, warning: DecodeWarning) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.DECODE_WARNING,
            severity=DiagnosticSeverity.WARNING,
            collection=collection,
            description=f"Could not decode {warning.entity}.{warning.field}: {warning.message}"[:500],
            details=warning.model_dump(),
        )

    @staticmethod
    def validation_failed(
        operation: str,
        fields: dict[str, str],
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.VALIDATION_FAILED,
            severity=DiagnosticSeverity.INFO,
            description=f"{operation} rejected locally with {len(fields)} field errors",
            details={"operation": operation, "fields": fields},
        )

    @staticmethod
    def mutation_completed(
        operation: str,
        collection: str,
        entity_id: Optional[str],
        invalidated: list[str],
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.MUTATION_COMPLETED,
            collection=collection,
            entity_id=entity_id,
            description=f"{operation} succeeded",
            details={"operation": operation, "invalidated": invalidated},
        )

    @staticmethod
    def mutation_failed(
        operation: str,
        collection: str,
        entity_id: Optional[str],
        error_message: str,
        failure_kind: str,
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.MUTATION_FAILED,
            severity=DiagnosticSeverity.WARNING,
            collection=collection,
            entity_id=entity_id,
            description=f"{operation} failed ({failure_kind})",
            details={"operation": operation, "failure_kind": failure_kind},
            error_message=error_message,
        )

    @staticmethod
    def delete_blocked(contact_id: str, active_debt_count: int) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.DELETE_BLOCKED,
            severity=DiagnosticSeverity.INFO,
            collection="contacts",
            entity_id=contact_id,
            description=f"Contact delete blocked by {active_debt_count} unpaid debts",
            details={"active_debt_count": active_debt_count},
        )

    @staticmethod
    def operation_unsupported(operation: str) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.OPERATION_UNSUPPORTED,
            severity=DiagnosticSeverity.WARNING,
            description=f"{operation} is not supported by the backend",
            details={"operation": operation},
        )

    @staticmethod
    def unexpected_error(
        operation: str,
        error_type: str,
        error_message: str,
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.UNEXPECTED_ERROR,
            severity=DiagnosticSeverity.ERROR,
            description=f"Unexpected error in {operation}: {error_type}",
            details={"operation": operation, "error_type": error_type},
            error_message=error_message,
        )
