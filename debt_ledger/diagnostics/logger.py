"""
Ledger Diagnostics Channel

DESIGN DECISION: Read paths never raise to the UI, so failures have to go
somewhere else. Every significant repository step is recorded as a
DiagnosticEvent.

The diagnostics channel:
- Logs each event through structlog at the event's severity
- Keeps the most recent events in a bounded in-memory buffer the UI can
  inspect (e.g. a "last sync failed" banner)
- Forwards events to an optional listener
- Never lets a failing listener raise into the caller
"""

from collections import deque
from typing import Callable, Iterable, Optional

import structlog

from debt_ledger.models.diagnostics import (
    DecodeWarning,
    DiagnosticEvent,
    DiagnosticEventBuilder,
    DiagnosticEventType,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


DiagnosticListener = Callable[[DiagnosticEvent], None]


class LedgerDiagnostics:
    """
    Central diagnostics channel for one app session.

    Usage:
        diagnostics = LedgerDiagnostics(buffer_size=200)
        diagnostics.record(DiagnosticEventBuilder.cache_hit("debts", 4))
        diagnostics.recent_events(10)
    """

    def __init__(
        self,
        buffer_size: int = 200,
        listener: Optional[DiagnosticListener] = None,
    ):
        """
        Initialize the channel.

        Args:
            buffer_size: Number of events kept in memory
            listener: Optional callback receiving every event
        """
        self._events: deque[DiagnosticEvent] = deque(maxlen=buffer_size)
        self._listener = listener
        self._logger = structlog.get_logger("debt_ledger")

    def record(self, event: DiagnosticEvent) -> None:
        """Log, buffer and forward one event."""
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("ledger_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("ledger_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("ledger_event", **log_dict)
        else:
            self._logger.info("ledger_event", **log_dict)

        self._events.append(event)

        if self._listener:
            try:
                self._listener(event)
            except Exception as e:
                self._logger.error(
                    "diagnostics_listener_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )

    def record_decode_warnings(
        self,
        collection: str,
        warnings: Iterable[DecodeWarning],
    ) -> None:
        for warning in warnings:
            self.record(DiagnosticEventBuilder.decode_warning(collection, warning))

    def recent_events(self, limit: Optional[int] = None) -> list[DiagnosticEvent]:
        """Most recent events, oldest first."""
        events = list(self._events)
        if limit is not None:
            return events[-limit:] if limit > 0 else []
        return events

    def events_of_type(self, event_type: DiagnosticEventType) -> list[DiagnosticEvent]:
        return [e for e in self._events if e.event_type == event_type]

    def clear(self) -> None:
        self._events.clear()
