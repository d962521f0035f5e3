"""
Audit Logger

DESIGN DECISION: Every mutation of the ledger is logged.
This provides:
1. Traceability of how balances came to be
2. Debugging capability
3. A hook for the UI to react to notable events (goals reached)

The audit logger:
- Is synchronous, like the rest of the ledger core
- Never raises into the caller; a failing listener is logged and skipped
- Keeps a bounded in-memory history of recent events
"""

import logging
from collections import deque
from typing import Callable, Optional

import structlog

from finledger.models.audit import AuditEvent


AuditListener = Callable[[AuditEvent], None]

_configured = False


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog on top of the standard library logging module.

    Safe to call more than once; only the first call takes effect.
    """
    global _configured
    if _configured:
        return

    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
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
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


class AuditLogger:
    """
    Central audit logging service.

    Logs events to:
    1. Structured local log (structlog)
    2. In-memory history (for the UI and for tests)
    3. Any registered listeners
    """

    def __init__(self, history_size: int = 500):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
        """
        self._logger = structlog.get_logger("finledger.audit")
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._listeners: list[AuditListener] = []

    def subscribe(self, listener: AuditListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: AuditListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def log(self, event: AuditEvent) -> None:
        """
        Log an audit event.

        Always logs locally, then records it and notifies listeners.
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._history.append(event)

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                # A broken listener must not break the mutation that triggered it
                self._logger.error(
                    "audit_listener_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )

    def recent_events(self, limit: Optional[int] = None) -> list[AuditEvent]:
        """Most recent events, newest first."""
        events = list(reversed(self._history))
        return events if limit is None else events[:limit]

    def clear(self) -> None:
        self._history.clear()
