"""
Audit logging for ledger actions.

Loads, inserts, local fallbacks, deletes, receipt extraction and
budget or credential changes are each recorded as a typed AuditEvent
and rendered as one JSON line through structlog.

Correlation ids group the events of a single user action. Secrets are
never logged; credential events carry the owner id only.
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocket_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditSeverity,
)


# JSON lines with ISO timestamps
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


class AuditLogger:
    """
    Central audit logging service.

    Renders AuditEvents through structlog. Keeps the last events in
    memory so callers (and tests) can inspect what happened.
    """

    def __init__(self, name: str = "pocket_ledger", history_size: int = 200):
        self._logger = structlog.get_logger(name)
        self._history: list[AuditEvent] = []
        self._history_size = history_size

    @property
    def history(self) -> list[AuditEvent]:
        return list(self._history)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event at the level matching its severity."""
        self._history.append(event)
        if len(self._history) > self._history_size:
            del self._history[0]

        log_dict = event.to_log_dict()
        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., receipt upload).
    Pass it through all subsequent operations.
    """
    return uuid4()
