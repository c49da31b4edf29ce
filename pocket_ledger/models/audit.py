"""
Audit Models for Pocket Ledger

Every significant ledger action is recorded as a typed event:
1. Loads and per-source failures
2. Inserts, local fallbacks and deletes
3. Receipt extraction and commit
4. Budget and credential changes

DESIGN DECISION: Events are structured records, not free-form log lines.
The AuditLogger renders them through structlog.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger loading
    LEDGER_HYDRATED = "ledger_hydrated"
    LEDGER_LOADED = "ledger_loaded"
    SOURCE_FETCH_FAILED = "source_fetch_failed"
    LOAD_FAILED = "load_failed"

    # Ledger mutations
    TRANSACTION_INSERTED = "transaction_inserted"
    LOCAL_FALLBACK_USED = "local_fallback_used"
    TRANSACTION_DELETED = "transaction_deleted"
    REMOTE_DELETE_FAILED = "remote_delete_failed"

    # Offline cache
    CACHE_WRITE_FAILED = "cache_write_failed"
    CACHE_DISCARDED = "cache_discarded"

    # Receipt pipeline
    OCR_STARTED = "ocr_started"
    OCR_COMPLETED = "ocr_completed"
    OCR_FAILED = "ocr_failed"
    OCR_CANCELLED = "ocr_cancelled"
    RECEIPT_COMMITTED = "receipt_committed"

    # Budgets
    BUDGET_SET = "budget_set"
    BUDGET_REMOVED = "budget_removed"

    # Credentials
    CREDENTIAL_SAVED = "credential_saved"
    CREDENTIAL_CLEARED = "credential_cleared"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about? (transaction id, category id, ...)
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None

    # Ties together the events of one user action
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.ledger_loaded(added=25, has_more=True, errors=[])
        event = AuditEventBuilder.transaction_deleted("42", correlation_id)
    """

    @staticmethod
    def ledger_hydrated(count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_HYDRATED,
            entity_type="ledger",
            description=f"Ledger hydrated from cache with {count} transactions",
            details={"count": count},
        )

    @staticmethod
    def ledger_loaded(
        added: int,
        has_more: bool,
        reset: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Loaded page: {added} new transactions",
            details={"added": added, "has_more": has_more, "reset": reset},
        )

    @staticmethod
    def source_fetch_failed(
        source: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SOURCE_FETCH_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="source",
            entity_id=source,
            correlation_id=correlation_id,
            description=f"Fetching {source} transactions failed; continuing without it",
            error_message=error_message,
        )

    @staticmethod
    def load_failed(
        errors: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="All sources failed; ledger left unchanged",
            details={"errors": errors},
        )

    @staticmethod
    def transaction_inserted(
        transaction_id: str,
        label: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_INSERTED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction saved: {label} {amount}",
            details={"label": label, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def local_fallback_used(
        count: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCAL_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Remote insert failed; kept {count} transaction(s) locally",
            details={"count": count},
            error_message=error_message,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction deleted: {transaction_id}",
            is_user_action=True,
        )

    @staticmethod
    def remote_delete_failed(
        transaction_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_DELETE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Remote delete failed; local delete kept",
            error_message=error_message,
        )

    @staticmethod
    def cache_write_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CACHE_WRITE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="cache",
            entity_id=key,
            description=f"Could not write local cache key {key}",
            error_message=error_message,
        )

    @staticmethod
    def cache_discarded(key: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CACHE_DISCARDED,
            severity=AuditSeverity.WARNING,
            entity_type="cache",
            entity_id=key,
            description=f"Ignoring malformed cache key {key}",
            error_message=reason,
        )

    @staticmethod
    def ocr_started(size_bytes: int, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCR_STARTED,
            entity_type="receipt",
            correlation_id=correlation_id,
            description="Receipt sent for extraction",
            details={"size_bytes": size_bytes},
            is_user_action=True,
        )

    @staticmethod
    def ocr_completed(item_count: int, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCR_COMPLETED,
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Receipt extraction returned {item_count} items",
            details={"item_count": item_count},
        )

    @staticmethod
    def ocr_failed(error_message: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCR_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            correlation_id=correlation_id,
            description="Receipt extraction failed",
            error_message=error_message,
        )

    @staticmethod
    def ocr_cancelled(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCR_CANCELLED,
            entity_type="receipt",
            correlation_id=correlation_id,
            description="Receipt extraction cancelled by user",
            is_user_action=True,
        )

    @staticmethod
    def receipt_committed(
        count: int,
        confirmed: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_COMMITTED,
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Committed {count} receipt items",
            details={"count": count, "confirmed": confirmed},
            is_user_action=True,
        )

    @staticmethod
    def budget_set(category_id: str, limit: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            entity_type="budget",
            entity_id=category_id,
            description=f"Budget for {category_id} set to {limit}",
            details={"limit": limit},
            is_user_action=True,
        )

    @staticmethod
    def budget_removed(category_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_REMOVED,
            entity_type="budget",
            entity_id=category_id,
            description=f"Budget for {category_id} removed",
            is_user_action=True,
        )

    @staticmethod
    def credential_saved(owner_id: str, stored_remotely: bool) -> AuditEvent:
        # Never put the secret itself in an event
        return AuditEvent(
            event_type=AuditEventType.CREDENTIAL_SAVED,
            entity_type="credential",
            entity_id=owner_id,
            description="OCR credential saved",
            details={"stored_remotely": stored_remotely},
            is_user_action=True,
        )

    @staticmethod
    def credential_cleared(owner_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CREDENTIAL_CLEARED,
            entity_type="credential",
            entity_id=owner_id,
            description="OCR credential removed",
            is_user_action=True,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
