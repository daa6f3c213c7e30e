"""
Audit Models for Expense Tracker

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of credential changes and money movements
2. Debugging information when an outbound service fails
3. A record of admin review decisions

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts & credentials
    USER_SIGNED_UP = "user_signed_up"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_RESET = "password_reset"
    MAIL_DELIVERY_FAILED = "mail_delivery_failed"

    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_STATUS_CHANGED = "expense_status_changed"
    COMMENT_ADDED = "comment_added"
    RECEIPT_UPLOADED = "receipt_uploaded"
    RECEIPT_COMPENSATED = "receipt_compensated"

    # Incomes
    INCOME_CREATED = "income_created"
    INCOME_UPDATED = "income_updated"
    INCOME_DELETED = "income_deleted"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'user', 'expense', 'income')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store id of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., upload then insert)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
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

    def to_document(self) -> dict:
        """Convert to the shape stored in the audit_events collection."""
        return {
            "eventId": str(self.event_id),
            "timestamp": self.timestamp,
            "eventType": self.event_type.value,
            "severity": self.severity.value,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "correlationId": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "errorMessage": self.error_message,
            "isUserAction": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.user_signed_up(user_id, email)
        event = AuditEventBuilder.expense_status_changed(expense_id, "approved")
    """

    @staticmethod
    def user_signed_up(user_id: str, email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_UP,
            entity_type="user",
            entity_id=user_id,
            description=f"User signed up: {email}",
            details={"email": email},
            is_user_action=True,
        )

    @staticmethod
    def login_succeeded(user_id: str, role: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            entity_type="user",
            entity_id=user_id,
            description=f"Login succeeded as {role}",
            details={"role": role},
            is_user_action=True,
        )

    @staticmethod
    def login_failed(email: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            description=f"Login failed: {reason}",
            details={"email": email, "reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def password_reset_requested(user_id: str, email_sent: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PASSWORD_RESET_REQUESTED,
            entity_type="user",
            entity_id=user_id,
            description="Password reset link issued",
            details={"email_sent": email_sent},
            is_user_action=True,
        )

    @staticmethod
    def password_reset(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PASSWORD_RESET,
            entity_type="user",
            entity_id=user_id,
            description="Password replaced with reset token",
            is_user_action=True,
        )

    @staticmethod
    def mail_delivery_failed(kind: str, recipient: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MAIL_DELIVERY_FAILED,
            severity=AuditSeverity.WARNING,
            description=f"Could not deliver {kind} mail",
            error_message=error_message,
            details={"kind": kind, "recipient": recipient},
        )

    @staticmethod
    def expense_created(
        expense_id: str,
        amount: Optional[float],
        has_receipt: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Expense created" + (" with receipt" if has_receipt else ""),
            details={"amount": amount, "has_receipt": has_receipt},
            is_user_action=True,
        )

    @staticmethod
    def receipt_uploaded(
        public_id: str,
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_UPLOADED,
            entity_type="receipt",
            entity_id=public_id,
            correlation_id=correlation_id,
            description=f"Receipt uploaded: {filename}",
            details={"filename": filename, "file_size_bytes": file_size},
            is_user_action=True,
        )

    @staticmethod
    def receipt_compensated(
        public_id: str,
        removed: bool,
        correlation_id: UUID,
        error_message: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_COMPENSATED,
            severity=AuditSeverity.WARNING if removed else AuditSeverity.ERROR,
            entity_type="receipt",
            entity_id=public_id,
            correlation_id=correlation_id,
            description=(
                "Receipt removed after failed expense insert"
                if removed
                else "Receipt orphaned: compensating delete failed"
            ),
            error_message=error_message,
            details={"removed": removed},
        )

    @staticmethod
    def expense_status_changed(expense_id: str, status: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_STATUS_CHANGED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense marked {status}",
            details={"status": status},
            is_user_action=True,
        )

    @staticmethod
    def comment_added(expense_id: str, author: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMENT_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Comment added by {author}",
            details={"author": author},
            is_user_action=True,
        )

    @staticmethod
    def record_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        fields: Optional[list[str]] = None,
    ) -> AuditEvent:
        verb = event_type.value.rsplit("_", 1)[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} {verb}",
            details={"fields": fields or []},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
