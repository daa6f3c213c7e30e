"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of credential changes and money movements
2. Debugging capability when an outbound service fails
3. A record of admin review decisions

The audit logger:
- Never blocks a request on the audit write failing
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from expense_tracker.services.storage import AUDIT_EVENTS, DocumentStoreInterface


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit_events collection (for persistence)
    """

    def __init__(
        self,
        store: Optional[DocumentStoreInterface] = None,
        persist: bool = True,
    ):
        """
        Initialize audit logger.

        Args:
            store: Document store for persistence.
                   If None, only logs locally.
            persist: Set False to keep events out of the store
        """
        self._store = store if persist else None
        self._logger = structlog.get_logger("expense_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        # Always log locally
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        # Persist to storage if available
        if self._store is not None:
            try:
                await self._store.insert(AUDIT_EVENTS, event.to_document())
                return True
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_user_signed_up(self, user_id: str, email: str) -> None:
        await self.log(AuditEventBuilder.user_signed_up(user_id, email))

    async def log_login_succeeded(self, user_id: str, role: str) -> None:
        await self.log(AuditEventBuilder.login_succeeded(user_id, role))

    async def log_login_failed(self, email: str, reason: str) -> None:
        """Log a rejected login. The password is never recorded."""
        await self.log(AuditEventBuilder.login_failed(email, reason))

    async def log_password_reset_requested(self, user_id: str, email_sent: bool) -> None:
        await self.log(AuditEventBuilder.password_reset_requested(user_id, email_sent))

    async def log_password_reset(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.password_reset(user_id))

    async def log_mail_failed(self, kind: str, recipient: str, error_message: str) -> None:
        """Log a mail that could not be delivered."""
        await self.log(
            AuditEventBuilder.mail_delivery_failed(kind, recipient, error_message)
        )

    async def log_expense_created(
        self,
        expense_id: str,
        amount: Optional[float],
        has_receipt: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log expense creation."""
        event = AuditEventBuilder.expense_created(
            expense_id=expense_id,
            amount=amount,
            has_receipt=has_receipt,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_receipt_uploaded(
        self,
        public_id: str,
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> None:
        """Log receipt upload event."""
        event = AuditEventBuilder.receipt_uploaded(
            public_id=public_id,
            filename=filename,
            file_size=file_size,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_receipt_compensated(
        self,
        public_id: str,
        removed: bool,
        correlation_id: UUID,
        error_message: Optional[str] = None,
    ) -> None:
        """Log the compensating delete of an orphaned receipt."""
        event = AuditEventBuilder.receipt_compensated(
            public_id=public_id,
            removed=removed,
            correlation_id=correlation_id,
            error_message=error_message,
        )
        await self.log(event)

    async def log_expense_status_changed(self, expense_id: str, status: str) -> None:
        await self.log(AuditEventBuilder.expense_status_changed(expense_id, status))

    async def log_comment_added(self, expense_id: str, author: str) -> None:
        await self.log(AuditEventBuilder.comment_added(expense_id, author))

    async def log_record_changed(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        fields: Optional[list[str]] = None,
    ) -> None:
        """Log a create/update/delete of an expense or income."""
        event = AuditEventBuilder.record_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            fields=fields,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step action (e.g., receipt upload
    followed by the expense insert). Pass it through all subsequent
    operations.
    """
    return uuid4()
