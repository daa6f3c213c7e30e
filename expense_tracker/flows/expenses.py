"""
Expense flow, including ingestion with an optional receipt.

Flow for an expense with a receipt:
1. Validate the expense fields  -> nothing leaves the process on failure
2. Check the file is an image    -> nothing is uploaded on failure
3. Upload to the receipt host    -> critical: failure is reported (502)
4. Insert the expense with the hosted URL
5. If the insert fails, destroy the hosted receipt (compensation)

DESIGN DECISION: Status changes and comment appends are separate
mutations. Changing status never touches comments, and appending a
comment never touches status.
"""

from typing import Any, Optional

import structlog

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.flows.errors import NotFoundError, UpstreamServiceError
from expense_tracker.flows.population import populate, populate_one
from expense_tracker.models import (
    AuditEventType,
    Comment,
    ExpenseCreate,
    ExpenseStatusUpdate,
    ExpenseUpdate,
    utc_now,
)
from expense_tracker.services.receipts import (
    CloudinaryReceiptService,
    InvalidReceiptError,
    ReceiptError,
)
from expense_tracker.services.storage import (
    ACCOUNTS,
    CATEGORIES,
    EXPENSES,
    SUBCATEGORIES,
    USERS,
    VENDORS,
    DocumentStoreInterface,
)
from expense_tracker.validation import PayloadValidationError, validate_payload


logger = structlog.get_logger(__name__)

EXPENSE_NOT_FOUND = "Expense not found"

# Every reference an expense carries, and where it points
EXPENSE_REFERENCES = {
    "categoryId": CATEGORIES,
    "subcategoryId": SUBCATEGORIES,
    "vendorId": VENDORS,
    "accountId": ACCOUNTS,
    "userId": USERS,
}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ExpenseFlow:
    """
    Business rules for expenses.

    The receipt service is only needed for uploads; without one, an
    upload is reported as an upstream failure.
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        receipts: Optional[CloudinaryReceiptService] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._receipts = receipts
        self._audit_logger = audit_logger

    async def create_expense(self, payload: Any) -> dict:
        """Create an expense from a JSON body."""
        data = validate_payload(ExpenseCreate, payload)
        document = data.to_document()
        document["comments"] = []
        created = await self._store.insert(EXPENSES, document)

        if self._audit_logger:
            await self._audit_logger.log_expense_created(
                created["_id"], data.amount, has_receipt=bool(data.receipt_url)
            )
        return created

    async def create_with_receipt(
        self,
        fields: Any,
        image_bytes: Optional[bytes],
        filename: str = "receipt",
    ) -> dict:
        """
        Create an expense, uploading its receipt first.

        Without a file this is the same as ``create_expense``.

        Raises:
            PayloadValidationError: Bad expense fields or a rejected file
            UpstreamServiceError: The receipt host failed the upload
        """
        data = validate_payload(ExpenseCreate, fields)
        if not image_bytes:
            return await self.create_expense(fields)

        if self._receipts is None:
            raise UpstreamServiceError(
                "Receipt upload failed",
                error="Receipt hosting is not configured",
            )

        try:
            self._receipts.check_image(image_bytes)
        except InvalidReceiptError as e:
            raise PayloadValidationError({"image": str(e)}, message="Invalid receipt image")

        correlation_id = create_correlation_id()
        try:
            hosted = await self._receipts.upload(image_bytes, filename)
        except ReceiptError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="cloudinary",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise UpstreamServiceError("Receipt upload failed", error=str(e))

        if self._audit_logger:
            await self._audit_logger.log_receipt_uploaded(
                public_id=hosted.public_id,
                filename=filename,
                file_size=len(image_bytes),
                correlation_id=correlation_id,
            )

        document = data.to_document()
        document["receiptUrl"] = hosted.url
        document["comments"] = []
        try:
            created = await self._store.insert(EXPENSES, document)
        except Exception:
            await self._compensate(hosted.public_id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_created(
                created["_id"], data.amount, has_receipt=True, correlation_id=correlation_id
            )
        return created

    async def _compensate(self, public_id: str, correlation_id) -> None:
        """Remove a receipt whose expense was never stored."""
        removed = False
        error_message = None
        try:
            removed = await self._receipts.delete(public_id)
        except ReceiptError as e:
            error_message = str(e)
            logger.error("receipt_compensation_failed", public_id=public_id, error=error_message)

        if self._audit_logger:
            await self._audit_logger.log_receipt_compensated(
                public_id=public_id,
                removed=removed,
                correlation_id=correlation_id,
                error_message=error_message,
            )

    async def list_expenses(self) -> list[dict]:
        """Every expense, all five references populated."""
        expenses = await self._store.find(EXPENSES)
        return await populate(self._store, expenses, EXPENSE_REFERENCES)

    async def list_for_user(self, user_id: str) -> list[dict]:
        """
        One user's expenses, populated.

        A user id that isn't a native store id still matches records that
        stored it as a plain string.
        """
        if _blank(user_id):
            raise PayloadValidationError(
                {"userId": "userId is required"}, message="User ID is required"
            )
        expenses = await self._store.find(EXPENSES, {"userId": user_id.strip()})
        return await populate(self._store, expenses, EXPENSE_REFERENCES)

    async def get_expense(self, expense_id: str) -> dict:
        expense = await self._store.get_by_id(EXPENSES, expense_id)
        if expense is None:
            raise NotFoundError(EXPENSE_NOT_FOUND)
        return await populate_one(self._store, expense, EXPENSE_REFERENCES)

    async def update_expense(self, expense_id: str, payload: Any) -> dict:
        """Partial edit of the expense's own fields. Comments stay as they are."""
        data = validate_payload(ExpenseUpdate, payload)
        changes = data.to_changes()

        if changes:
            updated = await self._store.update_by_id(EXPENSES, expense_id, changes)
        else:
            updated = await self._store.get_by_id(EXPENSES, expense_id)
        if updated is None:
            raise NotFoundError(EXPENSE_NOT_FOUND)

        if self._audit_logger and changes:
            await self._audit_logger.log_record_changed(
                AuditEventType.EXPENSE_UPDATED, "expense", expense_id, sorted(changes)
            )
        return updated

    async def update_status(self, expense_id: str, payload: Any) -> dict:
        """
        Move an expense to a new review status.

        Only ``status`` (and ``updatedAt``) change.
        """
        if not isinstance(payload, dict) or _blank(payload.get("status")):
            raise PayloadValidationError(
                {"status": "status is required"}, message="Status is required"
            )
        data = validate_payload(ExpenseStatusUpdate, payload)

        updated = await self._store.update_by_id(EXPENSES, expense_id, {"status": data.status})
        if updated is None:
            raise NotFoundError(EXPENSE_NOT_FOUND)

        if self._audit_logger:
            await self._audit_logger.log_expense_status_changed(expense_id, data.status)
        return updated

    async def add_comment(self, expense_id: str, payload: Any) -> dict:
        """Append a timestamped comment. Status is left alone."""
        if not isinstance(payload, dict) or _blank(payload.get("text")):
            raise PayloadValidationError(
                {"text": "text is required"}, message="Comment text is required"
            )
        # The append time wins over any client-sent timestamp
        comment = validate_payload(Comment, payload).model_copy(update={"timestamp": utc_now()})

        updated = await self._store.append_to_list(
            EXPENSES, expense_id, "comments", comment.to_document()
        )
        if updated is None:
            raise NotFoundError(EXPENSE_NOT_FOUND)

        if self._audit_logger:
            await self._audit_logger.log_comment_added(expense_id, comment.user)
        return updated

    async def delete_expense(self, expense_id: str) -> dict:
        deleted = await self._store.delete_by_id(EXPENSES, expense_id)
        if deleted is None:
            raise NotFoundError(EXPENSE_NOT_FOUND)

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.EXPENSE_DELETED, "expense", expense_id
            )
        return deleted
