"""
Income flow.

Incomes are created COMPLETED unless told otherwise, and only COMPLETED
incomes count towards a user's total.
"""

from typing import Any, Optional

from expense_tracker.audit import AuditLogger
from expense_tracker.flows.errors import NotFoundError
from expense_tracker.flows.population import USER_SUMMARY_FIELDS, populate, populate_one
from expense_tracker.models import AuditEventType, IncomeCreate, IncomeStatus, IncomeUpdate
from expense_tracker.services.storage import (
    ACCOUNTS,
    DESCENDING,
    INCOMES,
    USERS,
    DocumentStoreInterface,
)
from expense_tracker.validation import PayloadValidationError, validate_payload


INCOME_NOT_FOUND = "Income not found"

INCOME_REFERENCES = {"accountId": ACCOUNTS, "userId": USERS}

NEWEST_FIRST = [("transactionDate", DESCENDING)]


class IncomeFlow:
    """Business rules for incomes."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

    async def _audit(self, event_type: AuditEventType, income_id: str, fields=None) -> None:
        if self._audit_logger:
            await self._audit_logger.log_record_changed(event_type, "income", income_id, fields)

    async def create_income(self, payload: Any) -> dict:
        data = validate_payload(IncomeCreate, payload)
        created = await self._store.insert(INCOMES, data.to_document())
        await self._audit(AuditEventType.INCOME_CREATED, created["_id"])
        return created

    async def list_incomes(self, user_id: Optional[str] = None) -> list[dict]:
        """A user's incomes (or all of them), newest first, populated."""
        filters = {"userId": user_id} if user_id else {}
        incomes = await self._store.find(INCOMES, filters, sort=NEWEST_FIRST)
        return await populate(self._store, incomes, INCOME_REFERENCES)

    async def list_all(self) -> list[dict]:
        """
        Every income for the admin listing.

        The owner is reduced to id, names and email.
        """
        incomes = await self._store.find(INCOMES, sort=NEWEST_FIRST)
        return await populate(
            self._store,
            incomes,
            INCOME_REFERENCES,
            projections={"userId": USER_SUMMARY_FIELDS},
        )

    async def get_income(self, income_id: str) -> dict:
        income = await self._store.get_by_id(INCOMES, income_id)
        if income is None:
            raise NotFoundError(INCOME_NOT_FOUND)
        return await populate_one(self._store, income, INCOME_REFERENCES)

    async def update_income(self, income_id: str, payload: Any) -> dict:
        """Partial edit. Status only changes when it is supplied."""
        data = validate_payload(IncomeUpdate, payload)
        changes = data.to_changes()

        if changes:
            updated = await self._store.update_by_id(INCOMES, income_id, changes)
        else:
            updated = await self._store.get_by_id(INCOMES, income_id)
        if updated is None:
            raise NotFoundError(INCOME_NOT_FOUND)

        if changes:
            await self._audit(AuditEventType.INCOME_UPDATED, income_id, sorted(changes))
        return updated

    async def delete_income(self, income_id: str) -> dict:
        deleted = await self._store.delete_by_id(INCOMES, income_id)
        if deleted is None:
            raise NotFoundError(INCOME_NOT_FOUND)
        await self._audit(AuditEventType.INCOME_DELETED, income_id)
        return deleted

    async def total_income(self, user_id: Optional[str]) -> float:
        """Sum of the user's COMPLETED incomes."""
        if not user_id or not user_id.strip():
            raise PayloadValidationError(
                {"userId": "userId is required"}, message="UserId is required"
            )
        return await self._store.sum_field(
            INCOMES,
            "amount",
            {"userId": user_id.strip(), "status": IncomeStatus.COMPLETED.value},
        )
