"""
Main Orchestrator for Expense Tracker

This module ties together all the components: the document store, the
outbound services (mail, receipt hosting), the audit logger and the
business flows built on top of them.

DESIGN DECISION: The orchestrator is the only place that decides which
concrete services are used. Flows receive their collaborators, so tests
swap in an in-memory store and fake services without patching anything.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.config import get_settings
from expense_tracker.flows import (
    AuthFlow,
    CatalogFlow,
    ExpenseFlow,
    IncomeFlow,
    UserFlow,
)
from expense_tracker.services.mail import SmtpMailService
from expense_tracker.services.receipts import CloudinaryReceiptService
from expense_tracker.services.storage import DocumentStoreInterface, MongoDocumentStore


logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything a request handler may need."""
    store: DocumentStoreInterface
    audit_logger: AuditLogger
    auth: AuthFlow
    users: UserFlow
    catalog: CatalogFlow
    expenses: ExpenseFlow
    incomes: IncomeFlow

    async def bootstrap(self) -> None:
        """
        Prepare the store for serving.

        Connects the store, creates indexes and seeds the default roles.
        Every step is idempotent, so this runs on every startup.
        """
        await self.store.connect()
        await self.store.ensure_indexes()
        seeded = await self.catalog.seed_roles()
        logger.info("store_ready", roles_seeded=len(seeded))

    async def shutdown(self) -> None:
        await self.store.close()


def create_app_components(
    store: Optional[DocumentStoreInterface] = None,
    mailer: Optional[SmtpMailService] = None,
    receipts: Optional[CloudinaryReceiptService] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Document store. Defaults to MongoDB from MONGO_* settings.
        mailer: Outbound mail. Defaults to SMTP from MAIL_* settings.
        receipts: Receipt host. Defaults to Cloudinary; its credentials
                  are only read on the first upload.
        audit_logger: Defaults to a logger persisting into ``store``
                      when PERSIST_AUDIT_EVENTS is on.

    Returns:
        AppComponents with every flow wired to the same services
    """
    store = store or MongoDocumentStore()
    mailer = mailer or SmtpMailService()
    receipts = receipts or CloudinaryReceiptService()
    if audit_logger is None:
        audit_logger = AuditLogger(store, persist=get_settings().app.persist_audit_events)

    users = UserFlow(store, audit_logger)
    return AppComponents(
        store=store,
        audit_logger=audit_logger,
        auth=AuthFlow(store, users=users, mailer=mailer, audit_logger=audit_logger),
        users=users,
        catalog=CatalogFlow(store),
        expenses=ExpenseFlow(store, receipts=receipts, audit_logger=audit_logger),
        incomes=IncomeFlow(store, audit_logger=audit_logger),
    )
