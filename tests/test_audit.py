"""Tests for the audit logger."""

import asyncio

from fastapi.testclient import TestClient

from conftest import FailingInsertStore, FakeMailer, FakeReceiptService, InMemoryDocumentStore
from expense_tracker.api import create_app
from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.models import AuditEventBuilder, AuditEventType
from expense_tracker.orchestrator import create_app_components
from expense_tracker.services.storage import AUDIT_EVENTS, EXPENSES


class TestAuditLogger:
    """Tests for AuditLogger persistence."""

    def test_event_is_persisted(self):
        """Test that an event lands in the audit collection."""
        store = InMemoryDocumentStore()
        audit = AuditLogger(store)

        assert asyncio.run(audit.log(AuditEventBuilder.password_reset("u1"))) is True

        events = asyncio.run(store.find(AUDIT_EVENTS))
        assert len(events) == 1
        assert events[0]["eventType"] == "password_reset"
        assert events[0]["entityId"] == "u1"

    def test_storage_failure_is_not_raised(self):
        """Test that a failed audit write returns False instead of raising."""
        audit = AuditLogger(FailingInsertStore(AUDIT_EVENTS))
        assert asyncio.run(audit.log(AuditEventBuilder.password_reset("u1"))) is False

    def test_persistence_can_be_disabled(self):
        """Test that persist=False keeps events out of the store."""
        store = InMemoryDocumentStore()
        audit = AuditLogger(store, persist=False)

        assert asyncio.run(audit.log(AuditEventBuilder.password_reset("u1"))) is True
        assert asyncio.run(store.find(AUDIT_EVENTS)) == []

    def test_local_only_logger(self):
        """Test that a logger without a store still accepts events."""
        assert asyncio.run(AuditLogger().log(AuditEventBuilder.password_reset("u1"))) is True

    def test_correlated_events(self):
        """Test that related events share a correlation id."""
        store = InMemoryDocumentStore()
        audit = AuditLogger(store)
        correlation_id = create_correlation_id()

        asyncio.run(audit.log_receipt_uploaded("r/1", "receipt.png", 2048, correlation_id))
        asyncio.run(audit.log_expense_created("e1", 12.5, True, correlation_id=correlation_id))

        events = asyncio.run(store.find(AUDIT_EVENTS))
        assert {event["correlationId"] for event in events} == {str(correlation_id)}

    def test_record_changed_helper(self):
        """Test the generic change helper."""
        store = InMemoryDocumentStore()
        asyncio.run(
            AuditLogger(store).log_record_changed(
                AuditEventType.EXPENSE_UPDATED, "expense", "e1", ["amount"]
            )
        )
        event = asyncio.run(store.find(AUDIT_EVENTS))[0]
        assert event["eventType"] == "expense_updated"
        assert event["details"] == {"fields": ["amount"]}


class TestAuditThroughApi:
    """Tests for events recorded by the running app."""

    def test_signup_and_login_are_audited(self, client, signup, store):
        """Test that signup and a successful login each leave an event."""
        user = signup(email="me@example.com", password="secret1")
        client.post("/user/login", json={"email": "me@example.com", "password": "secret1"})

        events = asyncio.run(store.find(AUDIT_EVENTS))
        by_type = {event["eventType"]: event for event in events}
        assert by_type["user_signed_up"]["entityId"] == user["_id"]
        assert by_type["login_succeeded"]["details"] == {"role": "user"}

    def test_status_change_is_audited(self, client, expense_body, store):
        """Test that an admin decision is recorded."""
        created = client.post("/expense/addexpence", json=expense_body()).json()["data"]
        client.put(f"/expense/updateExpenceStatus/{created['_id']}", json={"status": "approved"})

        events = asyncio.run(store.find(AUDIT_EVENTS, {"eventType": "expense_status_changed"}))
        assert events[0]["entityId"] == created["_id"]
        assert events[0]["details"] == {"status": "approved"}

    def test_unexpected_error_is_audited(self, expense_body):
        """Test that a 500 leaves a system_error event behind."""
        store = FailingInsertStore(EXPENSES)
        components = create_app_components(store=store, mailer=FakeMailer(), receipts=FakeReceiptService())
        with TestClient(create_app(components)) as failing_client:
            response = failing_client.post("/expense/addexpence", json=expense_body())

        assert response.status_code == 500
        events = asyncio.run(store.find(AUDIT_EVENTS, {"eventType": "system_error"}))
        assert len(events) == 1
        assert events[0]["details"] == {"message": "Error saving expense"}
        assert events[0]["severity"] == "error"
