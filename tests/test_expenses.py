"""
Tests for the expense routes and flow.

Covers population, the status/comment split, lookups, and receipt
ingestion with its compensation path.
"""

import asyncio
from datetime import datetime, timezone

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from conftest import FailingInsertStore, FakeMailer, FakeReceiptService
from expense_tracker.api import create_app
from expense_tracker.orchestrator import create_app_components
from expense_tracker.services.storage import AUDIT_EVENTS, EXPENSES, StorageError


def add_expense(client, body):
    response = client.post("/expense/addexpence", json=body)
    assert response.status_code == 200, response.json()
    return response.json()["data"]


def as_form(body):
    return {key: str(value) for key, value in body.items()}


class TestExpenseReads:
    """Tests for listing and fetching expenses."""

    def test_create_then_fetch_populated(self, client, catalog, expense_body):
        """Test that a fetched expense has every reference populated."""
        created = add_expense(client, expense_body())
        assert created["status"] == "pending"
        assert created["comments"] == []

        response = client.get(f"/expense/getExpenceById/{created['_id']}")
        assert response.status_code == 200
        expense = response.json()["data"]
        assert expense["categoryId"]["name"] == "Food"
        assert expense["subcategoryId"]["name"] == "Groceries"
        assert expense["vendorId"]["title"] == "Corner Shop"
        assert expense["accountId"]["title"] == "Wallet"
        assert expense["userId"]["email"] == catalog["user"]["email"]
        assert "password" not in expense["userId"]

    def test_listing_is_populated(self, client, expense_body):
        """Test that the full listing populates references too."""
        add_expense(client, expense_body())
        add_expense(client, expense_body(title="Second"))
        expenses = client.get("/expense/expence").json()["data"]
        assert len(expenses) == 2
        assert all(expense["categoryId"]["name"] == "Food" for expense in expenses)

    def test_reads_are_idempotent(self, client, expense_body):
        """Test that repeated reads return the same record."""
        created = add_expense(client, expense_body())
        first = client.get(f"/expense/getExpenceById/{created['_id']}").json()
        second = client.get(f"/expense/getExpenceById/{created['_id']}").json()
        assert first == second

    def test_dangling_reference_populates_to_none(self, client, expense_body):
        """Test that a reference to a removed record reads as null."""
        created = add_expense(client, expense_body(vendorId=str(ObjectId())))
        expense = client.get(f"/expense/getExpenceById/{created['_id']}").json()["data"]
        assert expense["vendorId"] is None
        assert expense["categoryId"]["name"] == "Food"

    def test_list_for_user(self, client, catalog, expense_body, signup):
        """Test that the per-user listing only holds that user's expenses."""
        other = signup()
        add_expense(client, expense_body())
        add_expense(client, expense_body(userId=other["_id"]))

        response = client.get(f"/expense/getExpencebyuserid/{catalog['user']['_id']}")
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Expenses fetched successfully"
        assert len(body["data"]) == 1
        assert body["data"][0]["userId"]["_id"] == catalog["user"]["_id"]

    def test_list_for_user_with_no_expenses(self, client, catalog):
        """Test the message for an empty result."""
        body = client.get(f"/expense/getExpencebyuserid/{catalog['user']['_id']}").json()
        assert body["message"] == "No expenses found for this user"
        assert body["data"] == []

    def test_list_for_user_with_plain_string_id(self, client, expense_body):
        """Test that a user id that isn't a native id still matches."""
        add_expense(client, expense_body(userId="legacy-user-7"))
        body = client.get("/expense/getExpencebyuserid/legacy-user-7").json()
        assert len(body["data"]) == 1
        assert body["data"][0]["userId"] is None

    @pytest.mark.parametrize("expense_id", [str(ObjectId()), "not-an-id"])
    def test_unknown_expense_is_404(self, client, expense_id):
        """Test that unknown and malformed ids are both 404."""
        response = client.get(f"/expense/getExpenceById/{expense_id}")
        assert response.status_code == 404
        assert response.json()["message"] == "Expense not found"


class TestExpenseStatusAndComments:
    """Tests for the independent status and comment mutations."""

    def test_status_scenario(self, client, expense_body):
        """Test that an admin decision changes only the status."""
        created = add_expense(client, expense_body())
        response = client.put(
            f"/expense/updateExpenceStatus/{created['_id']}", json={"status": "Approved"}
        )
        assert response.status_code == 200
        updated = response.json()["data"]
        assert updated["status"] == "approved"
        assert updated["amount"] == created["amount"]
        assert updated["title"] == created["title"]

    def test_comment_then_status_keeps_both(self, client, expense_body):
        """Test that neither mutation undoes the other."""
        created = add_expense(client, expense_body())
        client.post(f"/expense/addComment/{created['_id']}", json={"text": "Need the receipt", "user": "admin"})
        client.put(f"/expense/updateExpenceStatus/{created['_id']}", json={"status": "rejected"})
        client.post(f"/expense/addComment/{created['_id']}", json={"text": "Rejected, no receipt"})

        expense = client.get(f"/expense/getExpenceById/{created['_id']}").json()["data"]
        assert expense["status"] == "rejected"
        assert [c["text"] for c in expense["comments"]] == ["Need the receipt", "Rejected, no receipt"]
        assert expense["comments"][0]["user"] == "admin"
        assert expense["comments"][1]["user"] == "Anonymous"
        assert expense["comments"][0]["timestamp"]

    def test_status_required(self, client, expense_body):
        """Test that a missing or blank status is a 400."""
        created = add_expense(client, expense_body())
        for body in ({}, {"status": "  "}):
            response = client.put(f"/expense/updateExpenceStatus/{created['_id']}", json=body)
            assert response.status_code == 400
            assert response.json()["message"] == "Status is required"

    @pytest.mark.parametrize("status", ["paid", {"value": "approved"}, 3])
    def test_invalid_status_rejected(self, client, expense_body, status):
        """Test that unknown and non-string statuses are refused."""
        created = add_expense(client, expense_body())
        response = client.put(
            f"/expense/updateExpenceStatus/{created['_id']}", json={"status": status}
        )
        assert response.status_code == 400
        stored = client.get(f"/expense/getExpenceById/{created['_id']}").json()["data"]
        assert stored["status"] == "pending"

    def test_status_of_unknown_expense(self, client):
        """Test that a status change on a missing expense is 404."""
        response = client.put(f"/expense/updateExpenceStatus/{ObjectId()}", json={"status": "approved"})
        assert response.status_code == 404

    def test_comment_text_required(self, client, expense_body):
        """Test that an empty comment is a 400."""
        created = add_expense(client, expense_body())
        response = client.post(f"/expense/addComment/{created['_id']}", json={"text": " "})
        assert response.status_code == 400
        assert response.json()["message"] == "Comment text is required"

    def test_comment_timestamp_is_set_on_append(self, client, expense_body):
        """Test that a client-sent timestamp is replaced by the append time."""
        created = add_expense(client, expense_body())
        before = datetime.now(timezone.utc)
        response = client.post(
            f"/expense/addComment/{created['_id']}",
            json={"text": "backdated", "timestamp": "2001-01-01T00:00:00Z"},
        )
        assert response.status_code == 200

        stamped = response.json()["data"]["comments"][0]["timestamp"]
        assert datetime.fromisoformat(stamped.replace("Z", "+00:00")) >= before

    def test_comment_on_unknown_expense(self, client):
        """Test that commenting on a missing expense is 404."""
        response = client.post(f"/expense/addComment/{ObjectId()}", json={"text": "hello"})
        assert response.status_code == 404


class TestExpenseEdits:
    """Tests for editing and deleting expenses."""

    def test_update_leaves_comments(self, client, expense_body):
        """Test that an edit doesn't touch the comment list."""
        created = add_expense(client, expense_body())
        client.post(f"/expense/addComment/{created['_id']}", json={"text": "keep me"})

        response = client.put(
            f"/expense/updateExpence/{created['_id']}",
            json={"amount": 99, "comments": []},
        )
        assert response.status_code == 200
        updated = response.json()["data"]
        assert updated["amount"] == 99
        assert [c["text"] for c in updated["comments"]] == ["keep me"]

    def test_update_unknown_expense(self, client):
        """Test that editing a missing expense is 404."""
        response = client.put(f"/expense/updateExpence/{ObjectId()}", json={"amount": 1})
        assert response.status_code == 404

    def test_create_missing_references(self, client):
        """Test that an expense without its references is a 400 listing them."""
        response = client.post("/expense/addexpence", json={"amount": 10})
        assert response.status_code == 400
        errors = response.json()["errors"]
        assert set(errors) == {"categoryId", "subcategoryId", "vendorId", "accountId", "userId"}

    def test_delete(self, client, expense_body):
        """Test that a deleted expense is gone."""
        created = add_expense(client, expense_body())
        response = client.delete(f"/expense/expence/{created['_id']}")
        assert response.status_code == 200
        assert client.get(f"/expense/getExpenceById/{created['_id']}").status_code == 404
        assert client.delete(f"/expense/expence/{created['_id']}").status_code == 404


class TestReceiptUpload:
    """Tests for POST /expense/addWithFile."""

    def test_upload_sets_receipt_url(self, client, expense_body, png_bytes, receipts):
        """Test that the stored expense points at the hosted receipt."""
        response = client.post(
            "/expense/addWithFile",
            data=as_form(expense_body()),
            files={"image": ("receipt.png", png_bytes, "image/png")},
        )
        assert response.status_code == 200, response.json()
        expense = response.json()["data"]
        assert expense["receiptUrl"].startswith("https://res.cloudinary.com/")
        assert expense["amount"] == 42.5
        assert receipts.uploaded == ["expense_tracker/receipts/1"]

    def test_without_file_is_plain_create(self, client, expense_body, receipts):
        """Test that the form route works without a receipt."""
        response = client.post("/expense/addWithFile", data=as_form(expense_body()))
        assert response.status_code == 200
        assert "receiptUrl" not in response.json()["data"]
        assert receipts.uploaded == []

    def test_blank_form_fields_are_absent(self, client, expense_body, png_bytes):
        """Test that empty form values count as not supplied."""
        response = client.post(
            "/expense/addWithFile",
            data=as_form(expense_body(description="", title="")),
            files={"image": ("receipt.png", png_bytes, "image/png")},
        )
        expense = response.json()["data"]
        assert "description" not in expense
        assert "title" not in expense

    def test_invalid_image_uploads_nothing(self, client, expense_body, receipts, store):
        """Test that a non-image is rejected before any upload."""
        response = client.post(
            "/expense/addWithFile",
            data=as_form(expense_body()),
            files={"image": ("receipt.png", b"definitely not a png", "image/png")},
        )
        assert response.status_code == 400
        assert "image" in response.json()["errors"]
        assert receipts.uploaded == []
        assert asyncio.run(store.find(EXPENSES)) == []

    def test_invalid_fields_upload_nothing(self, client, png_bytes, receipts):
        """Test that bad expense fields are reported before the upload."""
        response = client.post(
            "/expense/addWithFile",
            data={"amount": "12"},
            files={"image": ("receipt.png", png_bytes, "image/png")},
        )
        assert response.status_code == 400
        assert receipts.uploaded == []

    def test_upload_failure_is_502(self, client, expense_body, png_bytes, receipts, store):
        """Test that a failed upload is reported and nothing is stored."""
        receipts.fail_upload = True
        response = client.post(
            "/expense/addWithFile",
            data=as_form(expense_body()),
            files={"image": ("receipt.png", png_bytes, "image/png")},
        )
        assert response.status_code == 502
        assert response.json()["message"] == "Receipt upload failed"
        assert asyncio.run(store.find(EXPENSES)) == []

    def test_insert_failure_removes_receipt(self, png_bytes):
        """Test that an uploaded receipt is destroyed when the insert fails."""
        store = FailingInsertStore(EXPENSES)
        receipts = FakeReceiptService()
        components = create_app_components(store=store, mailer=FakeMailer(), receipts=receipts)
        fields = {
            "categoryId": str(ObjectId()),
            "subcategoryId": str(ObjectId()),
            "vendorId": str(ObjectId()),
            "accountId": str(ObjectId()),
            "userId": str(ObjectId()),
            "amount": "10",
        }

        with TestClient(create_app(components)) as client:
            response = client.post(
                "/expense/addWithFile",
                data=fields,
                files={"image": ("receipt.png", png_bytes, "image/png")},
            )

        assert response.status_code == 500
        assert receipts.uploaded == ["expense_tracker/receipts/1"]
        assert receipts.deleted == ["expense_tracker/receipts/1"]

        events = asyncio.run(store.find(AUDIT_EVENTS, {"eventType": "receipt_compensated"}))
        assert len(events) == 1
        assert events[0]["details"]["removed"] is True

    def test_failed_compensation_is_audited(self, png_bytes):
        """Test that an orphaned receipt is recorded when the destroy fails too."""
        store = FailingInsertStore(EXPENSES)
        receipts = FakeReceiptService(fail_delete=True)
        components = create_app_components(store=store, mailer=FakeMailer(), receipts=receipts)
        expenses = components.expenses
        fields = {
            "categoryId": "c", "subcategoryId": "s", "vendorId": "v",
            "accountId": "a", "userId": "u",
        }

        with pytest.raises(StorageError):
            asyncio.run(expenses.create_with_receipt(fields, png_bytes, "receipt.png"))

        events = asyncio.run(store.find(AUDIT_EVENTS, {"eventType": "receipt_compensated"}))
        assert len(events) == 1
        assert events[0]["details"]["removed"] is False
        assert events[0]["severity"] == "error"
        assert receipts.deleted == []
