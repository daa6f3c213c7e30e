"""
Shared fixtures.

Nothing here touches the network: the document store is in memory and
the mail and receipt services are fakes that record what they were
asked to do.
"""

import copy
import os
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Optional

# Cheap hashes for tests; must be set before settings are first read
os.environ.setdefault("AUTH_BCRYPT_ROUNDS", "4")
os.environ.setdefault("AUTH_SECRET_KEY", "test-secret-key")

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from PIL import Image

from expense_tracker.api import create_app
from expense_tracker.config import get_settings
from expense_tracker.orchestrator import create_app_components
from expense_tracker.services.mail import MailDeliveryError
from expense_tracker.services.receipts import (
    CloudinaryReceiptService,
    HostedReceipt,
    ReceiptUploadError,
)
from expense_tracker.services.storage import (
    USERS,
    DocumentStoreInterface,
    DuplicateError,
    StorageError,
)

get_settings.cache_clear()


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

class InMemoryDocumentStore(DocumentStoreInterface):
    """
    Dict-backed store with the same contract as the MongoDB one.

    Ids are ObjectId strings, ``users.email`` is unique, and every read
    returns a copy so tests can't mutate stored state by accident.
    """

    UNIQUE_FIELDS = {USERS: ("email",)}

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {}

    def _collection(self, name: str) -> dict[str, dict]:
        return self.collections.setdefault(name, {})

    def _check_unique(self, collection: str, document: dict, doc_id: Optional[str] = None):
        for field in self.UNIQUE_FIELDS.get(collection, ()):
            if field not in document:
                continue
            for other_id, other in self._collection(collection).items():
                if other_id != doc_id and other.get(field) == document[field]:
                    raise DuplicateError(f"Duplicate key in {collection}: {field}")

    @staticmethod
    def _matches(document: dict, filters: dict[str, Any]) -> bool:
        return all(document.get(key) == value for key, value in filters.items())

    async def insert(self, collection: str, document: dict) -> dict:
        self._check_unique(collection, document)
        now = datetime.now(timezone.utc)
        stored = copy.deepcopy(document)
        stored["_id"] = str(ObjectId())
        stored.setdefault("createdAt", now)
        stored["updatedAt"] = now
        self._collection(collection)[stored["_id"]] = stored
        return copy.deepcopy(stored)

    async def get_by_id(self, collection: str, doc_id: str) -> Optional[dict]:
        if not ObjectId.is_valid(doc_id):
            return None
        found = self._collection(collection).get(doc_id)
        return copy.deepcopy(found) if found else None

    async def get_many_by_ids(self, collection: str, doc_ids: list[str]) -> dict[str, dict]:
        docs = self._collection(collection)
        return {doc_id: copy.deepcopy(docs[doc_id]) for doc_id in set(doc_ids) if doc_id in docs}

    async def find(self, collection, filters=None, sort=None) -> list[dict]:
        results = [
            copy.deepcopy(doc)
            for doc in self._collection(collection).values()
            if self._matches(doc, filters or {})
        ]
        for field, direction in reversed(sort or []):
            results.sort(
                key=lambda doc: (doc.get(field) is not None, doc.get(field) or 0),
                reverse=direction < 0,
            )
        return results

    async def find_one(self, collection: str, filters: dict[str, Any]) -> Optional[dict]:
        results = await self.find(collection, filters)
        return results[0] if results else None

    async def find_one_case_insensitive(self, collection, field, value) -> Optional[dict]:
        for doc in self._collection(collection).values():
            stored = doc.get(field)
            if isinstance(stored, str) and stored.lower() == value.lower():
                return copy.deepcopy(doc)
        return None

    async def update_by_id(self, collection, doc_id, changes) -> Optional[dict]:
        docs = self._collection(collection)
        if doc_id not in docs:
            return None
        self._check_unique(collection, changes, doc_id)
        docs[doc_id].update(copy.deepcopy(changes))
        docs[doc_id]["updatedAt"] = datetime.now(timezone.utc)
        return copy.deepcopy(docs[doc_id])

    async def append_to_list(self, collection, doc_id, field, item) -> Optional[dict]:
        docs = self._collection(collection)
        if doc_id not in docs:
            return None
        docs[doc_id].setdefault(field, []).append(copy.deepcopy(item))
        docs[doc_id]["updatedAt"] = datetime.now(timezone.utc)
        return copy.deepcopy(docs[doc_id])

    async def delete_by_id(self, collection, doc_id) -> Optional[dict]:
        return self._collection(collection).pop(doc_id, None)

    async def sum_field(self, collection, field, filters=None) -> float:
        return float(sum(
            doc[field]
            for doc in self._collection(collection).values()
            if self._matches(doc, filters or {}) and isinstance(doc.get(field), (int, float))
        ))


class FailingInsertStore(InMemoryDocumentStore):
    """Refuses inserts into the named collections."""

    def __init__(self, *collections: str):
        super().__init__()
        self.failing = set(collections)

    async def insert(self, collection: str, document: dict) -> dict:
        if collection in self.failing:
            raise StorageError(f"Failed to insert into {collection}: disk full")
        return await super().insert(collection, document)


# =============================================================================
# FAKE OUTBOUND SERVICES
# =============================================================================

class FakeMailer:
    """Records mails instead of sending them; can be told to fail."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.welcomed: list[str] = []
        self.resets: list[tuple[str, str, list[str]]] = []

    async def send_welcome(self, user: dict) -> None:
        if self.fail:
            raise MailDeliveryError("SMTP server unavailable")
        self.welcomed.append(user["email"])

    async def send_password_reset(self, user: dict, reset_link: str, fallback_links=None) -> None:
        if self.fail:
            raise MailDeliveryError("SMTP server unavailable")
        self.resets.append((user["email"], reset_link, list(fallback_links or [])))


class FakeReceiptService(CloudinaryReceiptService):
    """Real image checks, fake hosting."""

    def __init__(self, fail_upload: bool = False, fail_delete: bool = False):
        super().__init__()
        self.fail_upload = fail_upload
        self.fail_delete = fail_delete
        self.uploaded: list[str] = []
        self.deleted: list[str] = []

    async def upload(self, image_bytes: bytes, filename: str) -> HostedReceipt:
        self.check_image(image_bytes)
        if self.fail_upload:
            raise ReceiptUploadError("Cloudinary error: invalid credentials")
        public_id = f"expense_tracker/receipts/{len(self.uploaded) + 1}"
        self.uploaded.append(public_id)
        return HostedReceipt(url=f"https://res.cloudinary.com/demo/{public_id}.png", public_id=public_id)

    async def delete(self, public_id: str) -> bool:
        if self.fail_delete:
            raise ReceiptUploadError("Cloudinary error: timeout")
        self.deleted.append(public_id)
        return True


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def receipts():
    return FakeReceiptService()


@pytest.fixture
def components(store, mailer, receipts):
    return create_app_components(store=store, mailer=mailer, receipts=receipts)


@pytest.fixture
def client(components):
    with TestClient(create_app(components)) as test_client:
        yield test_client


@pytest.fixture
def png_bytes():
    buffer = BytesIO()
    Image.new("RGB", (40, 60), color=(200, 180, 90)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def signup(client):
    """Create users through the API: ``signup(email=..., password=...)``."""
    counter = {"n": 0}

    def _signup(email: Optional[str] = None, password: str = "secret1", **extra) -> dict:
        counter["n"] += 1
        body = {
            "firstName": "Test",
            "lastName": f"User{counter['n']}",
            "email": email or f"user{counter['n']}@example.com",
            "password": password,
            **extra,
        }
        response = client.post("/user", json=body)
        assert response.status_code == 201, response.json()
        return response.json()["data"]

    return _signup


@pytest.fixture
def catalog(client, signup):
    """A user plus one category, subcategory, vendor and account they own."""
    user = signup()
    category = client.post("/category", json={"name": "Food"}).json()["data"]
    subcategory = client.post(
        "/subcategory",
        json={"name": "Groceries", "categoryId": category["_id"], "userId": user["_id"]},
    ).json()["data"]
    vendor = client.post("/vendor", json={"title": "Corner Shop", "userId": user["_id"]}).json()["data"]
    account = client.post(
        "/account", json={"title": "Wallet", "amount": 500, "userId": user["_id"]}
    ).json()["data"]
    return {
        "user": user,
        "category": category,
        "subcategory": subcategory,
        "vendor": vendor,
        "account": account,
    }


@pytest.fixture
def expense_body(catalog):
    def _body(**overrides) -> dict:
        body = {
            "title": "Weekly shop",
            "categoryId": catalog["category"]["_id"],
            "subcategoryId": catalog["subcategory"]["_id"],
            "vendorId": catalog["vendor"]["_id"],
            "accountId": catalog["account"]["_id"],
            "userId": catalog["user"]["_id"],
            "amount": 42.5,
            "transactionDate": "2024-05-01T10:00:00Z",
            "description": "Milk and bread",
        }
        body.update(overrides)
        return body

    return _body
