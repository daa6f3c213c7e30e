"""
MongoDB Storage Implementation

DESIGN DECISION: MongoDB is the document store because:
1. Records are naturally documents (an expense embeds its comments)
2. References between records are plain ids, resolved at read time
3. Ad-hoc fields on user records need no migrations

TRADEOFFS:
- No multi-document transactions (the receipt upload compensates instead)
- Population is done with one batched $in query per reference field

Reference fields are stored as ObjectIds when the supplied string is a
valid ObjectId, and as the raw string otherwise. Filters apply the same
conversion, so a malformed user id degrades to a string-equality match
instead of failing.

The driver is synchronous: every call runs in a worker thread so the
event loop keeps serving other requests. The connection is opened once
at startup; a store that was never connected raises ConnectionError
instead of connecting mid-request.
"""

import asyncio
import re
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_tracker.config import get_settings
from expense_tracker.services.storage.interface import (
    ACCOUNTS,
    INCOMES,
    USERS,
    ConnectionError,
    DocumentStoreInterface,
    DuplicateError,
    StorageError,
    is_reference_field,
)


def to_native_id(value: Any) -> Any:
    """Convert a string id to an ObjectId when it is one, else leave it."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def to_storage(document: dict) -> dict:
    """Convert reference fields of an outgoing document to native ids."""
    return {
        key: to_native_id(value) if is_reference_field(key) else value
        for key, value in document.items()
    }


def from_storage(value: Any) -> Any:
    """Recursively replace ObjectIds with their string form."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {key: from_storage(item) for key, item in value.items()}
    if isinstance(value, list):
        return [from_storage(item) for item in value]
    return value


def _object_id(doc_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(doc_id)
    except (InvalidId, TypeError):
        return None


class MongoClientWrapper:
    """
    Low-level MongoDB client wrapper.

    Handles connection setup and provides retry logic for the initial ping.
    """

    def __init__(self):
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None
        self._settings = get_settings().mongo

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> Database:
        """
        Establish the connection and verify the server answers.

        The driver connects lazily, so an explicit ping is what surfaces
        a wrong URL or an unreachable server at startup.
        """
        if self._database is None:
            try:
                client = MongoClient(
                    self._settings.url,
                    serverSelectionTimeoutMS=self._settings.server_selection_timeout_ms,
                    tz_aware=True,
                )
                client.admin.command("ping")
            except PyMongoError as e:
                raise ConnectionError(f"Failed to connect to MongoDB: {e}")
            self._client = client
            self._database = client[self._settings.database]
        return self._database

    def collection(self, name: str) -> Collection:
        if self._database is None:
            raise ConnectionError("MongoDB is not connected; connect() runs at startup")
        return self._database[name]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._database = None


class MongoDocumentStore(DocumentStoreInterface):
    """
    MongoDB implementation of document storage.

    One collection per record type; documents are stored as-is apart
    from id conversion and timestamps.
    """

    def __init__(self, client: Optional[MongoClientWrapper] = None):
        self._client = client or MongoClientWrapper()

    def _collection(self, name: str) -> Collection:
        return self._client.collection(name)

    async def connect(self) -> None:
        """Connect and ping, with retries, off the event loop."""
        await asyncio.to_thread(self._client.connect)

    async def close(self) -> None:
        await asyncio.to_thread(self._client.close)

    async def ensure_indexes(self) -> None:
        """Unique email on users, lookup indexes on income references."""
        def create():
            self._collection(USERS).create_index("email", unique=True)
            self._collection(INCOMES).create_index("accountId")
            self._collection(INCOMES).create_index("userId")
            self._collection(ACCOUNTS).create_index("userId")

        try:
            await asyncio.to_thread(create)
        except PyMongoError as e:
            raise StorageError(f"Failed to create indexes: {e}")

    async def insert(self, collection: str, document: dict) -> dict:
        now = datetime.now(timezone.utc)
        stored = to_storage(document)
        stored.setdefault("createdAt", now)
        stored["updatedAt"] = now
        try:
            result = await asyncio.to_thread(self._collection(collection).insert_one, stored)
        except DuplicateKeyError as e:
            raise DuplicateError(f"Duplicate key in {collection}: {e.details}")
        except PyMongoError as e:
            raise StorageError(f"Failed to insert into {collection}: {e}")
        stored["_id"] = result.inserted_id
        return from_storage(stored)

    async def get_by_id(self, collection: str, doc_id: str) -> Optional[dict]:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        try:
            found = await asyncio.to_thread(self._collection(collection).find_one, {"_id": oid})
        except PyMongoError as e:
            raise StorageError(f"Failed to get from {collection}: {e}")
        return from_storage(found) if found else None

    async def get_many_by_ids(self, collection: str, doc_ids: list[str]) -> dict[str, dict]:
        oids = [oid for oid in (_object_id(doc_id) for doc_id in set(doc_ids)) if oid]
        if not oids:
            return {}

        def fetch():
            return list(self._collection(collection).find({"_id": {"$in": oids}}))

        try:
            found = await asyncio.to_thread(fetch)
        except PyMongoError as e:
            raise StorageError(f"Failed to get from {collection}: {e}")
        return {str(doc["_id"]): from_storage(doc) for doc in found}

    async def find(
        self,
        collection: str,
        filters: Optional[dict[str, Any]] = None,
        sort: Optional[list[tuple[str, int]]] = None,
    ) -> list[dict]:
        def fetch():
            cursor = self._collection(collection).find(to_storage(filters or {}))
            if sort:
                cursor = cursor.sort(sort)
            return list(cursor)

        try:
            found = await asyncio.to_thread(fetch)
        except PyMongoError as e:
            raise StorageError(f"Failed to list {collection}: {e}")
        return [from_storage(doc) for doc in found]

    async def find_one(self, collection: str, filters: dict[str, Any]) -> Optional[dict]:
        try:
            found = await asyncio.to_thread(
                self._collection(collection).find_one, to_storage(filters)
            )
        except PyMongoError as e:
            raise StorageError(f"Failed to query {collection}: {e}")
        return from_storage(found) if found else None

    async def find_one_case_insensitive(
        self,
        collection: str,
        field: str,
        value: str,
    ) -> Optional[dict]:
        pattern = f"^{re.escape(value)}$"
        try:
            found = await asyncio.to_thread(
                self._collection(collection).find_one,
                {field: {"$regex": pattern, "$options": "i"}},
            )
        except PyMongoError as e:
            raise StorageError(f"Failed to query {collection}: {e}")
        return from_storage(found) if found else None

    async def update_by_id(
        self,
        collection: str,
        doc_id: str,
        changes: dict[str, Any],
    ) -> Optional[dict]:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        update = to_storage(changes)
        update["updatedAt"] = datetime.now(timezone.utc)
        try:
            updated = await asyncio.to_thread(
                self._collection(collection).find_one_and_update,
                {"_id": oid},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise DuplicateError(f"Duplicate key in {collection}: {e.details}")
        except PyMongoError as e:
            raise StorageError(f"Failed to update {collection}: {e}")
        return from_storage(updated) if updated else None

    async def append_to_list(
        self,
        collection: str,
        doc_id: str,
        field: str,
        item: dict,
    ) -> Optional[dict]:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        try:
            updated = await asyncio.to_thread(
                self._collection(collection).find_one_and_update,
                {"_id": oid},
                {
                    "$push": {field: item},
                    "$set": {"updatedAt": datetime.now(timezone.utc)},
                },
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise StorageError(f"Failed to update {collection}: {e}")
        return from_storage(updated) if updated else None

    async def delete_by_id(self, collection: str, doc_id: str) -> Optional[dict]:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        try:
            deleted = await asyncio.to_thread(
                self._collection(collection).find_one_and_delete, {"_id": oid}
            )
        except PyMongoError as e:
            raise StorageError(f"Failed to delete from {collection}: {e}")
        return from_storage(deleted) if deleted else None

    async def sum_field(
        self,
        collection: str,
        field: str,
        filters: Optional[dict[str, Any]] = None,
    ) -> float:
        pipeline = [
            {"$match": to_storage(filters or {})},
            {"$group": {"_id": None, "total": {"$sum": f"${field}"}}},
        ]

        def aggregate():
            return list(self._collection(collection).aggregate(pipeline))

        try:
            result = await asyncio.to_thread(aggregate)
        except PyMongoError as e:
            raise StorageError(f"Failed to aggregate {collection}: {e}")
        return float(result[0]["total"]) if result else 0.0
