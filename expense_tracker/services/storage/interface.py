"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep MongoDB specifics (ObjectIds, regex queries, $push) in one place
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ODM.
Documents go in and come out as plain dicts with camelCase keys; ids
(``_id`` and every ``*Id`` reference) come out as strings.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

# Collection names
USERS = "users"
ROLES = "roles"
CATEGORIES = "categories"
SUBCATEGORIES = "subcategories"
VENDORS = "vendors"
ACCOUNTS = "accounts"
EXPENSES = "expenses"
INCOMES = "incomes"
AUDIT_EVENTS = "audit_events"

# Sort direction markers, same values the Mongo driver uses
ASCENDING = 1
DESCENDING = -1


def is_reference_field(name: str) -> bool:
    """Fields holding another document's id: ``_id`` and ``somethingId``."""
    return name == "_id" or (len(name) > 2 and name.endswith("Id"))


class DocumentStoreInterface(ABC):
    """
    Abstract interface for document storage operations.

    Any storage implementation (MongoDB, in-memory, etc.)
    must implement these methods.

    Filters are equality matches on top-level fields. A reference filter
    value that is a valid native id matches stored native ids; any other
    string matches the raw stored string.
    """

    @abstractmethod
    async def insert(self, collection: str, document: dict) -> dict:
        """
        Insert a document.

        ``createdAt``/``updatedAt`` are stamped by the store.

        Returns:
            The stored document including its new ``_id``

        Raises:
            DuplicateError: If a unique index rejects the document
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_by_id(self, collection: str, doc_id: str) -> Optional[dict]:
        """
        Retrieve a document by id.

        Returns:
            The document if found, None otherwise (also for malformed ids)
        """
        pass

    @abstractmethod
    async def get_many_by_ids(self, collection: str, doc_ids: list[str]) -> dict[str, dict]:
        """
        Retrieve several documents in one round trip.

        Returns:
            Mapping of id -> document for the ids that exist
        """
        pass

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: Optional[dict[str, Any]] = None,
        sort: Optional[list[tuple[str, int]]] = None,
    ) -> list[dict]:
        """
        List documents matching equality filters.

        Args:
            collection: Collection name
            filters: Field -> value equality filters
            sort: (field, ASCENDING|DESCENDING) pairs; insertion order if None
        """
        pass

    @abstractmethod
    async def find_one(self, collection: str, filters: dict[str, Any]) -> Optional[dict]:
        """Return the first document matching equality filters, or None."""
        pass

    @abstractmethod
    async def find_one_case_insensitive(
        self,
        collection: str,
        field: str,
        value: str,
    ) -> Optional[dict]:
        """
        Return the first document whose ``field`` equals ``value`` ignoring case.

        The value is matched literally (no pattern characters).
        """
        pass

    @abstractmethod
    async def update_by_id(
        self,
        collection: str,
        doc_id: str,
        changes: dict[str, Any],
    ) -> Optional[dict]:
        """
        Set fields on a document and bump ``updatedAt``.

        Returns:
            The updated document, or None if it doesn't exist

        Raises:
            DuplicateError: If a unique index rejects the change
        """
        pass

    @abstractmethod
    async def append_to_list(
        self,
        collection: str,
        doc_id: str,
        field: str,
        item: dict,
    ) -> Optional[dict]:
        """
        Atomically append ``item`` to the list in ``field``.

        No other field except ``updatedAt`` is touched.

        Returns:
            The updated document, or None if it doesn't exist
        """
        pass

    @abstractmethod
    async def delete_by_id(self, collection: str, doc_id: str) -> Optional[dict]:
        """
        Delete a document by id.

        Returns:
            The deleted document, or None if it didn't exist
        """
        pass

    @abstractmethod
    async def sum_field(
        self,
        collection: str,
        field: str,
        filters: Optional[dict[str, Any]] = None,
    ) -> float:
        """
        Sum a numeric field over the documents matching ``filters``.

        Non-numeric values are ignored. Returns 0 when nothing matches.
        """
        pass

    async def connect(self) -> None:
        """Open the backing connection. Called once at startup."""
        return None

    async def close(self) -> None:
        return None

    async def ensure_indexes(self) -> None:
        """Create the indexes the application relies on. No-op by default."""
        return None


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
