"""
Storage Services Package

Provides the abstract document store interface and its MongoDB
implementation. Designed to be swappable (tests use an in-memory store).
"""

from expense_tracker.services.storage.interface import (
    ACCOUNTS,
    ASCENDING,
    AUDIT_EVENTS,
    CATEGORIES,
    DESCENDING,
    EXPENSES,
    INCOMES,
    ROLES,
    SUBCATEGORIES,
    USERS,
    VENDORS,
    ConnectionError,
    DocumentStoreInterface,
    DuplicateError,
    NotFoundError,
    StorageError,
    is_reference_field,
)
from expense_tracker.services.storage.mongo import (
    MongoClientWrapper,
    MongoDocumentStore,
)

__all__ = [
    # Collections
    "ACCOUNTS",
    "AUDIT_EVENTS",
    "CATEGORIES",
    "EXPENSES",
    "INCOMES",
    "ROLES",
    "SUBCATEGORIES",
    "USERS",
    "VENDORS",
    # Sorting
    "ASCENDING",
    "DESCENDING",
    # Interface
    "DocumentStoreInterface",
    "is_reference_field",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # MongoDB implementation
    "MongoClientWrapper",
    "MongoDocumentStore",
]
