"""
User administration flow.

Creating a user (signup or admin add), listing, editing and deleting.
Passwords are hashed on the way in and stripped on the way out: no
method here returns a password hash.
"""

import asyncio
from typing import Any, Optional

from expense_tracker.audit import AuditLogger
from expense_tracker.auth import hash_password
from expense_tracker.flows.errors import ConflictError, NotFoundError
from expense_tracker.flows.population import populate, populate_one, public_user
from expense_tracker.models import RoleName, UserCreate, UserUpdate
from expense_tracker.services.storage import (
    ROLES,
    USERS,
    DocumentStoreInterface,
    DuplicateError,
)
from expense_tracker.validation import validate_payload


EMAIL_REGISTERED = "Email already registered. Please use a different email or login."
EMAIL_EXISTS = "Email already exists"
EMAIL_IN_USE = "Email already in use by another account"
USER_NOT_FOUND = "User not found"


class UserFlow:
    """Business rules for user records."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

    async def default_role_id(self) -> Optional[str]:
        """Id of the seeded ``user`` role, if it exists."""
        role = await self._store.find_one(ROLES, {"name": RoleName.USER.value})
        return role["_id"] if role else None

    async def create(self, payload: Any) -> dict:
        """
        Validate, hash and store a new user.

        The duplicate check is an exact (case-sensitive) email match; the
        unique index catches anything that slips past it.

        Returns:
            The stored user without its password hash

        Raises:
            PayloadValidationError: Missing or malformed fields
            ConflictError: Email already registered
        """
        data = validate_payload(UserCreate, payload)

        if await self._store.find_one(USERS, {"email": data.email}):
            raise ConflictError(EMAIL_REGISTERED)

        document = data.to_document()
        document["password"] = await asyncio.to_thread(hash_password, data.password)
        if not document.get("roleId"):
            role_id = await self.default_role_id()
            if role_id:
                document["roleId"] = role_id

        try:
            created = await self._store.insert(USERS, document)
        except DuplicateError as e:
            raise ConflictError(EMAIL_EXISTS, error=str(e))

        return public_user(created)

    async def list_users(self) -> list[dict]:
        users = await self._store.find(USERS)
        populated = await populate(self._store, users, {"roleId": ROLES})
        return [public_user(user) for user in populated]

    async def get_user(self, user_id: str) -> dict:
        user = await self._store.get_by_id(USERS, user_id)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND)
        return public_user(await populate_one(self._store, user, {"roleId": ROLES}))

    async def update_user(self, user_id: str, payload: Any) -> dict:
        """
        Edit a profile. A new password is re-hashed; a new email must not
        belong to another account.
        """
        existing = await self._store.get_by_id(USERS, user_id)
        if existing is None:
            raise NotFoundError(USER_NOT_FOUND)

        data = validate_payload(UserUpdate, payload)
        changes = data.to_changes()

        if data.email and data.email != existing.get("email"):
            other = await self._store.find_one(USERS, {"email": data.email})
            if other and other["_id"] != user_id:
                raise ConflictError(EMAIL_IN_USE)

        if data.password:
            changes["password"] = await asyncio.to_thread(hash_password, data.password)

        if not changes:
            return public_user(existing)

        try:
            updated = await self._store.update_by_id(USERS, user_id, changes)
        except DuplicateError as e:
            raise ConflictError(EMAIL_IN_USE, error=str(e))
        if updated is None:
            raise NotFoundError(USER_NOT_FOUND)
        return public_user(updated)

    async def delete_user(self, user_id: str) -> dict:
        deleted = await self._store.delete_by_id(USERS, user_id)
        if deleted is None:
            raise NotFoundError(USER_NOT_FOUND)
        return public_user(deleted)
