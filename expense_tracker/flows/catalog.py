"""
Catalog flow: roles, categories, subcategories, vendors and accounts.

All five follow the same pattern: list (optionally filtered by an owner
or parent reference, with references populated) and create.
"""

from typing import Any, Optional

import structlog

from expense_tracker.flows.errors import NotFoundError
from expense_tracker.flows.population import populate
from expense_tracker.models import (
    AccountCreate,
    CategoryCreate,
    RoleCreate,
    RoleName,
    SubCategoryCreate,
    VendorCreate,
)
from expense_tracker.services.storage import (
    ACCOUNTS,
    CATEGORIES,
    ROLES,
    SUBCATEGORIES,
    USERS,
    VENDORS,
    DocumentStoreInterface,
)
from expense_tracker.validation import validate_payload


logger = structlog.get_logger(__name__)

# Roles every deployment starts with
DEFAULT_ROLES = (
    (RoleName.ADMIN, "Administrator"),
    (RoleName.USER, "Regular User"),
)


def _owner_filter(field: str, value: Optional[str]) -> dict:
    return {field: value} if value else {}


class CatalogFlow:
    """Business rules for the reference data expenses and incomes point at."""

    def __init__(self, store: DocumentStoreInterface):
        self._store = store

    # =========================================================================
    # ROLES
    # =========================================================================

    async def seed_roles(self) -> list[dict]:
        """
        Create the default roles that don't exist yet.

        Safe to run on every startup.
        """
        created = []
        for name, description in DEFAULT_ROLES:
            if await self._store.find_one(ROLES, {"name": name.value}):
                continue
            role = await self._store.insert(
                ROLES,
                RoleCreate(name=name, description=description).to_document(),
            )
            logger.info("role_seeded", name=name.value, role_id=role["_id"])
            created.append(role)
        return created

    async def list_roles(self) -> list[dict]:
        return await self._store.find(ROLES)

    async def create_role(self, payload: Any) -> dict:
        data = validate_payload(RoleCreate, payload)
        return await self._store.insert(ROLES, data.to_document())

    async def get_role(self, role_id: str) -> dict:
        role = await self._store.get_by_id(ROLES, role_id)
        if role is None:
            raise NotFoundError("Role not found")
        return role

    async def delete_role(self, role_id: str) -> dict:
        role = await self._store.delete_by_id(ROLES, role_id)
        if role is None:
            raise NotFoundError("Role not found")
        return role

    # =========================================================================
    # CATEGORIES & SUBCATEGORIES
    # =========================================================================

    async def list_categories(self) -> list[dict]:
        return await self._store.find(CATEGORIES)

    async def create_category(self, payload: Any) -> dict:
        data = validate_payload(CategoryCreate, payload)
        return await self._store.insert(CATEGORIES, data.to_document())

    async def list_subcategories(self, category_id: Optional[str] = None) -> list[dict]:
        """Subcategories, optionally of one category, with owner and category populated."""
        records = await self._store.find(
            SUBCATEGORIES, _owner_filter("categoryId", category_id)
        )
        return await populate(
            self._store,
            records,
            {"userId": USERS, "categoryId": CATEGORIES},
        )

    async def create_subcategory(self, payload: Any) -> dict:
        data = validate_payload(SubCategoryCreate, payload)
        return await self._store.insert(SUBCATEGORIES, data.to_document())

    # =========================================================================
    # VENDORS & ACCOUNTS
    # =========================================================================

    async def list_vendors(self, user_id: Optional[str] = None) -> list[dict]:
        records = await self._store.find(VENDORS, _owner_filter("userId", user_id))
        return await populate(self._store, records, {"userId": USERS})

    async def create_vendor(self, payload: Any) -> dict:
        data = validate_payload(VendorCreate, payload)
        return await self._store.insert(VENDORS, data.to_document())

    async def list_accounts(self, user_id: Optional[str] = None) -> list[dict]:
        records = await self._store.find(ACCOUNTS, _owner_filter("userId", user_id))
        return await populate(self._store, records, {"userId": USERS})

    async def create_account(self, payload: Any) -> dict:
        data = validate_payload(AccountCreate, payload)
        return await self._store.insert(ACCOUNTS, data.to_document())
