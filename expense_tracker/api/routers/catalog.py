"""
Catalog routes: roles, categories, subcategories, vendors and accounts.

Each create route is also reachable under its legacy ``/add<resource>``
path, which the client still uses.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from expense_tracker.api.dependencies import get_components
from expense_tracker.api.responses import error_response, ok
from expense_tracker.orchestrator import AppComponents

router = APIRouter(tags=["catalog"])

CREATED = status.HTTP_201_CREATED


# =============================================================================
# ROLES
# =============================================================================

@router.get("/roles")
async def list_roles(components: AppComponents = Depends(get_components)):
    try:
        roles = await components.catalog.list_roles()
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Roles fetched successfully", roles)


@router.post("/role")
async def create_role(
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        role = await components.catalog.create_role(payload)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Role added successfully", role, CREATED)


@router.get("/role/{role_id}")
async def get_role(role_id: str, components: AppComponents = Depends(get_components)):
    try:
        role = await components.catalog.get_role(role_id)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Role fetched successfully", role)


@router.delete("/role/{role_id}")
async def delete_role(role_id: str, components: AppComponents = Depends(get_components)):
    try:
        role = await components.catalog.delete_role(role_id)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Role deleted successfully", role)


# =============================================================================
# CATEGORIES & SUBCATEGORIES
# =============================================================================

@router.get("/category")
async def list_categories(components: AppComponents = Depends(get_components)):
    try:
        categories = await components.catalog.list_categories()
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Categories fetched successfully", categories)


@router.post("/category")
@router.post("/addcategory")
async def create_category(
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        category = await components.catalog.create_category(payload)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Category added successfully", category, CREATED)


@router.get("/subcategory")
async def list_subcategories(
    category_id: Optional[str] = Query(default=None, alias="categoryId"),
    components: AppComponents = Depends(get_components),
):
    try:
        subcategories = await components.catalog.list_subcategories(category_id)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Subcategories retrieved successfully", subcategories)


@router.post("/subcategory")
@router.post("/addsubcategory")
async def create_subcategory(
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        subcategory = await components.catalog.create_subcategory(payload)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("SubCategory added successfully", subcategory, CREATED)


# =============================================================================
# VENDORS & ACCOUNTS
# =============================================================================

@router.get("/vendor")
async def list_vendors(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    components: AppComponents = Depends(get_components),
):
    try:
        vendors = await components.catalog.list_vendors(user_id)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Vendors fetched successfully", vendors)


@router.post("/vendor")
@router.post("/addvendor")
async def create_vendor(
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        vendor = await components.catalog.create_vendor(payload)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Vendor added successfully", vendor, CREATED)


@router.get("/account")
async def list_accounts(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    components: AppComponents = Depends(get_components),
):
    try:
        accounts = await components.catalog.list_accounts(user_id)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Accounts fetched successfully", accounts)


@router.post("/account")
@router.post("/addaccount")
async def create_account(
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        account = await components.catalog.create_account(payload)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Account added successfully", account, CREATED)
