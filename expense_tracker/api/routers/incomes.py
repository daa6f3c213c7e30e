"""Income routes."""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from expense_tracker.api.dependencies import get_components
from expense_tracker.api.responses import error_response, ok
from expense_tracker.orchestrator import AppComponents

router = APIRouter(tags=["incomes"])


@router.post("/income")
@router.post("/addincome")
async def add_income(
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        income = await components.incomes.create_income(payload)
    except Exception as e:
        return await error_response(e, "Failed to add income", audit_logger=components.audit_logger)
    return ok("Income added successfully", income, status.HTTP_201_CREATED)


@router.get("/income")
async def list_incomes(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    components: AppComponents = Depends(get_components),
):
    try:
        incomes = await components.incomes.list_incomes(user_id)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Incomes retrieved successfully", incomes)


# /income/total and /income/all must be registered before /income/{income_id}

@router.get("/income/total")
async def total_income(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    components: AppComponents = Depends(get_components),
):
    try:
        total = await components.incomes.total_income(user_id)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Total income retrieved successfully", {"totalIncome": total})


@router.get("/income/all")
async def list_all_incomes(components: AppComponents = Depends(get_components)):
    try:
        incomes = await components.incomes.list_all()
    except Exception as e:
        return await error_response(e, "Failed to fetch incomes", audit_logger=components.audit_logger)
    return ok("All incomes retrieved successfully", incomes)


@router.get("/income/{income_id}")
async def get_income(income_id: str, components: AppComponents = Depends(get_components)):
    try:
        income = await components.incomes.get_income(income_id)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Income retrieved successfully", income)


@router.put("/income/{income_id}")
async def update_income(
    income_id: str,
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        income = await components.incomes.update_income(income_id, payload)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Income updated successfully", income)


@router.delete("/income/{income_id}")
async def delete_income(income_id: str, components: AppComponents = Depends(get_components)):
    try:
        income = await components.incomes.delete_income(income_id)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Income deleted successfully", income)
