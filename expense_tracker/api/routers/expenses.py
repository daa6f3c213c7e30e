"""
Expense routes, mounted under ``/expense``.

Path names keep the client's historical spelling (``expence``).
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from starlette.datastructures import UploadFile

from expense_tracker.api.dependencies import get_components
from expense_tracker.api.responses import error_response, ok
from expense_tracker.orchestrator import AppComponents

router = APIRouter(prefix="/expense", tags=["expenses"])

# Multipart field carrying the receipt
RECEIPT_FIELD = "image"


@router.get("/expence")
async def list_expenses(components: AppComponents = Depends(get_components)):
    try:
        expenses = await components.expenses.list_expenses()
    except Exception as e:
        return await error_response(e, "Error fetching expenses", audit_logger=components.audit_logger)
    return ok("Expenses fetched successfully", expenses)


@router.post("/addexpence")
async def add_expense(
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        expense = await components.expenses.create_expense(payload)
    except Exception as e:
        return await error_response(e, "Error saving expense", audit_logger=components.audit_logger)
    return ok("Expense saved successfully", expense)


@router.post("/addWithFile")
async def add_expense_with_file(
    request: Request,
    components: AppComponents = Depends(get_components),
):
    """
    Create an expense from a multipart form with an optional receipt.

    Blank form fields are treated as absent.
    """
    try:
        form = await request.form()
        fields = {
            key: value
            for key, value in form.multi_items()
            if key != RECEIPT_FIELD and isinstance(value, str) and value.strip()
        }
        receipt = form.get(RECEIPT_FIELD)
        image_bytes, filename = None, "receipt"
        if isinstance(receipt, UploadFile):
            image_bytes = await receipt.read()
            filename = receipt.filename or filename
        expense = await components.expenses.create_with_receipt(fields, image_bytes, filename)
    except Exception as e:
        return await error_response(e, "Error saving expense", audit_logger=components.audit_logger)
    return ok("Expense saved successfully", expense)


@router.get("/getExpencebyuserid/{user_id}")
async def list_user_expenses(user_id: str, components: AppComponents = Depends(get_components)):
    try:
        expenses = await components.expenses.list_for_user(user_id)
    except Exception as e:
        return await error_response(e, "Error fetching expenses", audit_logger=components.audit_logger)
    message = "Expenses fetched successfully" if expenses else "No expenses found for this user"
    return ok(message, expenses)


@router.get("/getExpenceById/{expense_id}")
async def get_expense(expense_id: str, components: AppComponents = Depends(get_components)):
    try:
        expense = await components.expenses.get_expense(expense_id)
    except Exception as e:
        return await error_response(e, audit_logger=components.audit_logger)
    return ok("Expense found successfully", expense)


@router.put("/updateExpence/{expense_id}")
async def update_expense(
    expense_id: str,
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        expense = await components.expenses.update_expense(expense_id, payload)
    except Exception as e:
        return await error_response(e, "Error while updating expense", audit_logger=components.audit_logger)
    return ok("Expense updated successfully", expense)


@router.put("/updateExpenceStatus/{expense_id}")
async def update_expense_status(
    expense_id: str,
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        expense = await components.expenses.update_status(expense_id, payload)
    except Exception as e:
        return await error_response(e, "Error updating expense status", audit_logger=components.audit_logger)
    return ok("Expense status updated successfully", expense)


@router.post("/addComment/{expense_id}")
async def add_comment(
    expense_id: str,
    payload: Any = Body(default=None),
    components: AppComponents = Depends(get_components),
):
    try:
        expense = await components.expenses.add_comment(expense_id, payload)
    except Exception as e:
        return await error_response(e, "Error adding comment", audit_logger=components.audit_logger)
    return ok("Comment added successfully", expense)


@router.delete("/expence/{expense_id}")
async def delete_expense(expense_id: str, components: AppComponents = Depends(get_components)):
    try:
        expense = await components.expenses.delete_expense(expense_id)
    except Exception as e:
        return await error_response(e, "Error deleting expense", audit_logger=components.audit_logger)
    return ok("Expense deleted successfully", expense)
