"""
Client-side report aggregation.

All figures are computed over lists already fetched from the API, the
same way the dashboard does it: nothing here talks to the server.

Amounts that are missing count as 0. Only COMPLETED incomes count as
income; every expense counts as spending whatever its review status.
"""

from collections import defaultdict
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from expense_tracker.client.access import owner_id
from expense_tracker.models import IncomeStatus

UNCATEGORIZED = "Uncategorized"


class GroupTotal(BaseModel):
    count: int = 0
    amount: float = 0.0


class Report(BaseModel):
    """Summary of a set of expenses and incomes."""
    expense_count: int
    expense_total: float
    income_count: int
    income_total: float
    balance: float
    by_category: dict[str, GroupTotal] = Field(default_factory=dict)
    by_status: dict[str, GroupTotal] = Field(default_factory=dict)
    by_user: dict[str, GroupTotal] = Field(default_factory=dict)


def _amount(record: dict) -> float:
    value = record.get("amount")
    return float(value) if isinstance(value, (int, float)) else 0.0


def _group(records: Iterable[dict], key) -> dict[str, GroupTotal]:
    groups: dict[str, GroupTotal] = defaultdict(GroupTotal)
    for record in records:
        group = groups[key(record)]
        group.count += 1
        group.amount += _amount(record)
    return dict(groups)


def category_name(expense: dict) -> str:
    """Display name of a populated category, or UNCATEGORIZED."""
    category = expense.get("categoryId")
    if isinstance(category, dict) and category.get("name"):
        return category["name"]
    return UNCATEGORIZED


def expense_total(expenses: Iterable[dict]) -> float:
    return sum(_amount(expense) for expense in expenses)


def completed_incomes(incomes: Iterable[dict]) -> list[dict]:
    return [income for income in incomes if income.get("status") == IncomeStatus.COMPLETED.value]


def completed_income_total(incomes: Iterable[dict]) -> float:
    return sum(_amount(income) for income in completed_incomes(incomes))


def balance(incomes: Iterable[dict], expenses: Iterable[dict]) -> float:
    """Completed income minus all expenses."""
    return completed_income_total(incomes) - expense_total(expenses)


def totals_by_category(expenses: Iterable[dict]) -> dict[str, GroupTotal]:
    return _group(expenses, category_name)


def totals_by_status(expenses: Iterable[dict]) -> dict[str, GroupTotal]:
    return _group(expenses, lambda expense: str(expense.get("status") or "pending"))


def totals_by_user(expenses: Iterable[dict]) -> dict[str, GroupTotal]:
    owned = [expense for expense in expenses if owner_id(expense)]
    return _group(owned, owner_id)


def build_report(
    expenses: list[dict],
    incomes: list[dict],
    user_id: Optional[str] = None,
    category: Optional[str] = None,
) -> Report:
    """
    Aggregate fetched lists into a Report.

    Args:
        expenses: Expenses as returned by the API (populated or not)
        incomes: Incomes as returned by the API
        user_id: Only count this user's records
        category: Only count expenses in this category (by name)
    """
    if user_id:
        expenses = [expense for expense in expenses if owner_id(expense) == user_id]
        incomes = [income for income in incomes if owner_id(income) == user_id]
    if category:
        expenses = [expense for expense in expenses if category_name(expense) == category]

    counted_incomes = completed_incomes(incomes)
    spent = expense_total(expenses)
    earned = sum(_amount(income) for income in counted_incomes)

    return Report(
        expense_count=len(expenses),
        expense_total=spent,
        income_count=len(counted_incomes),
        income_total=earned,
        balance=earned - spent,
        by_category=totals_by_category(expenses),
        by_status=totals_by_status(expenses),
        by_user=totals_by_user(expenses),
    )
