"""
Business flows.

Each flow takes raw request payloads, validates them, talks to the
document store and returns plain dicts ready to be sent as JSON.
"""

from expense_tracker.flows.auth import AuthFlow
from expense_tracker.flows.catalog import CatalogFlow
from expense_tracker.flows.errors import (
    AuthenticationError,
    ConflictError,
    FlowError,
    NotFoundError,
    ResetTokenError,
    UpstreamServiceError,
)
from expense_tracker.flows.expenses import ExpenseFlow
from expense_tracker.flows.incomes import IncomeFlow
from expense_tracker.flows.users import UserFlow

__all__ = [
    "AuthFlow",
    "AuthenticationError",
    "CatalogFlow",
    "ConflictError",
    "ExpenseFlow",
    "FlowError",
    "IncomeFlow",
    "NotFoundError",
    "ResetTokenError",
    "UpstreamServiceError",
    "UserFlow",
]
