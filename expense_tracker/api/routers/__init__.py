"""HTTP routers, one per resource family."""

from expense_tracker.api.routers import catalog, expenses, incomes, users

ROUTERS = (
    users.router,
    catalog.router,
    expenses.router,
    incomes.router,
)

__all__ = ["ROUTERS"]
