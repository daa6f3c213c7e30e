"""
API client package.

The Python counterpart of the single-page app's data layer: typed
configuration, error classification, the access rule and reports.
"""

from expense_tracker.client.access import (
    AccessDeniedError,
    ClientError,
    Identity,
    can_access,
    ensure_access,
)
from expense_tracker.client.api_client import (
    ApiError,
    ClientConfig,
    ExpenseTrackerClient,
    NetworkError,
)
from expense_tracker.client.reports import (
    GroupTotal,
    Report,
    balance,
    build_report,
    completed_income_total,
    expense_total,
    totals_by_category,
    totals_by_status,
    totals_by_user,
)

__all__ = [
    "AccessDeniedError",
    "ApiError",
    "ClientConfig",
    "ClientError",
    "ExpenseTrackerClient",
    "GroupTotal",
    "Identity",
    "NetworkError",
    "Report",
    "balance",
    "build_report",
    "can_access",
    "completed_income_total",
    "ensure_access",
    "expense_total",
    "totals_by_category",
    "totals_by_status",
    "totals_by_user",
]
