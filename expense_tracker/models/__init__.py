"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker system.
All data entering the system must conform to these schemas.
"""

from expense_tracker.models.records import (
    AccountCreate,
    CategoryCreate,
    Comment,
    ExpenseCreate,
    ExpenseStatus,
    ExpenseStatusUpdate,
    ExpenseUpdate,
    ForgotPasswordRequest,
    IncomeCreate,
    IncomeStatus,
    IncomeUpdate,
    LoginRequest,
    RecordModel,
    ResetPasswordRequest,
    RoleCreate,
    RoleName,
    SubCategoryCreate,
    UserCreate,
    UserUpdate,
    VendorCreate,
    normalize_status,
    utc_now,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "AccountCreate",
    "CategoryCreate",
    "Comment",
    "ExpenseCreate",
    "ExpenseStatus",
    "ExpenseStatusUpdate",
    "ExpenseUpdate",
    "ForgotPasswordRequest",
    "IncomeCreate",
    "IncomeStatus",
    "IncomeUpdate",
    "LoginRequest",
    "RecordModel",
    "ResetPasswordRequest",
    "RoleCreate",
    "RoleName",
    "SubCategoryCreate",
    "UserCreate",
    "UserUpdate",
    "VendorCreate",
    "normalize_status",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
