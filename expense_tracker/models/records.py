"""
Core Data Models for Expense Tracker

These models define the strict schemas for every record the API accepts.
They are designed to:
1. Enforce type safety at the request boundary
2. Provide clear per-field validation messages
3. Dump straight into the document shape the store keeps
4. Keep status values inside their enumerated sets

DESIGN DECISION: Python attributes are snake_case, stored and transmitted
field names are camelCase (the shape the client already speaks). Status
fields are enums, normalised before validation; anything that is not a
string is rejected instead of being coerced.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class RoleName(str, Enum):
    """Roles a user can hold."""
    ADMIN = "admin"
    USER = "user"


class ExpenseStatus(str, Enum):
    """
    Review status of an expense.

    Expenses start PENDING; an admin moves them to APPROVED or REJECTED.
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class IncomeStatus(str, Enum):
    """Settlement status of an income."""
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"


RequiredStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so stored dates always compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


def normalize_status(value: Any, default: Optional[str] = None) -> Any:
    """
    Normalise a raw status value before enum validation.

    Strings are trimmed and lower-cased, empty values fall back to
    ``default``. Non-string values (e.g. an object sent by a broken
    client) are rejected outright.
    """
    if value is None:
        return default
    if isinstance(value, Enum):
        return value.value
    if not isinstance(value, str):
        raise ValueError("Status must be a string")
    value = value.strip().lower()
    return value or default


class RecordModel(BaseModel):
    """
    Base for all request and record models.

    Accepts both camelCase (wire) and snake_case (Python) field names,
    ignores unknown fields, and dumps enums as their plain values.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        validate_default=True,
        extra="ignore",
    )

    def to_document(self) -> dict:
        """Dump to the camelCase shape kept in the store, dropping unset values."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_changes(self) -> dict:
        """Dump only the fields the caller actually supplied."""
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


# =============================================================================
# USERS & ROLES
# =============================================================================

class RoleCreate(RecordModel):
    """A role definition."""
    name: RoleName
    description: Optional[str] = Field(default=None, max_length=200)


class UserCreate(RecordModel):
    """
    Signup / admin-add payload.

    The four identity fields are mandatory. ``status`` is the active flag
    and defaults to active.
    """
    first_name: RequiredStr
    last_name: RequiredStr
    email: RequiredStr
    password: RequiredStr
    age: Optional[int] = Field(default=None, ge=0, le=150)
    status: bool = True
    role_id: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=500)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("Email must contain '@'")
        return v


class UserUpdate(RecordModel):
    """Profile edit. Only supplied fields change."""
    first_name: Optional[RequiredStr] = None
    last_name: Optional[RequiredStr] = None
    email: Optional[RequiredStr] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=500)
    password: Optional[RequiredStr] = None


class LoginRequest(RecordModel):
    email: RequiredStr
    password: RequiredStr


class ForgotPasswordRequest(RecordModel):
    email: RequiredStr


class ResetPasswordRequest(RecordModel):
    token: RequiredStr
    password: RequiredStr


# =============================================================================
# CATALOG
# =============================================================================

class CategoryCreate(RecordModel):
    name: RequiredStr
    description: Optional[str] = None


class SubCategoryCreate(RecordModel):
    """A subcategory always hangs off a category and belongs to a user."""
    name: RequiredStr
    description: Optional[str] = None
    category_id: RequiredStr
    user_id: RequiredStr


class VendorCreate(RecordModel):
    title: RequiredStr
    user_id: Optional[str] = None


class AccountCreate(RecordModel):
    title: RequiredStr
    description: Optional[str] = None
    amount: float = 0.0
    user_id: Optional[str] = None


# =============================================================================
# EXPENSES
# =============================================================================

class Comment(RecordModel):
    """
    A comment embedded in an expense.

    Comments are append-only; the timestamp is taken at append time and
    the expense flow overwrites whatever the client sent.
    """
    user: str = "Anonymous"
    text: RequiredStr
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("user", mode="before")
    @classmethod
    def default_author(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "Anonymous"
        return v


class ExpenseCreate(RecordModel):
    """
    A new expense.

    All five references are required. Referential integrity is left to
    the store: a dangling id is stored as given.
    """
    title: Optional[str] = Field(default=None, max_length=200)
    category_id: RequiredStr
    subcategory_id: RequiredStr
    vendor_id: RequiredStr
    account_id: RequiredStr
    user_id: RequiredStr
    amount: Optional[float] = Field(default=None, ge=0)
    transaction_date: Optional[UtcDatetime] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    status: ExpenseStatus = ExpenseStatus.PENDING
    receipt_url: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> Any:
        return normalize_status(v, default=ExpenseStatus.PENDING.value)


class ExpenseUpdate(RecordModel):
    """Partial expense edit. Comments are deliberately not editable here."""
    title: Optional[str] = Field(default=None, max_length=200)
    category_id: Optional[RequiredStr] = None
    subcategory_id: Optional[RequiredStr] = None
    vendor_id: Optional[RequiredStr] = None
    account_id: Optional[RequiredStr] = None
    amount: Optional[float] = Field(default=None, ge=0)
    transaction_date: Optional[UtcDatetime] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[ExpenseStatus] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> Any:
        return normalize_status(v)


class ExpenseStatusUpdate(RecordModel):
    status: ExpenseStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> Any:
        return normalize_status(v)


# =============================================================================
# INCOMES
# =============================================================================

class IncomeCreate(RecordModel):
    """
    A new income.

    Status defaults to COMPLETED when it is missing or empty.
    Amount accepts numeric strings ("1500.50").
    """
    title: RequiredStr
    account_id: RequiredStr
    user_id: RequiredStr
    amount: float = Field(..., ge=0)
    transaction_date: UtcDatetime = Field(default_factory=utc_now)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: IncomeStatus = IncomeStatus.COMPLETED

    @field_validator("status", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> Any:
        return normalize_status(v, default=IncomeStatus.COMPLETED.value)


class IncomeUpdate(RecordModel):
    """Partial income edit. Status only changes when supplied."""
    title: Optional[RequiredStr] = None
    account_id: Optional[RequiredStr] = None
    amount: Optional[float] = Field(default=None, ge=0)
    transaction_date: Optional[UtcDatetime] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[IncomeStatus] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> Any:
        return normalize_status(v)
