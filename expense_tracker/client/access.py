"""
Client-side identity and the record access rule.

There is exactly one rule: admins may access every record, everyone
else only records they own. It has no exceptions or debug switches.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from expense_tracker.models import RoleName


class ClientError(Exception):
    """Base exception for API client errors."""
    pass


class AccessDeniedError(ClientError):
    """The current identity may not access the record."""
    pass


class Identity(BaseModel):
    """
    The logged-in user, as returned by the login endpoint.

    Holding one is what "logged in" means: the API issues no session token.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., alias="_id")
    email: str
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    role: str = RoleName.USER.value
    status: bool = True

    @classmethod
    def from_login(cls, data: dict) -> "Identity":
        role = data.get("roleId") or {}
        return cls(
            _id=data["_id"],
            email=data["email"],
            firstName=data.get("firstName"),
            lastName=data.get("lastName"),
            role=role.get("name") or RoleName.USER.value,
            status=data.get("status", True),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN.value


def owner_id(record: dict) -> Optional[str]:
    """The owning user's id, whether ``userId`` is populated or bare."""
    owner: Any = record.get("userId")
    if isinstance(owner, dict):
        owner = owner.get("_id")
    return owner if isinstance(owner, str) else None


def can_access(identity: Optional[Identity], record: dict) -> bool:
    if identity is None:
        return False
    if identity.is_admin:
        return True
    owner = owner_id(record)
    return owner is not None and owner == identity.id


def ensure_access(identity: Optional[Identity], record: dict) -> dict:
    """Return the record, or raise AccessDeniedError."""
    if identity is None:
        raise AccessDeniedError("Not logged in")
    if not can_access(identity, record):
        raise AccessDeniedError("You do not have access to this record")
    return record
