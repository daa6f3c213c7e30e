"""
Domain exceptions raised by the flows.

Each maps to one HTTP status in the API layer. ``message`` is the
user-facing text; ``error`` optionally carries the underlying cause.
"""

from typing import Optional

from expense_tracker.services.storage import NotFoundError


class FlowError(Exception):
    """Base exception for business rule failures."""

    def __init__(self, message: str, error: Optional[str] = None):
        self.message = message
        self.error = error
        super().__init__(message)


class ConflictError(FlowError):
    """A unique field (e.g. email) is already taken."""
    pass


class AuthenticationError(FlowError):
    """Login rejected: unknown account, inactive account or wrong password."""
    pass


class ResetTokenError(FlowError):
    """A password reset token is invalid or expired."""
    pass


class UpstreamServiceError(FlowError):
    """A critical external call (the receipt host) failed."""
    pass


__all__ = [
    "AuthenticationError",
    "ConflictError",
    "FlowError",
    "NotFoundError",
    "ResetTokenError",
    "UpstreamServiceError",
]
