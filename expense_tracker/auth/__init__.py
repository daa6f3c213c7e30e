"""Password hashing and reset token helpers."""

from expense_tracker.auth.passwords import hash_password, verify_password
from expense_tracker.auth.tokens import (
    InvalidTokenError,
    check_token_unused,
    create_reset_token,
    decode_reset_token,
)

__all__ = [
    "InvalidTokenError",
    "check_token_unused",
    "create_reset_token",
    "decode_reset_token",
    "hash_password",
    "verify_password",
]
