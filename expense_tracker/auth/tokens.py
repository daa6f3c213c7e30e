"""
Password reset tokens.

A reset token is an HS256 JWT carrying the user's id and email with a
short expiry. It is single purpose: nothing else in the API accepts it,
and a successful reset does not issue a new one.

The token also carries a keyed fingerprint of the password hash stored
when it was issued. A reset replaces that hash, so the same token (and
any other token issued before the reset) no longer matches.
"""

import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from expense_tracker.config import get_settings


class InvalidTokenError(Exception):
    """The token is malformed, tampered with, expired or already used."""
    pass


def password_fingerprint(password_hash: Optional[str]) -> str:
    """Short keyed digest of a stored password hash."""
    secret = get_settings().auth.secret_key.encode()
    digest = hmac.new(secret, (password_hash or "").encode(), hashlib.sha256)
    return digest.hexdigest()[:16]


def create_reset_token(
    user_id: str,
    email: str,
    password_hash: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Issue a reset token for a user.

    Args:
        user_id: Store id of the user
        email: The user's email, echoed for the client
        password_hash: The user's current stored hash
        now: Issue time; defaults to the current UTC time
    """
    settings = get_settings().auth
    issued = now or datetime.now(timezone.utc)
    payload = {
        "_id": user_id,
        "email": email,
        "pwd": password_fingerprint(password_hash),
        "exp": issued + timedelta(minutes=settings.reset_token_minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_reset_token(token: str) -> dict:
    """
    Verify a reset token and return its claims.

    Raises:
        InvalidTokenError: On a bad signature, expiry, or missing user id
    """
    settings = get_settings().auth
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError as e:
        raise InvalidTokenError(f"Token expired: {e}")
    except JWTError as e:
        raise InvalidTokenError(f"Token rejected: {e}")
    if not claims.get("_id"):
        raise InvalidTokenError("Token carries no user id")
    return claims


def check_token_unused(claims: dict, password_hash: Optional[str]) -> None:
    """
    Make sure the password has not changed since the token was issued.

    Raises:
        InvalidTokenError: If the token was issued for an older password
    """
    if not hmac.compare_digest(str(claims.get("pwd", "")), password_fingerprint(password_hash)):
        raise InvalidTokenError("Token already used")
