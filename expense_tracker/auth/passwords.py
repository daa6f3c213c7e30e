"""
Password hashing with passlib/bcrypt.

The cost factor comes from AuthSettings.bcrypt_rounds. Stored hashes keep
their own cost, so changing the setting only affects new hashes.
"""

from functools import lru_cache

from passlib.context import CryptContext

from expense_tracker.config import get_settings


@lru_cache()
def _context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def _pwd_context() -> CryptContext:
    return _context(get_settings().auth.bcrypt_rounds)


def hash_password(password: str) -> str:
    return _pwd_context().hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """
    Check a plain password against a stored hash.

    A stored value that is not a bcrypt hash never verifies.
    """
    if not password or not hashed:
        return False
    try:
        return _pwd_context().verify(password, hashed)
    except ValueError:
        return False
