"""
auth/passwords.py -- Password hashing, verification, and strength policy.

Security design decisions:
  Hashing: bcrypt used directly (no passlib wrapper). Bcrypt's cost factor
       makes brute-force of low-entropy secrets expensive. The cost comes from
       Settings.bcrypt_rounds so the test suite can run at the minimum cost.

  Long inputs: bcrypt only looks at the first 72 bytes and bcrypt 5.x rejects
       longer inputs outright. Passwords over that limit are pre-hashed with
       SHA-256 so every byte still contributes and nothing raises.

  Verification: returns False for malformed or foreign hashes instead of
       raising. A corrupted row must read as "wrong password", never as a crash
       in the login path.

Policy: the only strength rule is a minimum length of MIN_PASSWORD_LENGTH.

Layer rule: may import core.config; no imports from main.
"""

from __future__ import annotations

import hashlib
import secrets
import string
from typing import Protocol

import bcrypt

from core.config import MIN_PASSWORD_LENGTH, get_settings

_BCRYPT_MAX_BYTES = 72
_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"

PASSWORD_TOO_SHORT = f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"


class PasswordHasher(Protocol):
    """One-way hash collaborator consumed by AuthRepository."""

    def hash(self, plain: str) -> str: ...

    def verify(self, plain: str, hashed: str) -> bool: ...


def _prepare_password(plain: str) -> bytes:
    encoded = plain.encode("utf-8")
    if len(encoded) > _BCRYPT_MAX_BYTES:
        return hashlib.sha256(encoded).hexdigest().encode("ascii")
    return encoded


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    cost = rounds if rounds is not None else get_settings().bcrypt_rounds
    return bcrypt.hashpw(_prepare_password(plain), bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_prepare_password(plain), hashed.encode("utf-8"))
    except ValueError:
        return False


class BcryptHasher:
    """Default PasswordHasher backed by bcrypt.

    rounds=None defers to Settings.bcrypt_rounds at each hash call.
    """

    def __init__(self, rounds: int | None = None) -> None:
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        return hash_password(plain, self.rounds)

    def verify(self, plain: str, hashed: str) -> bool:
        return verify_password(plain, hashed)


def validate_password_strength(password: str) -> list[str]:
    """Return the list of policy violations for password (empty if acceptable)."""
    errors: list[str] = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(PASSWORD_TOO_SHORT)
    return errors


def generate_secure_password(length: int = 12) -> str:
    """Generate a random password suitable for handing to a new staff member."""
    if length < MIN_PASSWORD_LENGTH:
        raise ValueError(f"length must be at least {MIN_PASSWORD_LENGTH}")
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))
