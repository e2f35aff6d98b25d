"""
auth/models.py -- Domain dataclass for staff accounts.

Pattern: Data class (pure data container, zero logic). The store owns
persistence and the repository owns the account policy.

Layer rule: no imports from core/ or main.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from auth.permissions import Role


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    """One staff account.

    id is None until the store assigns it on insert, and never changes after.
    password_hash is an opaque bcrypt string; plaintext is never held here.
    last_login_at stays None until the first successful login.
    """

    username: str
    password_hash: str
    role: Role
    id: int | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)
    last_login_at: datetime | None = None
