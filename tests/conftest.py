"""
tests/conftest.py -- Shared test fixtures for the POS auth tests.

This module provides:
  - store:       a real UserStore on a private in-memory aiosqlite database
  - mock_store:  an AsyncMock standing in for UserRecords, for asserting exact
                 store calls (which writes happened, and how many)
  - hasher:      a BcryptHasher at the minimum cost factor
  - make_user:   factory for User records with a real bcrypt hash

BCRYPT_ROUNDS and DEBUG must be set before any auth/core import so the
lru_cached Settings singleton picks them up.
"""

from __future__ import annotations

import os

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from collections.abc import AsyncIterator, Callable
from unittest.mock import AsyncMock

import pytest

from auth.models import User
from auth.passwords import BcryptHasher
from auth.permissions import Role
from auth.store import UserStore


@pytest.fixture
async def store() -> AsyncIterator[UserStore]:
    """Fresh in-memory store with the schema created. Disposed after the test."""
    s = UserStore("sqlite+aiosqlite:///:memory:")
    await s.init()
    yield s
    await s.close()


@pytest.fixture
def hasher() -> BcryptHasher:
    return BcryptHasher(rounds=4)


@pytest.fixture
def make_user(hasher: BcryptHasher) -> Callable[..., User]:
    """Build a User with a real hash of `password`. id defaults to 1."""

    def _make(
        username: str = "testuser",
        password: str = "password123",
        role: Role = Role.ADMIN,
        user_id: int | None = 1,
        is_active: bool = True,
    ) -> User:
        return User(
            id=user_id,
            username=username,
            password_hash=hasher.hash(password),
            role=role,
            is_active=is_active,
        )

    return _make


@pytest.fixture
def mock_store() -> AsyncMock:
    """AsyncMock store with neutral defaults: no users, nothing taken, writes succeed."""
    m = AsyncMock()
    m.get_by_username.return_value = None
    m.get_by_id.return_value = None
    m.username_exists.return_value = False
    m.insert.return_value = 2
    m.update_last_login.return_value = None
    m.update_password.return_value = 1
    m.get_count_by_role.return_value = 0
    return m
