"""
auth/repository.py -- Account policy: login, account creation, password change,
permission checks, and default-admin bootstrap.

AuthRepository sits between the UI-facing callers and two collaborators:
  - a UserRecords store (auth.store.UserStore in production)
  - a PasswordHasher (auth.passwords.BcryptHasher in production)

Session identity:
  The acting user is passed in explicitly as an id on every call that needs
  one. Each call re-reads the record, so a role change or deactivation takes
  effect on the next check without a new login. The repository itself holds
  no per-session state and can be shared across tasks. A deactivated account
  resolves to no session at all, so it loses every permission immediately.

Hashing:
  bcrypt is deliberately slow and synchronous. Every hash/verify call runs in
  a worker thread via asyncio.to_thread so it never stalls the event loop.

Error handling:
  Business-rule violations come back as Failure(message) variants with fixed,
  user-facing text. Store and hashing errors are not caught here -- they
  propagate to the caller unchanged.

Username enumeration:
  Unknown username and wrong password return the same message, and login()
  still runs the hasher against a dummy hash for unknown usernames so response
  time does not reveal which case occurred.

Layer rule: may import core.config; no imports from main.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Protocol

from auth.models import User, utc_now
from auth.passwords import BcryptHasher, PasswordHasher, validate_password_strength
from auth.permissions import Permission, Role, role_has_permission
from auth.results import (
    ChangePasswordResult,
    CreateUserResult,
    Failure,
    LoginResult,
    LoginSuccess,
    PasswordChanged,
    UserCreated,
)
from core.config import get_settings

logger = logging.getLogger("posauth.auth")

CREDENTIALS_REQUIRED = "Username and password are required"
INVALID_CREDENTIALS = "Invalid username or password"
ACCOUNT_DEACTIVATED = "Account is deactivated. Please contact administrator."
ADMIN_REQUIRED = "Only administrators can create users"
USERNAME_REQUIRED = "Username is required"
USERNAME_TAKEN = "Username already exists"
NOT_LOGGED_IN = "Not logged in"
WRONG_CURRENT_PASSWORD = "Current password is incorrect"
PASSWORD_UPDATE_FAILED = "Failed to update password"

_TIMING_DUMMY_PASSWORD = "posauth_timing_dummy"


class UserRecords(Protocol):
    """Store contract consumed by AuthRepository. All methods are coroutines."""

    async def get_by_username(self, username: str) -> User | None: ...

    async def get_by_id(self, user_id: int) -> User | None: ...

    async def username_exists(self, username: str) -> bool: ...

    async def insert(self, user: User) -> int: ...

    async def update_last_login(self, user_id: int, timestamp: datetime) -> None: ...

    async def update_password(self, user_id: int, password_hash: str) -> int: ...

    async def get_count_by_role(self, role: Role) -> int: ...


class AuthRepository:
    """Authentication and authorization operations over a UserRecords store.

    Usage:
        repo = AuthRepository(UserStore(settings.database_url))
        await repo.initialize_default_user()
        result = await repo.login("admin", "admin123")
    """

    def __init__(
        self,
        store: UserRecords,
        hasher: PasswordHasher | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._hasher: PasswordHasher = hasher if hasher is not None else BcryptHasher()
        self._clock = clock
        self._dummy_hash: str | None = None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(self, username: str, password: str) -> LoginResult:
        """Verify credentials and stamp last_login_at on success.

        Exactly one store write (update_last_login) happens per successful
        login. The returned user is the record as read before that write.
        """
        if not username.strip() or not password.strip():
            return Failure(CREDENTIALS_REQUIRED)

        user = await self._store.get_by_username(username.strip())
        if user is None:
            # Equalize timing -- do NOT return before running the hasher.
            await self._verify(password, await self._timing_dummy_hash())
            logger.debug("Login rejected: unknown username")
            return Failure(INVALID_CREDENTIALS)

        if not await self._verify(password, user.password_hash):
            logger.debug("Login rejected: bad password for user_id=%s", user.id)
            return Failure(INVALID_CREDENTIALS)

        if not user.is_active:
            logger.debug("Login rejected: user_id=%s is deactivated", user.id)
            return Failure(ACCOUNT_DEACTIVATED)

        await self._store.update_last_login(user.id, self._clock())
        return LoginSuccess(user)

    async def get_current_user(self, acting_user_id: int | None) -> User | None:
        """Resolve the session identity to an active user record.

        Returns None if there is no session, the user no longer exists, or the
        account has been deactivated since login.
        """
        if acting_user_id is None:
            return None
        user = await self._store.get_by_id(acting_user_id)
        if user is None or not user.is_active:
            return None
        return user

    async def is_logged_in(self, acting_user_id: int | None) -> bool:
        """True if the session identity still refers to an existing, active user."""
        return await self.get_current_user(acting_user_id) is not None

    # ------------------------------------------------------------------
    # Account lifecycle
    # ------------------------------------------------------------------

    async def create_user(
        self,
        acting_user_id: int | None,
        username: str,
        password: str,
        role: Role,
    ) -> CreateUserResult:
        """Create a staff account. Only an ADMIN acting user may do this.

        Check order: acting user is admin, username present, password policy,
        username free. Nothing is inserted unless every check passes.
        """
        actor = await self.get_current_user(acting_user_id)
        if actor is None or actor.role is not Role.ADMIN:
            return Failure(ADMIN_REQUIRED)

        username = username.strip()
        if not username:
            return Failure(USERNAME_REQUIRED)

        password_errors = validate_password_strength(password)
        if password_errors:
            return Failure(password_errors[0])

        if await self._store.username_exists(username):
            return Failure(USERNAME_TAKEN)

        new_user = User(
            username=username,
            password_hash=await self._hash(password),
            role=role,
            is_active=True,
            created_at=self._clock(),
            last_login_at=None,
        )
        user_id = await self._store.insert(new_user)
        logger.debug("User created with role %s", role.value)
        return UserCreated(user_id)

    async def change_password(
        self,
        acting_user_id: int | None,
        current_password: str,
        new_password: str,
    ) -> ChangePasswordResult:
        """Change the acting user's own password after re-verifying the current one."""
        user = await self.get_current_user(acting_user_id)
        if user is None:
            return Failure(NOT_LOGGED_IN)

        if not await self._verify(current_password, user.password_hash):
            return Failure(WRONG_CURRENT_PASSWORD)

        password_errors = validate_password_strength(new_password)
        if password_errors:
            return Failure(password_errors[0])

        rows = await self._store.update_password(user.id, await self._hash(new_password))
        if rows == 0:
            return Failure(PASSWORD_UPDATE_FAILED)
        return PasswordChanged()

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    async def has_permission(self, acting_user_id: int | None, permission: Permission) -> bool:
        """True if the acting user's role grants permission. False for a missing user."""
        user = await self.get_current_user(acting_user_id)
        if user is None:
            return False
        return role_has_permission(user.role, permission)

    async def has_any_permission(self, acting_user_id: int | None, permissions: Iterable[Permission]) -> bool:
        user = await self.get_current_user(acting_user_id)
        if user is None:
            return False
        return any(role_has_permission(user.role, p) for p in permissions)

    async def has_all_permissions(self, acting_user_id: int | None, permissions: Iterable[Permission]) -> bool:
        user = await self.get_current_user(acting_user_id)
        if user is None:
            return False
        return all(role_has_permission(user.role, p) for p in permissions)

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    async def initialize_default_user(self) -> None:
        """Create the default admin account if no active ADMIN user exists yet.

        Idempotent: the admin count check makes repeated calls a no-op once an
        active admin exists. If a row named like the bootstrap account already
        exists, insert() raises IntegrityError and it propagates.
        """
        if await self._store.get_count_by_role(Role.ADMIN) > 0:
            return

        settings = get_settings()
        admin = User(
            username=settings.default_admin_username,
            password_hash=await self._hash(settings.default_admin_password),
            role=Role.ADMIN,
            is_active=True,
            created_at=self._clock(),
        )
        user_id = await self._store.insert(admin)
        logger.info("Default admin account %r created (user_id=%s)", admin.username, user_id)
        if settings.uses_default_admin_password:
            logger.warning("Default admin account uses the built-in password. Change it after first login.")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _hash(self, plain: str) -> str:
        return await asyncio.to_thread(self._hasher.hash, plain)

    async def _verify(self, plain: str, hashed: str) -> bool:
        return await asyncio.to_thread(self._hasher.verify, plain, hashed)

    async def _timing_dummy_hash(self) -> str:
        # Computed on first use so constructing a repository stays cheap.
        if self._dummy_hash is None:
            self._dummy_hash = await self._hash(_TIMING_DUMMY_PASSWORD)
        return self._dummy_hash
