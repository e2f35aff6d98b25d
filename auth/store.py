"""
auth/store.py -- Async SQLAlchemy Core persistence layer for staff accounts.

Pattern: Repository + Data Mapper. UserStore is the persistence repository;
_row_to_user is the mapper. AuthRepository never touches SQL directly -- it
depends only on the UserRecords protocol declared in auth/repository.py,
which this class satisfies.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(username) is enforced in the schema. AuthRepository checks
  username_exists() before inserting, but that check is not atomic against a
  concurrent insert; the constraint is what actually guarantees one row per
  username. A lost race surfaces as sqlalchemy.exc.IntegrityError from
  insert(), which propagates to the caller unchanged.

Timestamps are stored as ISO 8601 UTC strings and mapped back to aware
datetimes.

Lookups return inactive users too. Deciding what an inactive account may do
is the repository's job, not the store's.

DB URL: Settings.database_url (sqlite+aiosqlite file by default).

Layer rule: no imports from core/ or main.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from auth.models import User
from auth.permissions import Role

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.CASHIER.value),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    Column("last_login_at", String(32)),  # NULL until first successful login
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Async repository for User records.

    Usage:
        store = UserStore("sqlite+aiosqlite:///pos.db")
        await store.init()
        user_id = await store.insert(User(username="ana", password_hash=h, role=Role.CASHIER))
        user = await store.get_by_id(user_id)
        await store.close()
    """

    def __init__(self, db_url: str) -> None:
        engine_kwargs: dict = {}
        if db_url.startswith("sqlite") and ":memory:" in db_url:
            # One shared connection, otherwise each checkout sees a blank DB.
            engine_kwargs["poolclass"] = StaticPool
        self.engine: AsyncEngine = create_async_engine(db_url, **engine_kwargs)

    async def init(self) -> None:
        """Create the users table if it does not exist. Safe on every startup."""
        async with self.engine.begin() as conn:
            await conn.run_sync(_metadata.create_all)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        async with self.engine.connect() as conn:
            row = (await conn.execute(_users.select().where(_users.c.username == username))).fetchone()
        return _row_to_user(row) if row is not None else None

    async def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        async with self.engine.connect() as conn:
            row = (await conn.execute(_users.select().where(_users.c.id == user_id))).fetchone()
        return _row_to_user(row) if row is not None else None

    async def username_exists(self, username: str) -> bool:
        async with self.engine.connect() as conn:
            count = (
                await conn.execute(select(func.count()).select_from(_users).where(_users.c.username == username))
            ).scalar()
        return (count or 0) > 0

    async def get_count_by_role(self, role: Role) -> int:
        """Return the number of active users holding role."""
        async with self.engine.connect() as conn:
            count = (
                await conn.execute(
                    select(func.count())
                    .select_from(_users)
                    .where((_users.c.role == role.value) & (_users.c.is_active == 1))
                )
            ).scalar()
        return count or 0

    async def list_users(self) -> list[User]:
        """Return all users ordered by username."""
        async with self.engine.connect() as conn:
            rows = (await conn.execute(_users.select().order_by(_users.c.username))).fetchall()
        return [_row_to_user(r) for r in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        """
        async with self.engine.begin() as conn:
            result = await conn.execute(
                _users.insert().values(
                    username=user.username,
                    password_hash=user.password_hash,
                    role=user.role.value,
                    is_active=1 if user.is_active else 0,
                    created_at=user.created_at.isoformat(),
                    last_login_at=_to_iso(user.last_login_at),
                )
            )
            return result.inserted_primary_key[0]

    async def update_last_login(self, user_id: int, timestamp: datetime) -> None:
        """Stamp timestamp as last_login_at for the given user."""
        async with self.engine.begin() as conn:
            await conn.execute(
                _users.update().where(_users.c.id == user_id).values(last_login_at=timestamp.isoformat())
            )

    async def update_password(self, user_id: int, password_hash: str) -> int:
        """Replace the stored hash. Returns the number of rows updated (0 or 1)."""
        async with self.engine.begin() as conn:
            result = await conn.execute(
                _users.update().where(_users.c.id == user_id).values(password_hash=password_hash)
            )
            return result.rowcount

    async def update_role(self, user_id: int, role: Role) -> bool:
        """Change a user's role. Returns True if a row was updated."""
        async with self.engine.begin() as conn:
            result = await conn.execute(_users.update().where(_users.c.id == user_id).values(role=role.value))
            return result.rowcount > 0

    async def set_active(self, user_id: int, is_active: bool) -> bool:
        """Activate or deactivate (soft delete) a user. Returns True if a row was updated."""
        async with self.engine.begin() as conn:
            result = await conn.execute(
                _users.update().where(_users.c.id == user_id).values(is_active=1 if is_active else 0)
            )
            return result.rowcount > 0

    async def close(self) -> None:
        await self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        role=Role(row.role),
        is_active=bool(row.is_active),
        created_at=datetime.fromisoformat(row.created_at),
        last_login_at=datetime.fromisoformat(row.last_login_at) if row.last_login_at else None,
    )
