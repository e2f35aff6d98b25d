"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the POS auth core happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. bcrypt_rounds -> BCRYPT_ROUNDS). Type coercion and validation are
      built in.

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Refuses to start with a bootstrap password that the account
      policy itself would reject, or a bcrypt cost the library cannot use.

Security notes:
  The default bootstrap credential (admin / admin123) is publicly known. It is
  only used when no admin account exists. A warning is logged whenever the
  default value is still configured outside debug mode.

Layer rule: core/ is the kernel. This module may not import from auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("posauth.config")

# Minimum plaintext password length. Shared by account creation, password
# change, and the bootstrap credential check below.
MIN_PASSWORD_LENGTH = 6

_DEFAULT_ADMIN_PASSWORD = "admin123"
_DEFAULT_DB_URL = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'posauth.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    # Any async SQLAlchemy URL. SQLite via aiosqlite by default.
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Password hashing
    # ------------------------------------------------------------------

    # bcrypt cost factor. Tests lower this to 4 to keep the suite fast.
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Bootstrap account
    # ------------------------------------------------------------------

    default_admin_username: str = "admin"
    default_admin_password: str = _DEFAULT_ADMIN_PASSWORD

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_auth_policy(self) -> "Settings":
        """Reject settings that would break the account policy at runtime.

        bcrypt only accepts cost factors 4..31; anything else fails on the
        first hash call, so it is rejected here instead.

        The bootstrap account must satisfy the same minimum length as every
        other account, and must have a non-blank username.
        """
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        if not self.default_admin_username.strip():
            raise ValueError("DEFAULT_ADMIN_USERNAME must not be blank.")
        if len(self.default_admin_password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"DEFAULT_ADMIN_PASSWORD must be at least {MIN_PASSWORD_LENGTH} characters.")
        if self.default_admin_password == _DEFAULT_ADMIN_PASSWORD and not self.debug:
            logger.warning(
                "WARNING: DEFAULT_ADMIN_PASSWORD is the built-in default. "
                "Change the admin password after first login."
            )
        return self

    @property
    def uses_default_admin_password(self) -> bool:
        return self.default_admin_password == _DEFAULT_ADMIN_PASSWORD


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings()
    directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
