"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the session auth service happen here. No
module should call os.getenv() or os.environ.get() directly -- import
get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Implements the DEBUG-conditional SECRET_KEY policy: dev mode
      generates a key with a warning, production refuses to start without one.

Security notes:
  SECRET_KEY signs every JWT and keys the HMAC used to digest session tokens
  before they are stored. Keys shorter than 32 chars are rejected outright.
  There is no literal default key anywhere in the shipped configuration.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sessionauth.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'sessionauth.db'}"

MIN_SECRET_KEY_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields except SECRET_KEY have defaults so Settings() can be built in
    test environments with DEBUG=true and nothing else.
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
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL
    # Pool bounds apply to server databases (PostgreSQL, MySQL). SQLite uses
    # SQLAlchemy's default pool for its URL type.
    db_pool_size: int = Field(default=10, ge=1)
    db_pool_timeout: int = Field(default=30, ge=1)

    # ------------------------------------------------------------------
    # Tokens and credentials
    # ------------------------------------------------------------------

    # 7 days, matching the lifetime of the session row issued alongside it.
    token_expire_seconds: int = Field(default=7 * 24 * 3600, gt=0)
    # bcrypt cost factor. 12 rounds lands in the 100-250 ms range on current
    # server hardware; tests drop it to 4.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Rate limiting (fixed window, shared by signup and signin)
    # ------------------------------------------------------------------

    auth_rate_limit: str = "5/15 minutes"

    # ------------------------------------------------------------------
    # Session reaper
    # ------------------------------------------------------------------

    session_sweep_interval_seconds: float = Field(default=3600, gt=0)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Issued tokens will not survive a restart -- acceptable locally.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. " "Issued tokens will not survive a restart."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < MIN_SECRET_KEY_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {MIN_SECRET_KEY_LENGTH} characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
