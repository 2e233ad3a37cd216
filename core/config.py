"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the auth service happen here. No module
should call os.getenv() or os.environ.get() directly. The app lifespan calls
get_settings() once and hands the resulting object to every service
constructor; services never look the secret up on their own.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Used for the DEBUG-conditional JWT_SECRET policy.

Security notes:
  [S1] JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing
       relies on key entropy -- a short key weakens every issued token.

  [S2] In production mode (DEBUG not set or false), a missing JWT_SECRET is a
       hard startup failure. There is no silent fallback key.

  [S3] The legacy placeholder secret shipped with earlier deployments is
       rejected in every mode, so a copied sample .env cannot reach production.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import re
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("smsgate.config")

INSECURE_DEFAULT_SECRET = "your_super_secret_jwt_key_here"

_DEFAULT_AUTH_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'smsgate_auth.db'}"

# ---------------------------------------------------------------------------
# Duration parsing ("7d", "12h", "30m", ...)
# ---------------------------------------------------------------------------

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-z]*)\s*$", re.IGNORECASE)

_UNIT_SECONDS: dict[str, float] = {
    "": 1,
    "ms": 0.001,
    "msec": 0.001,
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hr": 3600,
    "hrs": 3600,
    "hour": 3600,
    "hours": 3600,
    "d": 86400,
    "day": 86400,
    "days": 86400,
    "w": 604800,
    "week": 604800,
    "weeks": 604800,
    "y": 31557600,
    "year": 31557600,
    "years": 31557600,
}


def parse_duration(value: str | int) -> int:
    """Convert a token lifetime such as "7d" or "12h" to whole seconds.

    Integers and unit-less strings are read as seconds. Raises ValueError for
    anything unparseable or for a lifetime shorter than one second.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int):
        seconds = value
    else:
        match = _DURATION_RE.match(str(value))
        if not match:
            raise ValueError(f"Invalid duration: {value!r}")
        amount, unit = match.groups()
        factor = _UNIT_SECONDS.get(unit.lower())
        if factor is None:
            raise ValueError(f"Unknown duration unit {unit!r} in {value!r}")
        seconds = int(float(amount) * factor)
    if seconds < 1:
        raise ValueError(f"Duration must be at least one second: {value!r}")
    return seconds


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field has a default except that jwt_secret must be supplied outside
    debug mode; the model_validator enforces that at construction time.
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
    jwt_secret: str = ""
    jwt_expire: str = "7d"

    # ------------------------------------------------------------------
    # Two-factor authentication
    # ------------------------------------------------------------------

    totp_issuer: str = "SMS Verification System"
    totp_valid_window: int = 2

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    auth_db_url: str = _DEFAULT_AUTH_DB_URL

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("jwt_expire")
    @classmethod
    def validate_jwt_expire(cls, value: str) -> str:
        parse_duration(value)
        return value

    @field_validator("totp_valid_window")
    @classmethod
    def validate_totp_window(cls, value: int) -> int:
        if value < 0:
            raise ValueError("TOTP_VALID_WINDOW must not be negative.")
        return value

    @model_validator(mode="after")
    def validate_jwt_secret(self) -> "Settings":
        """Enforce the JWT_SECRET policy [S1][S2][S3].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            JWT_SECRET is missing.

        Both modes: reject the legacy placeholder and keys shorter than
            32 characters.
        """
        if self.jwt_secret == INSECURE_DEFAULT_SECRET:
            raise ValueError(
                "JWT_SECRET is set to the insecure sample value. " "Generate a real key, e.g. `openssl rand -hex 32`."
            )
        if not self.jwt_secret:
            if self.debug:
                self.jwt_secret = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated JWT_SECRET. " "Tokens will not persist across restarts.")
            else:
                raise ValueError(
                    "JWT_SECRET is required in production mode. "
                    "Set JWT_SECRET in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        return self

    @property
    def token_ttl_seconds(self) -> int:
        """Default token lifetime in seconds, parsed from jwt_expire."""
        return parse_duration(self.jwt_expire)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Only the app lifespan should call this; everything else receives the
    Settings instance through its constructor.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
