"""
core/config.py -- Pressroom settings, read from the environment once.

Environment variables and the optional .env file are read here and nowhere
else. Other modules call get_settings(); none of them touch os.environ.

How it works:
  Settings is a pydantic-settings BaseSettings. Each field is filled from the
  environment variable of the same name in upper case (database_url ->
  DATABASE_URL), coerced to the field type, and validated. Dict and list
  fields such as ROUTE_VISIBILITY and CORS_ORIGINS are given as JSON.

  get_settings() is wrapped in lru_cache, so the environment is parsed on
  the first call and every later caller shares the same object.

Signing key:
  SECRET_KEY signs every bearer token (HS256), so it must be at least 32
  characters. With DEBUG=true a missing key is replaced by a random one,
  which invalidates all tokens on restart. Without DEBUG the app refuses to
  boot. The key is read from Settings exactly once, by
  TokenConfig.from_settings() in the app lifespan.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or articles/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("pressroom.config")

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_MIN_SECRET_KEY_LENGTH = 32


class Settings(BaseSettings):
    """Every tunable of a Pressroom deployment.

    Each field has a default except the signing key, which is generated in
    debug mode. Tests construct Settings(_env_file=None, ...) directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------

    app_name: str = "Pressroom API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    # "" means unset; validate_secret_key() replaces or rejects it.
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = "sqlite:///./pressroom.db"
    # Deadline for the store work of a single request. Expiry surfaces as a
    # storage failure; the in-flight statement is not rolled back.
    request_timeout_seconds: float = Field(default=10.0, gt=0)

    # ------------------------------------------------------------------
    # Tokens and passwords
    # ------------------------------------------------------------------

    token_ttl_seconds: int = Field(default=24 * 60 * 60, ge=60)
    jwt_algorithm: str = "HS256"
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)

    # Per-deployment public/protected overrides, e.g.
    # ROUTE_VISIBILITY='{"getUserById": "protected"}'
    route_visibility: dict[str, str] = Field(default_factory=dict)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost", "http://localhost:3000"])

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(_VALID_LOG_LEVELS)}")
        return level

    @field_validator("route_visibility")
    @classmethod
    def validate_route_visibility(cls, v: dict[str, str]) -> dict[str, str]:
        """Lowercase each override and reject anything but public/protected.

        Route names are checked later, against the operation registry, by
        auth.gate.build_policy().
        """
        normalized = {}
        for route_id, visibility in v.items():
            value = str(visibility).lower()
            if value not in ("public", "protected"):
                raise ValueError(f"route_visibility[{route_id!r}] must be 'public' or 'protected', got {visibility!r}")
            normalized[route_id] = value
        return normalized

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Generate a throwaway key in debug mode, otherwise insist on a real one."""
        if not self.secret_key and self.debug:
            self.secret_key = secrets.token_hex(32)
            logger.warning("DEBUG is set and SECRET_KEY is empty: signing with a random key for this process only.")
        elif not self.secret_key:
            raise ValueError(
                "SECRET_KEY is required unless DEBUG=true. "
                "Provide it through the environment or the .env file."
            )
        if len(self.secret_key) < _MIN_SECRET_KEY_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {_MIN_SECRET_KEY_LENGTH} characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Build Settings on first use and return the same instance afterwards.

    Tests that change environment variables must call
    get_settings.cache_clear() for the change to be seen.
    """
    return Settings()
