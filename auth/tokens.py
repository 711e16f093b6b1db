"""
auth/tokens.py -- JWT issuance and validation.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry exactly three registered claims:
       sub (username), iat, exp. Anything that does not parse into
       TokenClaims is rejected.

  Signing key: passed in via TokenConfig at construction. TokenService is
       built once in the app lifespan and shared read-only across requests;
       the key is never rotated during the process lifetime.

  Expiry: checked here against an injectable clock instead of inside
       jose.jwt.decode, so the rule is exactly "valid while now < exp" and
       tests can move time without sleeping.

  Failure collapse: every validation failure (bad signature, wrong
       algorithm, malformed claims, expired) raises the same Unauthenticated.
       The specific reason is logged at DEBUG only, so callers cannot use the
       response as an oracle for why a token failed.

  No revocation: there is no server-side token table. Expiry is the only way
       a token stops being valid.

Layer rule: no imports from api/ or articles/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import jwt
from jose.exceptions import JOSEError

from auth.models import AuthenticatedIdentity, TokenClaims
from core.errors import SigningFailure, Unauthenticated

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("pressroom.auth")

DEFAULT_TOKEN_TTL = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenConfig:
    """Immutable signing configuration for a TokenService."""

    secret_key: str
    algorithm: str = "HS256"
    ttl: timedelta = DEFAULT_TOKEN_TTL

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenConfig:
        return cls(
            secret_key=settings.secret_key,
            algorithm=settings.jwt_algorithm,
            ttl=timedelta(seconds=settings.token_ttl_seconds),
        )


class TokenService:
    """Issues and validates signed, time-bounded identity tokens.

    Usage:
        tokens = TokenService(TokenConfig(secret_key=key))
        token = tokens.issue("alice")
        identity = tokens.validate(token)   # AuthenticatedIdentity(username="alice")
    """

    def __init__(self, config: TokenConfig, clock: Callable[[], datetime] = _utcnow) -> None:
        self._config = config
        self._clock = clock

    @property
    def default_ttl(self) -> timedelta:
        return self._config.ttl

    def issue(self, username: str, ttl: timedelta | None = None) -> str:
        """Encode a signed JWT for username, valid for ttl (default from config).

        iat is truncated to whole seconds so exp == iat + ttl exactly; JWT
        NumericDate claims carry no sub-second precision.
        """
        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + (ttl if ttl is not None else self._config.ttl)
        payload = {
            "sub": username,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        try:
            return jwt.encode(payload, self._config.secret_key, algorithm=self._config.algorithm)
        except JOSEError as exc:
            logger.error("Token signing failed: %s", type(exc).__name__)
            raise SigningFailure(f"jwt.encode failed: {exc}") from exc

    def decode_claims(self, token: str) -> TokenClaims:
        """Verify the signature and parse the claim set. Does not check expiry.

        Raises Unauthenticated on any failure.
        """
        try:
            payload = jwt.decode(
                token,
                self._config.secret_key,
                algorithms=[self._config.algorithm],
                options={"verify_exp": False},
            )
        except JOSEError as exc:
            logger.debug("Token rejected: %s", type(exc).__name__)
            raise Unauthenticated() from exc

        subject = payload.get("sub")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not isinstance(subject, str) or not subject:
            logger.debug("Token rejected: missing or non-string sub claim")
            raise Unauthenticated()
        if not _is_numeric_date(issued_at) or not _is_numeric_date(expires_at):
            logger.debug("Token rejected: iat/exp missing or not a NumericDate")
            raise Unauthenticated()

        return TokenClaims(
            subject_username=subject,
            issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
        )

    def validate(self, token: str) -> AuthenticatedIdentity:
        """Return the identity carried by token, or raise Unauthenticated.

        A token is valid only if its signature verifies against the signing
        key, its claims are well-formed, and now < exp.
        """
        claims = self.decode_claims(token)
        if self._clock() >= claims.expires_at:
            logger.debug("Token rejected: expired at %s", claims.expires_at.isoformat())
            raise Unauthenticated()
        return AuthenticatedIdentity(username=claims.subject_username)


def _is_numeric_date(value) -> bool:
    # bool is an int subclass; a literal true/false is not a timestamp.
    return isinstance(value, (int, float)) and not isinstance(value, bool)
