"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors
articles/models.py -- dataclasses own domain shape; stores and routes do the
work.

Layer rule: no imports from api/ or articles/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Credential:
    """A registered user account.

    password_hash is always a bcrypt hash produced by PasswordHasher.hash();
    the plaintext is never stored or compared directly.

    id is None before the record is written to the store, which assigns an
    opaque 32-char hex identifier on insert.
    """

    username: str
    email: str
    password_hash: str
    id: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """The fixed claim set carried by every issued token.

    Encoded as the JWT registered claims sub / iat / exp. A token whose
    payload cannot be parsed into exactly this shape is rejected.
    """

    subject_username: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """The caller identity, derived only from a validated token.

    Write attribution (e.g. Article.author) reads from this object, never from
    request-supplied fields.
    """

    username: str
