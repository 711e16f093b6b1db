"""
auth/store.py -- SQLAlchemy Core persistence layer for credentials.

Pattern: Repository + Data Mapper (same as articles/store.py).
CredentialStore is the repository; _row_to_credential is the mapper.
Handler and flow code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is enforced twice: register_user() checks with
  find_by_email() first, and the users.email column carries a UNIQUE
  constraint. The constraint closes the check-then-insert race between two
  concurrent registrations; insert() turns the resulting IntegrityError into
  DuplicateCredential so both paths look the same to the caller.

Failure mapping:
  Any other SQLAlchemyError becomes StorageFailure. Nothing is retried.

Layer rule: no imports from api/ or articles/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, MetaData, String, Table, Text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import Credential
from core.db import make_engine, storage_errors
from core.errors import DuplicateCredential, MalformedRequest, StorageFailure

logger = logging.getLogger("pressroom.store")

_DEFAULT_DB_URL = "sqlite:///./pressroom.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),  # uuid4 hex, assigned on insert
    Column("username", String(255), nullable=False),
    Column("email", String(320), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_credential_id(raw: str | None) -> str:
    """Normalize a client-supplied id to the store's format (32-char uuid hex).

    Raises MalformedRequest if raw is not a UUID. Handlers call this before
    any lookup, so a bad id never reaches the database.
    """
    if not raw:
        raise MalformedRequest("Invalid id")
    try:
        return uuid.UUID(raw).hex
    except ValueError:
        raise MalformedRequest("Invalid id") from None


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for Credential records, unique by email.

    Usage:
        store = CredentialStore("sqlite:///./pressroom.db")
        new_id = store.insert(Credential(username="alice", email="a@example.com", password_hash=h))
        cred = store.find_by_email("a@example.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(_users.select().limit(1)).fetchall()
            return True
        except SQLAlchemyError:
            return False

    def find_by_email(self, email: str) -> Credential | None:
        """Look up a credential by exact email. Returns None if not found."""
        with storage_errors("find_by_email"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_credential(row) if row is not None else None

    def find_by_id(self, credential_id: str) -> Credential | None:
        """Look up a credential by id. Returns None if not found."""
        with storage_errors("find_by_id"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == credential_id)).fetchone()
        return _row_to_credential(row) if row is not None else None

    def list_all(self) -> list[Credential]:
        """Return every credential ordered by username."""
        with storage_errors("list_all"), self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.username)).fetchall()
        return [_row_to_credential(r) for r in rows]

    def insert(self, credential: Credential) -> str:
        """Insert a credential and return its assigned id.

        Raises DuplicateCredential if the email is already taken (UNIQUE
        violation), StorageFailure for any other database error.
        """
        new_id = uuid.uuid4().hex
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=new_id,
                        username=credential.username,
                        email=credential.email,
                        password_hash=credential.password_hash,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            logger.info("Insert rejected by unique email constraint")
            raise DuplicateCredential() from exc
        except SQLAlchemyError as exc:
            logger.error("insert failed: %s", exc)
            raise StorageFailure(f"insert: {exc}") from exc
        return new_id

    def delete_by_id(self, credential_id: str) -> bool:
        """Permanently delete a credential. Returns True if deleted, False if not found."""
        with storage_errors("delete_by_id"), self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == credential_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_credential(row) -> Credential:
    return Credential(
        id=row.id,
        username=row.username,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
