"""
auth/accounts.py -- Registration and login flows.

These two functions are the only places where the password hasher, the token
service, and the credential store meet. Request shape (required fields,
types) is validated by the Pydantic models in api/models.py before either
function runs; everything past shape is enforced here.

register_user():
  1. email syntax        -> InvalidEmail
  2. find_by_email()     -> DuplicateCredential if taken
  3. hash password       -> HashingFailure on bcrypt failure
  4. insert()            -> DuplicateCredential on a concurrent duplicate
                            (UNIQUE constraint), StorageFailure otherwise

login_user():
  Always runs bcrypt whether or not the email exists, so response time does
  not reveal which emails are registered:
  - Unknown email:  bcrypt runs against the hasher's dummy hash
  - Wrong password: bcrypt runs against the real hash
  Both raise the same Unauthenticated.

Layer rule: no imports from api/ or articles/.
"""

from __future__ import annotations

import logging
import re
from datetime import timedelta

from auth.models import Credential
from auth.passwords import PasswordHasher
from auth.store import CredentialStore
from auth.tokens import TokenService
from core.errors import DuplicateCredential, InvalidEmail, Unauthenticated

logger = logging.getLogger("pressroom.auth")

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

LOGIN_TOKEN_TTL = timedelta(hours=24)


def is_valid_email(email: str) -> bool:
    return EMAIL_PATTERN.match(email) is not None


def register_user(
    store: CredentialStore,
    hasher: PasswordHasher,
    username: str,
    email: str,
    password: str,
) -> str:
    """Create a new credential and return its id."""
    if not is_valid_email(email):
        raise InvalidEmail()

    if store.find_by_email(email) is not None:
        logger.info("Registration rejected: email already registered")
        raise DuplicateCredential()

    password_hash = hasher.hash(password)
    new_id = store.insert(Credential(username=username, email=email, password_hash=password_hash))
    logger.info("Registered user %s (id=%s)", username, new_id)
    return new_id


def authenticate(store: CredentialStore, hasher: PasswordHasher, email: str, password: str) -> Credential:
    """Return the credential matching email + password, or raise Unauthenticated."""
    credential = store.find_by_email(email)
    if credential is None:
        # Equalize timing -- do NOT return early before running bcrypt.
        hasher.verify_dummy(password)
        logger.info("Login failed: unknown email")
        raise Unauthenticated()
    if not hasher.verify(password, credential.password_hash):
        logger.info("Login failed: bad password for user %s", credential.username)
        raise Unauthenticated()
    return credential


def login_user(
    store: CredentialStore,
    hasher: PasswordHasher,
    tokens: TokenService,
    email: str,
    password: str,
    ttl: timedelta = LOGIN_TOKEN_TTL,
) -> str:
    """Verify credentials and return a signed token for the account's username."""
    credential = authenticate(store, hasher, email, password)
    token = tokens.issue(credential.username, ttl)
    logger.info("Issued token for user %s", credential.username)
    return token
