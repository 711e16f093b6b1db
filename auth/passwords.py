"""
auth/passwords.py -- bcrypt password hashing and verification.

Security design decisions:
  bcrypt is the right choice for low-entropy secrets (passwords): its cost
  factor makes brute force expensive and can be raised as hardware gets
  faster. The work factor comes from Settings.bcrypt_rounds.

  Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
  wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
  rejects with an explicit error.

  bcrypt.checkpw compares digests in constant time, so verification does not
  leak where a mismatch occurs.

  A dummy hash is computed once per hasher so that a login for an unknown
  email still pays the full bcrypt cost (see verify_dummy()). Response time
  then does not reveal whether an email is registered.

Layer rule: no imports from api/ or articles/.
"""

from __future__ import annotations

import logging

import bcrypt

from core.errors import HashingFailure

logger = logging.getLogger("pressroom.auth")

# bcrypt only reads the first 72 bytes of its input. Longer passwords are
# rejected at the request-model layer rather than silently truncated.
BCRYPT_MAX_PASSWORD_BYTES = 72

_DEFAULT_ROUNDS = 12


class PasswordHasher:
    """Salted one-way hashing with a tunable work factor.

    Usage:
        hasher = PasswordHasher(rounds=12)
        stored = hasher.hash("s3cret")
        hasher.verify("s3cret", stored)   # True
    """

    def __init__(self, rounds: int = _DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        self._dummy_hash = self.hash("pressroom_timing_dummy")

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt hash of the given plaintext password.

        Raises HashingFailure if bcrypt cannot produce a hash (entropy source
        or resource failure). The salt and work factor are embedded in the
        returned string.
        """
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")
        except (ValueError, TypeError, OSError) as exc:
            logger.error("Password hashing failed: %s", type(exc).__name__)
            raise HashingFailure(f"bcrypt hashpw failed: {exc}") from exc

    def verify(self, plaintext: str, password_hash: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash.

        A malformed hash (wrong prefix, truncated, not bcrypt at all) returns
        False instead of raising.
        """
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), password_hash.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def verify_dummy(self, plaintext: str) -> None:
        """Spend one bcrypt verification on a throwaway hash.

        Call this on the "no such user" branch of a login so that branch costs
        the same as a wrong password.
        """
        self.verify(plaintext, self._dummy_hash)
