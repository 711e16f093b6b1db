"""
core/errors.py -- Error taxonomy shared by every layer.

Each class carries the HTTP status and the machine-readable code it maps to,
so the single ApiError handler in api/main.py can render any of them without
a lookup table. Raise these from stores, flows, and handlers; never build
error responses inline.

Information hiding:
  Unauthenticated always carries the same message regardless of cause
  (missing header, bad signature, expired token, unknown email, wrong
  password). The cause is logged by whoever raised it, never returned.

  Internal failures (storage, hashing, signing) keep their detail on the
  exception for the server log; the response shows only a generic message.

Layer rule: core/ is the kernel. No imports from api/, auth/, or articles/.
"""

from __future__ import annotations


class ApiError(Exception):
    """Structured error that maps directly to the error response envelope."""

    status_code: int = 500
    code: str = "internal_error"
    public_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.public_message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# 4xx -- client errors
# ---------------------------------------------------------------------------


class MalformedRequest(ApiError):
    status_code = 400
    code = "malformed_request"
    public_message = "Bad Request"


class InvalidEmail(ApiError):
    status_code = 400
    code = "invalid_email"
    public_message = "Invalid email address"


class DuplicateCredential(ApiError):
    # 400 rather than 409; existing clients depend on it.
    status_code = 400
    code = "duplicate_credential"
    public_message = "Email address is already taken"


class Unauthenticated(ApiError):
    status_code = 401
    code = "unauthorized"
    public_message = "Unauthorized"

    def __init__(self, message: str | None = None) -> None:
        # The caller-facing message is fixed; anything passed in is ignored.
        super().__init__(None)


class NotFound(ApiError):
    status_code = 404
    code = "not_found"
    public_message = "Not Found"


# ---------------------------------------------------------------------------
# 5xx -- internal failures (detail logged, never returned)
# ---------------------------------------------------------------------------


class InternalFailure(ApiError):
    """Base for failures whose detail must stay server-side."""

    status_code = 500
    code = "internal_error"
    public_message = "Internal Server Error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(None)


class StorageFailure(InternalFailure):
    pass


class HashingFailure(InternalFailure):
    pass


class SigningFailure(InternalFailure):
    pass
