"""
API request and response models for Pressroom operations.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
articles/models.py, which own the internal domain representation. Handlers in
api/operations.py map between the two.

Request models only check shape (required fields, types, lengths). Email
syntax, uniqueness, and credentials are checked in auth/accounts.py so they
raise their own error codes.
"""

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints

from articles.models import Article
from auth.models import Credential
from auth.passwords import BCRYPT_MAX_PASSWORD_BYTES

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

# Identifiers are trimmed; passwords are taken byte for byte.
Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
Email = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=320)]


def _password_fits_bcrypt(v: str) -> str:
    """Reject passwords bcrypt would truncate instead of hashing them partially."""
    if len(v.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    return v


Password = Annotated[str, Field(min_length=1), AfterValidator(_password_fits_bcrypt)]


class RegisterRequest(BaseModel):
    """Request body for the register operation."""

    model_config = ConfigDict(extra="ignore")

    username: Username
    email: Email
    password: Password


class LoginRequest(BaseModel):
    """Request body for the login operation."""

    model_config = ConfigDict(extra="ignore")

    email: Email
    password: Password


class ArticleCreate(BaseModel):
    """Request body for addArticle.

    author and date are not fields here: any client-supplied values are
    dropped (extra="ignore") and the server assigns both.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class TokenResponse(BaseModel):
    """Response body for a successful login."""

    model_config = ConfigDict(frozen=True)

    token: str


class UserResponse(BaseModel):
    """Public view of a credential. The password hash is never included."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    email: str

    @classmethod
    def from_credential(cls, credential: Credential) -> "UserResponse":
        return cls(id=credential.id, username=credential.username, email=credential.email)


class ArticleResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    author: str
    date: str

    @classmethod
    def from_article(cls, article: Article) -> "ArticleResponse":
        return cls(
            title=article.title,
            description=article.description,
            author=article.author,
            date=article.date,
        )


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
