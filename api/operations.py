"""
api/operations.py -- Operation registry and resource handlers.

Every public operation is registered once, at import time, in OPERATIONS:

    route_id -> Operation(visibility, handler)

The visibility here is the default policy; the app lifespan merges
Settings.route_visibility overrides into it and hands the result to the
AuthorizationGate. api/routes/dispatch.py looks the route up here, lets the
gate decide, then runs the handler.

Handlers are plain synchronous functions:

    handler(services, request) -> JSONResponse

They run in a worker thread under the request deadline, so they may block
on the stores. They raise core.errors exceptions for every failure and never
build error responses themselves.

Operation policy (defaults):
  login, register                          public (cannot be overridden)
  getArticles, getArticlesByTitle          public
  getUserById                              public
  addArticle, getUsers                     protected
  deleteUserById, deleteArticleByTitle     protected
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TypeVar

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from api.models import (
    ArticleCreate,
    ArticleResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from articles.models import ARTICLE_DATE_FORMAT, Article
from articles.store import ArticleStore
from auth.accounts import login_user, register_user
from auth.gate import Visibility
from auth.models import AuthenticatedIdentity
from auth.passwords import PasswordHasher
from auth.store import CredentialStore, parse_credential_id
from auth.tokens import TokenService
from core.errors import MalformedRequest, NotFound, Unauthenticated

logger = logging.getLogger("pressroom.api")

M = TypeVar("M", bound=BaseModel)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Services:
    """Long-lived collaborators shared by every handler, built once in the lifespan."""

    credentials: CredentialStore
    articles: ArticleStore
    hasher: PasswordHasher
    tokens: TokenService
    clock: Callable[[], datetime] = _utcnow


@dataclass(frozen=True)
class OperationRequest:
    """What a handler sees of the inbound request."""

    body: bytes = b""
    query: Mapping[str, str] = field(default_factory=dict)
    identity: AuthenticatedIdentity | None = None


Handler = Callable[[Services, OperationRequest], JSONResponse]


@dataclass(frozen=True)
class Operation:
    visibility: Visibility
    handler: Handler


OPERATIONS: dict[str, Operation] = {}


def operation(route_id: str, visibility: Visibility) -> Callable[[Handler], Handler]:
    """Register handler under route_id with its default visibility."""

    def decorator(handler: Handler) -> Handler:
        if route_id in OPERATIONS:
            raise ValueError(f"operation {route_id!r} registered twice")
        OPERATIONS[route_id] = Operation(visibility=visibility, handler=handler)
        return handler

    return decorator


def default_policy() -> dict[str, Visibility]:
    return {route_id: op.visibility for route_id, op in OPERATIONS.items()}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_body(model: type[M], body: bytes) -> M:
    """Validate a JSON body against model. Any shape error is MalformedRequest."""
    try:
        return model.model_validate_json(body)
    except ValidationError as exc:
        logger.info("Rejected %s body: %d validation error(s)", model.__name__, exc.error_count())
        raise MalformedRequest() from None


def _require_identity(request: OperationRequest) -> AuthenticatedIdentity:
    # Write attribution needs an identity even if a deployment made the route public.
    if request.identity is None:
        raise Unauthenticated()
    return request.identity


def _json(status_code: int, payload) -> JSONResponse:
    if isinstance(payload, BaseModel):
        content = payload.model_dump()
    else:
        content = [item.model_dump() for item in payload]
    return JSONResponse(status_code=status_code, content=content)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@operation("register", Visibility.PUBLIC)
def handle_register(services: Services, request: OperationRequest) -> JSONResponse:
    body = _parse_body(RegisterRequest, request.body)
    register_user(services.credentials, services.hasher, body.username, body.email, body.password)
    return _json(201, MessageResponse(message="User created successfully"))


@operation("login", Visibility.PUBLIC)
def handle_login(services: Services, request: OperationRequest) -> JSONResponse:
    body = _parse_body(LoginRequest, request.body)
    token = login_user(
        services.credentials,
        services.hasher,
        services.tokens,
        body.email,
        body.password,
        services.tokens.default_ttl,
    )
    response = _json(200, TokenResponse(token=token))
    response.headers["Cache-Control"] = "no-store"
    return response


@operation("getUsers", Visibility.PROTECTED)
def handle_get_users(services: Services, request: OperationRequest) -> JSONResponse:
    users = services.credentials.list_all()
    return _json(200, [UserResponse.from_credential(u) for u in users])


@operation("getUserById", Visibility.PUBLIC)
def handle_get_user_by_id(services: Services, request: OperationRequest) -> JSONResponse:
    user_id = parse_credential_id(request.query.get("_id"))
    credential = services.credentials.find_by_id(user_id)
    if credential is None:
        raise NotFound("User not found")
    return _json(200, UserResponse.from_credential(credential))


@operation("deleteUserById", Visibility.PROTECTED)
def handle_delete_user_by_id(services: Services, request: OperationRequest) -> JSONResponse:
    user_id = parse_credential_id(request.query.get("_id"))
    if not services.credentials.delete_by_id(user_id):
        raise NotFound("User not found")
    actor = request.identity.username if request.identity else "anonymous"
    logger.info("User %s deleted by %s", user_id, actor)
    return _json(200, MessageResponse(message="User deleted successfully"))


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------


@operation("addArticle", Visibility.PROTECTED)
def handle_add_article(services: Services, request: OperationRequest) -> JSONResponse:
    identity = _require_identity(request)
    body = _parse_body(ArticleCreate, request.body)
    article = Article(
        title=body.title,
        description=body.description,
        author=identity.username,
        date=services.clock().strftime(ARTICLE_DATE_FORMAT),
    )
    services.articles.insert(article)
    logger.info("Article %r created by %s", article.title, identity.username)
    return _json(201, MessageResponse(message="Article created"))


@operation("getArticles", Visibility.PUBLIC)
def handle_get_articles(services: Services, request: OperationRequest) -> JSONResponse:
    articles = services.articles.list_all()
    return _json(200, [ArticleResponse.from_article(a) for a in articles])


@operation("getArticlesByTitle", Visibility.PUBLIC)
def handle_get_articles_by_title(services: Services, request: OperationRequest) -> JSONResponse:
    articles = services.articles.find_by_title(request.query.get("title", ""))
    return _json(200, [ArticleResponse.from_article(a) for a in articles])


@operation("deleteArticleByTitle", Visibility.PROTECTED)
def handle_delete_article_by_title(services: Services, request: OperationRequest) -> JSONResponse:
    title = request.query.get("title", "")
    if not services.articles.delete_by_title(title):
        raise NotFound("Article not found")
    return _json(200, MessageResponse(message="Article deleted successfully"))
