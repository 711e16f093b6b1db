"""
api/main.py -- FastAPI application entry point for Pressroom.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware     -- adds CORS headers for allowed browser origins
  2. log_requests       -- method, path, status, latency for every request

Lifespan builds every long-lived collaborator exactly once and parks it on
app.state:
  app.state.services        -- stores, password hasher, token service
  app.state.gate            -- AuthorizationGate with the merged route policy
  app.state.request_timeout -- per-request store deadline in seconds
Shutdown disposes the store engines.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.operations import Services, default_policy
from api.routes.dispatch import router as dispatch_router
from articles.store import ArticleStore
from auth.gate import AuthorizationGate, Visibility, build_policy
from auth.passwords import PasswordHasher
from auth.store import CredentialStore
from auth.tokens import TokenConfig, TokenService
from core.config import get_settings
from core.errors import ApiError, InternalFailure

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("pressroom.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build stores, hasher, token service, and gate; tear the stores down on exit.

    The signing key leaves Settings exactly once here, inside TokenConfig.
    A bad ROUTE_VISIBILITY override raises from build_policy() and stops the
    boot rather than failing later on a request.
    """
    settings = get_settings()
    logging.getLogger("pressroom").setLevel(settings.log_level)
    logger.info("Pressroom API starting up")

    credentials = CredentialStore(settings.database_url)
    articles = ArticleStore(settings.database_url)
    tokens = TokenService(TokenConfig.from_settings(settings))
    app.state.services = Services(
        credentials=credentials,
        articles=articles,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        tokens=tokens,
    )
    policy = build_policy(default_policy(), settings.route_visibility)
    app.state.gate = AuthorizationGate(policy, tokens)
    app.state.request_timeout = settings.request_timeout_seconds
    logger.info(
        "Auth initialized (protected=%s)",
        sorted(r for r, v in policy.items() if v is Visibility.PROTECTED),
    )

    yield

    credentials.close()
    articles.close()
    logger.info("Pressroom API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title=_settings.app_name,
    description="Bearer-token authenticated user and article operations.",
    version=_settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Health endpoint
#
# Registered before the dispatch router so GET /health is never shadowed by
# the /{route_id} pattern.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, version, and database reachability. No auth required."""
    services: Services = request.app.state.services
    database = "ok" if services.credentials.ping() else "error"
    return HealthResponse(
        version=_settings.app_version,
        components={"app": "ok", "database": database},
    )


app.include_router(dispatch_router, tags=["Operations"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every failure, ours or the framework's, leaves as {"error": {"code", "message"}}.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message)).model_dump(),
    )


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render any core.errors exception.

    Internal failures log their detail here; the client only ever sees the
    generic message.
    """
    if isinstance(exc, InternalFailure):
        logger.error(
            "%s on %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.detail,
        )
    response = _error_response(exc.status_code, exc.code, exc.message)
    if exc.status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Framework-level validation failures use the same 400 as body shape errors."""
    return _error_response(400, "malformed_request", "Bad Request")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing errors (unknown path 404, wrong method 405) in the standard envelope."""
    response = _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for bugs. The traceback is logged; the client gets a generic 500."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "Internal Server Error")
