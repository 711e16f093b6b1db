"""
auth/gate.py -- Authorization gate: route classification and token check.

Every inbound operation passes through AuthorizationGate.authorize() before
its handler runs. The gate is pure decision logic:

  classify(route_id)  -> Visibility.PUBLIC | Visibility.PROTECTED
  authorize(route_id, header)
      PUBLIC    -> None, header never inspected
      PROTECTED -> AuthenticatedIdentity, or Unauthenticated raised

The route -> visibility policy is fixed at construction (built once in the
app lifespan from the operation registry plus Settings.route_visibility).
Routes missing from the policy classify as PROTECTED.

The gate never touches a store. Its only side effect is logging.

Authorization header format:
  The header value is the raw token. A leading "Bearer " scheme prefix is
  accepted and stripped, so both "Authorization: <jwt>" and
  "Authorization: Bearer <jwt>" work.

Layer rule: no imports from api/ or articles/.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum

from auth.models import AuthenticatedIdentity
from auth.tokens import TokenService
from core.errors import Unauthenticated

logger = logging.getLogger("pressroom.gate")

_BEARER_SCHEME = "bearer"

# Operations that can never require a token -- nobody could obtain one.
ALWAYS_PUBLIC = frozenset({"login", "register"})


class Visibility(str, Enum):
    PUBLIC = "public"
    PROTECTED = "protected"


def build_policy(
    defaults: Mapping[str, Visibility],
    overrides: Mapping[str, str] | None = None,
) -> dict[str, Visibility]:
    """Merge deployment overrides into the default route policy.

    Raises ValueError for overrides naming an unknown route or trying to
    protect login/register. Called once at startup, so a bad config fails
    the boot instead of a request.
    """
    policy = dict(defaults)
    for route_id, value in (overrides or {}).items():
        if route_id not in policy:
            raise ValueError(f"route_visibility names unknown route {route_id!r}")
        visibility = Visibility(value)
        if route_id in ALWAYS_PUBLIC and visibility is Visibility.PROTECTED:
            raise ValueError(f"route {route_id!r} must stay public")
        policy[route_id] = visibility
    return policy


def extract_bearer(raw_header: str | None) -> str | None:
    """Return the token carried by an Authorization header value, or None."""
    if not raw_header:
        return None
    value = raw_header.strip()
    scheme, _, rest = value.partition(" ")
    if scheme.lower() == _BEARER_SCHEME:
        value = rest.strip()
    return value or None


class AuthorizationGate:
    """Decides whether a request may proceed, and under which identity."""

    def __init__(self, policy: Mapping[str, Visibility], tokens: TokenService) -> None:
        self._policy = dict(policy)
        self._tokens = tokens

    def classify(self, route_id: str) -> Visibility:
        return self._policy.get(route_id, Visibility.PROTECTED)

    def authorize(self, route_id: str, raw_header: str | None) -> AuthenticatedIdentity | None:
        """Return the caller's identity for a protected route, None for a public one.

        Raises Unauthenticated when a protected route has no usable token.
        """
        if self.classify(route_id) is Visibility.PUBLIC:
            return None

        token = extract_bearer(raw_header)
        if token is None:
            logger.info("Rejected %s: no Authorization header", route_id)
            raise Unauthenticated()

        try:
            identity = self._tokens.validate(token)
        except Unauthenticated:
            logger.info("Rejected %s: invalid token", route_id)
            raise
        logger.debug("Authorized %s for %s", route_id, identity.username)
        return identity
