"""
api/routes/dispatch.py -- Single POST entry point for every named operation.

Routes:
  POST /{route_id}   -- route_id is one of api.operations.OPERATIONS

Order of work for each request:
  1. Unknown route_id                 -> 404, nothing else runs
  2. AuthorizationGate.authorize()    -> 401 for protected routes without a
                                         valid token, before the body is read
                                         and before any store is touched
  3. Handler runs in a worker thread under the request deadline
     (Settings.request_timeout_seconds). On expiry the caller stops waiting
     and gets a storage failure; the abandoned thread may still finish its
     write, which is not rolled back.

Any other HTTP method on /{route_id} is answered 405 by the router.
"""

from __future__ import annotations

import logging
from functools import partial

import anyio
import anyio.to_thread
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.operations import OPERATIONS, OperationRequest, Services
from auth.gate import AuthorizationGate
from core.errors import NotFound, StorageFailure

logger = logging.getLogger("pressroom.api")

router = APIRouter()


@router.post("/{route_id}")
async def dispatch(route_id: str, request: Request) -> JSONResponse:
    """Classify, authorize, and run the operation named by route_id."""
    op = OPERATIONS.get(route_id)
    if op is None:
        logger.info("Unknown operation %r", route_id)
        raise NotFound()

    gate: AuthorizationGate = request.app.state.gate
    identity = gate.authorize(route_id, request.headers.get("Authorization"))

    op_request = OperationRequest(
        body=await request.body(),
        query=dict(request.query_params),
        identity=identity,
    )
    services: Services = request.app.state.services
    timeout: float = request.app.state.request_timeout

    try:
        with anyio.fail_after(timeout):
            return await anyio.to_thread.run_sync(
                partial(op.handler, services, op_request),
                abandon_on_cancel=True,
            )
    except TimeoutError:
        logger.error("Operation %s exceeded its %.1fs deadline", route_id, timeout)
        raise StorageFailure(f"{route_id}: deadline of {timeout}s exceeded") from None
