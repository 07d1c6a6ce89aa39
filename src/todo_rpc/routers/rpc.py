from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ..auth import require_identity
from ..dispatcher import RequestDispatcher, error_response
from ..errors import server_error
from ..models import Identity
from ..registry import CallContext

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rpc"])


def get_dispatcher(request: Request) -> RequestDispatcher:
    return request.app.state.dispatcher


# PUBLIC_INTERFACE
@router.post(
    "/rpc",
    summary="JSON-RPC endpoint",
    description=(
        "Single JSON-RPC 2.0 endpoint. Requires a bearer token.\n\n"
        "Methods: service.discover, item.list, item.add, item.remove.\n"
        "Protocol errors are returned in the response envelope with HTTP 200; "
        "notifications (no id) are acknowledged with 204 and no body."
    ),
    responses={
        200: {"description": "JSON-RPC response envelope (result or error)"},
        204: {"description": "Notification accepted; no body"},
        401: {"description": "Missing or invalid bearer token"},
    },
)
async def rpc_endpoint(
    request: Request,
    identity: Identity = Depends(require_identity),
    dispatcher: RequestDispatcher = Depends(get_dispatcher),
) -> Response:
    """
    Read the raw body and hand it to the dispatcher. The body is only read
    after authentication succeeded.
    """
    body = await request.body()
    envelope: Optional[Any] = None
    try:
        envelope = await run_in_threadpool(dispatcher.dispatch_raw, body, CallContext(identity=identity))
        if envelope is None:
            return Response(status_code=status.HTTP_204_NO_CONTENT)
        return JSONResponse(envelope)
    except Exception:
        logger.exception("RPC processing failed outside the method handler")
        request_id = envelope.get("id") if isinstance(envelope, dict) else None
        return JSONResponse(error_response(request_id, server_error()))
