"""
JSON-RPC 2.0 request dispatch and error classification.

Precedence, first match wins:
1. body is not JSON                          -> -32700, id null
2. value is not a request envelope           -> -32600, id null
3. method is not registered                  -> -32601, request id
4. handler returns Err                       -> that error, request id
5. handler raises                            -> -32603, request id
Notifications (id absent or null) run the handler but never get a response
for outcomes 3-5.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Union

from .errors import RpcError, internal_error, invalid_request, method_not_found, parse_error
from .registry import CallContext, MethodRegistry
from .result import Err, Ok

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"

Response = Dict[str, Any]


def success_response(request_id: Any, result: Any) -> Response:
    return {"jsonrpc": JSONRPC_VERSION, "result": result, "id": request_id}


def error_response(request_id: Any, error: RpcError) -> Response:
    return {"jsonrpc": JSONRPC_VERSION, "error": error.to_dict(), "id": request_id}


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def decode_body(body: Union[bytes, str]) -> Any:
    """
    Decode a raw request body. Raises ValueError on anything that is not
    strict JSON (including NaN/Infinity and invalid UTF-8) or that nests
    deeper than the decoder can follow.
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    try:
        return json.loads(body, parse_constant=_reject_constant)
    except RecursionError:
        raise ValueError("JSON nested too deeply") from None


def _is_valid_id(value: Any) -> bool:
    return value is None or (isinstance(value, (str, int, float)) and not isinstance(value, bool))


def _envelope_problem(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return "request must be a JSON object"
    if payload.get("jsonrpc") != JSONRPC_VERSION:
        return "missing or invalid 'jsonrpc' field"
    if not isinstance(payload.get("method"), str):
        return "missing or invalid 'method' field"
    if "params" in payload and payload["params"] is not None and not isinstance(payload["params"], (dict, list)):
        return "'params' must be an object or an array"
    if "id" in payload and not _is_valid_id(payload["id"]):
        return "'id' must be a string, a number or null"
    return None


# PUBLIC_INTERFACE
class RequestDispatcher:
    """
    Route decoded JSON-RPC envelopes to registry handlers.

    Holds only the read-only registry, so a single instance may serve
    concurrent calls.
    """

    def __init__(self, registry: MethodRegistry) -> None:
        self._registry = registry

    def dispatch_raw(self, body: Union[bytes, str], context: Optional[CallContext] = None) -> Optional[Response]:
        """Decode ``body`` and dispatch it. Undecodable bodies yield a ParseError."""
        try:
            payload = decode_body(body)
        except ValueError:
            logger.debug("Rejecting unparseable RPC body")
            return error_response(None, parse_error())
        return self.dispatch(payload, context)

    def dispatch(self, payload: Any, context: Optional[CallContext] = None) -> Optional[Response]:
        """
        Dispatch an already decoded payload.

        Returns the response envelope, or None for a notification.
        """
        problem = _envelope_problem(payload)
        if problem is not None:
            logger.debug("Invalid RPC envelope: %s", problem)
            return error_response(None, invalid_request(problem))

        method: str = payload["method"]
        request_id = payload.get("id")
        is_notification = request_id is None
        ctx = CallContext(
            identity=context.identity if context else None,
            request_id=request_id,
        )

        descriptor = self._registry.lookup(method)
        if descriptor is None:
            logger.debug("Unknown RPC method %r", method)
            return None if is_notification else error_response(request_id, method_not_found(method))

        try:
            outcome = descriptor.handler(payload.get("params"), ctx)
        except Exception:
            logger.exception("Unhandled error in RPC method %r", method)
            outcome = Err(internal_error())

        if is_notification:
            if isinstance(outcome, Err):
                logger.info("Notification %r failed with code %d", method, outcome.error.code)
            return None
        if isinstance(outcome, Ok):
            logger.debug("RPC %r id=%r succeeded", method, request_id)
            return success_response(request_id, outcome.value)
        logger.debug("RPC %r id=%r failed with code %d", method, request_id, outcome.error.code)
        return error_response(request_id, outcome.error)
