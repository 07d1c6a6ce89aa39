from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional


# PUBLIC_INTERFACE
class ErrorCode(IntEnum):
    """Stable JSON-RPC error codes exposed on the wire."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    SERVER_ERROR = -32000

    # Application codes
    ITEM_NOT_FOUND = 1001


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class RpcError:
    """
    JSON-RPC error object.

    ``data`` is omitted from the wire form when None.
    """

    code: int
    message: str
    data: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            d["data"] = self.data
        return d


def parse_error() -> RpcError:
    return RpcError(ErrorCode.PARSE_ERROR, "Parse error: Invalid JSON was received by the server.")


def invalid_request(reason: str) -> RpcError:
    return RpcError(ErrorCode.INVALID_REQUEST, "Invalid Request", data={"reason": reason})


def method_not_found(method: str) -> RpcError:
    return RpcError(ErrorCode.METHOD_NOT_FOUND, f"Method not found: {method}")


def invalid_params(message: str, data: Optional[Any] = None) -> RpcError:
    return RpcError(ErrorCode.INVALID_PARAMS, message, data=data)


def item_not_found(item_id: Any) -> RpcError:
    return RpcError(ErrorCode.ITEM_NOT_FOUND, f"Item with ID {item_id} not found")


def internal_error() -> RpcError:
    return RpcError(ErrorCode.INTERNAL_ERROR, "Internal error")


def server_error() -> RpcError:
    return RpcError(ErrorCode.SERVER_ERROR, "Internal Server Error during RPC processing")
