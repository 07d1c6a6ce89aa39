from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import RpcError
from .models import Identity
from .result import Ok, Result


# PUBLIC_INTERFACE
class MethodName(str, Enum):
    """Every RPC method the service exposes. The registry must cover all of them."""

    SERVICE_DISCOVER = "service.discover"
    ITEM_LIST = "item.list"
    ITEM_ADD = "item.add"
    ITEM_REMOVE = "item.remove"


@dataclass(frozen=True)
class CallContext:
    """Per-call data handed to handlers alongside params."""

    identity: Optional[Identity] = None
    request_id: Any = None


Handler = Callable[[Any, CallContext], Result[Any, RpcError]]


@dataclass(frozen=True)
class ParamSpec:
    name: str
    type: str
    required: bool = True
    description: str = ""

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "required": self.required,
            "description": self.description,
        }


@dataclass(frozen=True)
class MethodDescriptor:
    name: MethodName
    handler: Handler
    description: str
    params: Tuple[ParamSpec, ...] = field(default_factory=tuple)
    returns: str = "null"

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name.value,
            "description": self.description,
            "params": [p.describe() for p in self.params],
            "returns": self.returns,
        }


# PUBLIC_INTERFACE
class MethodRegistry:
    """
    Immutable mapping of method name to handler descriptor.

    ``service.discover`` is registered by the registry itself; every other
    ``MethodName`` member must be supplied exactly once, otherwise construction
    fails at startup instead of producing a lookup miss at request time.
    """

    def __init__(self, service_name: str, description: str, descriptors: Iterable[MethodDescriptor]) -> None:
        self._service_name = service_name
        self._description = description

        table: Dict[MethodName, MethodDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name is MethodName.SERVICE_DISCOVER:
                raise ValueError("service.discover is registered by the registry itself")
            if descriptor.name in table:
                raise ValueError(f"duplicate registration for {descriptor.name.value}")
            table[descriptor.name] = descriptor
        table[MethodName.SERVICE_DISCOVER] = MethodDescriptor(
            name=MethodName.SERVICE_DISCOVER,
            handler=self._discover,
            description="Describe this service and every method it exposes.",
            returns="object {name, description, methods[]}",
        )

        missing = [m.value for m in MethodName if m not in table]
        if missing:
            raise ValueError(f"no handler registered for: {', '.join(missing)}")

        # Keep enumeration order for discovery output
        self._table: Mapping[MethodName, MethodDescriptor] = MappingProxyType(
            {m: table[m] for m in MethodName}
        )

    def lookup(self, method: str) -> Optional[MethodDescriptor]:
        try:
            return self._table[MethodName(method)]
        except ValueError:
            return None

    def names(self) -> List[str]:
        return [m.value for m in self._table]

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self._service_name,
            "description": self._description,
            "methods": [d.describe() for d in self._table.values()],
        }

    def _discover(self, params: Any, context: CallContext) -> Result[Any, RpcError]:
        return Ok(self.describe())
