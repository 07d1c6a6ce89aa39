from __future__ import annotations

import logging
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import RpcError, invalid_params, item_not_found
from .models import ItemEntity
from .registry import CallContext, MethodDescriptor, MethodName, MethodRegistry, ParamSpec
from .repositories import ItemRepository
from .result import Err, Ok, Result
from .schemas import AddItemParams, ItemOut, RemoveItemParams

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

ITEM_SHAPE = "Item {id: integer, text: string, completed: boolean, created_at: string}"


def _item_out(entity: ItemEntity) -> Dict[str, Any]:
    return ItemOut.model_validate(entity).model_dump(mode="json")


def _parse_params(model: Type[M], params: Any, type_messages: Dict[str, str]) -> Result[M, RpcError]:
    """
    Validate named params against ``model``.

    Missing fields report ``Missing required parameter: <name>``; any other
    failure on a field reports the message registered for it.
    """
    if params is None:
        params = {}
    if not isinstance(params, dict):
        return Err(invalid_params("params must be an object"))
    try:
        return Ok(model.model_validate(params))
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False, include_input=False)
        first = errors[0]
        name = str(first["loc"][0]) if first["loc"] else ""
        if first["type"] == "missing":
            message = f"Missing required parameter: {name}"
        else:
            message = type_messages.get(name, f'Parameter "{name}" is invalid')
        return Err(invalid_params(message, data=errors))


# PUBLIC_INTERFACE
class ItemMethods:
    """RPC handlers backed by an ItemRepository."""

    def __init__(self, repository: ItemRepository) -> None:
        self._repo = repository

    def list_items(self, params: Any, context: CallContext) -> Result[Any, RpcError]:
        return Ok([_item_out(e) for e in self._repo.list()])

    def add_item(self, params: Any, context: CallContext) -> Result[Any, RpcError]:
        parsed = _parse_params(AddItemParams, params, {"text": 'Parameter "text" must be a non-empty string'})
        if isinstance(parsed, Err):
            return parsed
        created = self._repo.add(parsed.value.text)
        logger.info("Item %d added by %s", created["id"], _who(context))
        return Ok(_item_out(created))

    def remove_item(self, params: Any, context: CallContext) -> Result[Any, RpcError]:
        parsed = _parse_params(RemoveItemParams, params, {"id": 'Parameter "id" must be a number'})
        if isinstance(parsed, Err):
            return parsed
        item_id = parsed.value.id
        removed = self._repo.remove(item_id)
        if removed is None:
            return Err(item_not_found(item_id))
        logger.info("Item %d removed by %s", removed["id"], _who(context))
        return Ok(_item_out(removed))


def _who(context: CallContext) -> str:
    return context.identity["username"] if context.identity else "anonymous"


# PUBLIC_INTERFACE
def build_registry(repository: ItemRepository, service_name: str, description: str) -> MethodRegistry:
    """Build the fixed method table for the item service."""
    methods = ItemMethods(repository)
    return MethodRegistry(
        service_name=service_name,
        description=description,
        descriptors=[
            MethodDescriptor(
                name=MethodName.ITEM_LIST,
                handler=methods.list_items,
                description="List all items, oldest first.",
                returns=f"array of {ITEM_SHAPE}",
            ),
            MethodDescriptor(
                name=MethodName.ITEM_ADD,
                handler=methods.add_item,
                description="Add a new item with the given text.",
                params=(ParamSpec("text", "string", True, "The text of the item; surrounding whitespace is trimmed."),),
                returns=ITEM_SHAPE,
            ),
            MethodDescriptor(
                name=MethodName.ITEM_REMOVE,
                handler=methods.remove_item,
                description="Remove an item by ID and return it.",
                params=(ParamSpec("id", "number", True, "The ID of the item to remove."),),
                returns=ITEM_SHAPE,
            ),
        ],
    )
