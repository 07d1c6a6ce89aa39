from __future__ import annotations

from datetime import datetime
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr, field_validator


# PUBLIC_INTERFACE
class ItemOut(BaseModel):
    """
    Wire representation of a todo item, as returned in RPC results.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 42,
                "text": "Buy milk",
                "completed": False,
                "created_at": "2025-01-25T10:15:30.123456+00:00",
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the item")
    text: str = Field(..., description="Item text")
    completed: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., description="Creation timestamp")


# PUBLIC_INTERFACE
class AddItemParams(BaseModel):
    """Parameters of ``item.add``."""

    text: StrictStr = Field(..., description="The text of the item")

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """
        Strip whitespace and reject blank text.
        """
        s = v.strip()
        if not s:
            raise ValueError("text must not be empty")
        return s


# PUBLIC_INTERFACE
class RemoveItemParams(BaseModel):
    """Parameters of ``item.remove``. Booleans are not accepted as numbers."""

    id: Union[StrictInt, StrictFloat] = Field(..., description="The ID of the item to remove")


# PUBLIC_INTERFACE
class LoginRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "testuser", "password": "password123"}}
    )

    username: str = Field(..., description="Account username")
    password: str = Field(..., description="Account password")


class UserOut(BaseModel):
    id: int
    username: str


# PUBLIC_INTERFACE
class LoginResponse(BaseModel):
    """
    Returned by a successful login. ``token`` goes in the
    ``Authorization: Bearer <token>`` header of subsequent RPC calls.
    """

    message: str = Field(default="Login successful")
    user: UserOut
    token: str
