from __future__ import annotations

from datetime import datetime
from typing import TypedDict


# PUBLIC_INTERFACE
class ItemEntity(TypedDict):
    """
    A lightweight domain model representing a persisted todo item.

    Fields:
    - id: Unique integer identifier, assigned by the store and never reused
    - text: Item text (non-empty, trimmed before it reaches the store)
    - completed: Boolean completion flag (always False on creation)
    - created_at: UTC creation timestamp
    """

    id: int
    text: str
    completed: bool
    created_at: datetime


class UserRecord(TypedDict):
    """Stored credentials row. Never leaves the credential check."""

    id: int
    username: str
    password_hash: str


# PUBLIC_INTERFACE
class Identity(TypedDict):
    """Caller identity resolved from a verified bearer token."""

    id: int
    username: str
