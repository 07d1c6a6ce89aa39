from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from threading import RLock
from typing import Dict, List, Optional

from .models import ItemEntity, UserRecord


# PUBLIC_INTERFACE
class ItemRepository(ABC):
    """
    Abstract repository contract for item storage backends.

    Stored text is never blank. The RPC layer already rejects blank text as
    invalid params; implementations still enforce it for direct callers.
    """

    @staticmethod
    def _clean_text(text: str) -> str:
        cleaned = text.strip()
        if not cleaned:
            raise ValueError("item text must not be empty")
        return cleaned

    @abstractmethod
    def list(self) -> List[ItemEntity]:
        """Return every item, oldest first."""

    @abstractmethod
    def add(self, text: str) -> ItemEntity:
        """Store a new item with trimmed ``text`` and return it."""

    @abstractmethod
    def remove(self, item_id: int) -> Optional[ItemEntity]:
        """
        Atomically delete an item and return what was deleted.

        Returns None if no item has that id. When several callers remove the
        same id concurrently, exactly one of them receives the item.
        """


# PUBLIC_INTERFACE
class UserRepository(ABC):
    """Abstract lookup of stored credentials."""

    @abstractmethod
    def get_by_username(self, username: str) -> Optional[UserRecord]:
        """Return the stored user row, or None if unknown."""

    @abstractmethod
    def create_if_absent(self, username: str, password_hash: str) -> bool:
        """Insert a user unless the username exists. Return True if inserted."""


class InMemoryItemRepository(ItemRepository):
    """
    Thread-safe in-memory repository suitable for testing.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[int, ItemEntity] = {}
        self._next_id = 1

    def list(self) -> List[ItemEntity]:
        with self._lock:
            return [self._items[k].copy() for k in sorted(self._items)]  # type: ignore[misc]

    def add(self, text: str) -> ItemEntity:
        cleaned = self._clean_text(text)
        with self._lock:
            entity: ItemEntity = {
                "id": self._next_id,
                "text": cleaned,
                "completed": False,
                "created_at": datetime.now(timezone.utc),
            }
            self._next_id += 1
            self._items[entity["id"]] = entity
            return entity.copy()  # type: ignore[return-value]

    def remove(self, item_id: int) -> Optional[ItemEntity]:
        with self._lock:
            return self._items.pop(item_id, None)


class InMemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self._lock = RLock()
        self._users: Dict[str, UserRecord] = {}

    def get_by_username(self, username: str) -> Optional[UserRecord]:
        with self._lock:
            user = self._users.get(username)
            return None if user is None else user.copy()  # type: ignore[return-value]

    def create_if_absent(self, username: str, password_hash: str) -> bool:
        with self._lock:
            if username in self._users:
                return False
            self._users[username] = {
                "id": len(self._users) + 1,
                "username": username,
                "password_hash": password_hash,
            }
            return True
