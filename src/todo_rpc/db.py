from __future__ import annotations

import logging
import os
import queue
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generator, List, Optional

from .models import ItemEntity, UserRecord
from .repositories import ItemRepository, UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Cols:
    table: str = "items"
    id: str = "id"
    text: str = "text"
    completed: str = "completed"
    created_at: str = "created_at"


@dataclass(frozen=True)
class _UserCols:
    table: str = "users"
    id: str = "id"
    username: str = "username"
    password_hash: str = "password_hash"
    created_at: str = "created_at"


_COLS = _Cols()
_USERS = _UserCols()


# PUBLIC_INTERFACE
class ConnectionPool:
    """
    Bounded pool of sqlite connections shared by every request.

    At most ``size`` connections are open at once; callers block in
    ``connection()`` until one is free. Connections are opened lazily so
    building the pool never touches the filesystem.
    """

    def __init__(self, db_path: str, size: int = 5, busy_timeout: float = 5.0) -> None:
        if size < 1:
            raise ValueError("pool size must be at least 1")
        self._db_path = db_path
        self._busy_timeout = busy_timeout
        self._idle: "queue.LifoQueue[sqlite3.Connection]" = queue.LifoQueue()
        self._slots = threading.BoundedSemaphore(size)

    def _connect(self) -> sqlite3.Connection:
        os.makedirs(os.path.dirname(self._db_path) or ".", exist_ok=True)
        logger.debug("Opening sqlite connection to %s", self._db_path)
        conn = sqlite3.connect(self._db_path, timeout=self._busy_timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Borrow a connection for one unit of work.

        Commits when the block exits normally. On error the connection is
        rolled back and discarded rather than returned to the pool.
        """
        self._slots.acquire()
        try:
            try:
                conn = self._idle.get_nowait()
            except queue.Empty:
                conn = self._connect()
            try:
                yield conn
                conn.commit()
            except BaseException:
                try:
                    conn.rollback()
                finally:
                    conn.close()
                raise
            self._idle.put(conn)
        finally:
            self._slots.release()

    def close(self) -> None:
        """Close all idle connections."""
        while True:
            try:
                conn = self._idle.get_nowait()
            except queue.Empty:
                return
            conn.close()


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteItemRepository(ItemRepository):
    """
    SQLite implementation of the item repository.

    Every operation is a single statement, so no explicit transactions span
    more than one item.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def _row_to_entity(self, row: sqlite3.Row) -> ItemEntity:
        return {
            "id": int(row[_COLS.id]),
            "text": str(row[_COLS.text]),
            "completed": bool(row[_COLS.completed]),
            "created_at": datetime.fromisoformat(row[_COLS.created_at]),
        }

    def list(self) -> List[ItemEntity]:
        with self._pool.connection() as conn:
            rows = conn.execute(f"SELECT * FROM {_COLS.table} ORDER BY {_COLS.id} ASC").fetchall()
            return [self._row_to_entity(r) for r in rows]

    def add(self, text: str) -> ItemEntity:
        cleaned = self._clean_text(text)
        with self._pool.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            rows = conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.text}, {_COLS.completed}, {_COLS.created_at})
                VALUES (?, 0, ?)
                RETURNING *
                """,
                (cleaned, _utcnow()),
            ).fetchall()
            assert len(rows) == 1
            return self._row_to_entity(rows[0])

    def remove(self, item_id: int) -> Optional[ItemEntity]:
        # sqlite INTEGER is 64-bit; nothing outside that range can exist
        if isinstance(item_id, int) and not -(2**63) <= item_id < 2**63:
            return None
        with self._pool.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            rows = conn.execute(
                f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ? RETURNING *", (item_id,)
            ).fetchall()
            return self._row_to_entity(rows[0]) if rows else None


class SQLiteUserRepository(UserRepository):
    """Read access to stored credentials, plus idempotent seeding."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def get_by_username(self, username: str) -> Optional[UserRecord]:
        with self._pool.connection() as conn:
            row = conn.execute(
                f"""
                SELECT {_USERS.id}, {_USERS.username}, {_USERS.password_hash}
                FROM {_USERS.table} WHERE {_USERS.username} = ?
                """,
                (username,),
            ).fetchone()
        if row is None:
            return None
        return {
            "id": int(row[_USERS.id]),
            "username": str(row[_USERS.username]),
            "password_hash": str(row[_USERS.password_hash]),
        }

    def create_if_absent(self, username: str, password_hash: str) -> bool:
        with self._pool.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            cur = conn.execute(
                f"""
                INSERT OR IGNORE INTO {_USERS.table}
                    ({_USERS.username}, {_USERS.password_hash}, {_USERS.created_at})
                VALUES (?, ?, ?)
                """,
                (username, password_hash, _utcnow()),
            )
            return cur.rowcount > 0
