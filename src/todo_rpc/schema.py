"""
Startup schema creation for the sqlite store.

Every statement is guarded by IF NOT EXISTS, so a retry after a partial
application converges on the same schema instead of failing or duplicating.
"""
from __future__ import annotations

import logging
import sqlite3
import time
from typing import Callable, Optional, Sequence

from .db import ConnectionPool

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS: Sequence[str] = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        text TEXT NOT NULL,
        completed INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_users_username ON users(username)",
    "CREATE INDEX IF NOT EXISTS idx_items_created_at ON items(created_at)",
)


class SchemaInitializationError(RuntimeError):
    """Raised when the schema could not be applied within the retry budget."""

    def __init__(self, attempts: int, statement: Optional[str] = None) -> None:
        self.attempts = attempts
        self.statement = statement
        msg = f"database schema initialization failed after {attempts} attempt(s)"
        if statement:
            msg += f"; last failing statement: {_summarize(statement)}"
        super().__init__(msg)


def _summarize(statement: str) -> str:
    return " ".join(statement.split())[:80]


# PUBLIC_INTERFACE
class SchemaInitializer:
    """
    Apply ``SCHEMA_STATEMENTS`` with a bounded number of attempts.

    ``sleep`` receives the delay in seconds between attempts; tests inject a
    recorder so no real time passes.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        retries: int = 5,
        delay: float = 3.0,
        sleep: Callable[[float], None] = time.sleep,
        statements: Sequence[str] = SCHEMA_STATEMENTS,
    ) -> None:
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self._pool = pool
        self._retries = retries
        self._delay = delay
        self._sleep = sleep
        self._statements = tuple(statements)

    def ensure_schema(self) -> None:
        last_statement: Optional[str] = None
        for attempt in range(1, self._retries + 1):
            statement: Optional[str] = None
            try:
                with self._pool.connection() as conn:
                    logger.info("Connected to database. Initializing schema (attempt %d)...", attempt)
                    for statement in self._statements:
                        conn.execute(statement)
                        conn.commit()
                logger.info("Database schema initialized (or already exists).")
                return
            except (sqlite3.Error, OSError) as exc:
                last_statement = statement
                if statement is None:
                    logger.error("Attempt %d failed: could not connect to database: %s", attempt, exc)
                else:
                    logger.error(
                        "Attempt %d failed while executing %r: %s", attempt, _summarize(statement), exc
                    )
                if attempt == self._retries:
                    logger.error("Max retries reached. Database initialization failed.")
                    raise SchemaInitializationError(attempt, last_statement) from exc
                logger.info("Retrying in %s seconds...", self._delay)
                self._sleep(self._delay)
