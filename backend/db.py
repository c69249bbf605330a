"""
Database gateway.

This module centralizes how statements reach PostgreSQL. A single
`psycopg_pool.ConnectionPool` is created at startup (see the lifespan in
`main.py`) and handed to `Database`; nothing here is a module-level
singleton.

Usage:
    from db import Database, create_pool
    db = Database(create_pool())
    db.open()
    rows = db.execute("SELECT 1 AS ok")   # -> [{"ok": 1}]
    db.close()

Every `execute()` borrows one connection for exactly one statement and
returns it to the pool on every exit path. `with pool.connection()`
commits when the block exits cleanly and rolls back otherwise.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from errors import StorageError
from settings import settings

logger = logging.getLogger(__name__)


def create_pool() -> ConnectionPool:
    """Build a (closed) pool from `settings`. Call `Database.open()` to start it."""

    return ConnectionPool(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        kwargs={"connect_timeout": settings.db_connect_timeout},
        open=False,
    )


class Database:
    """Runs parameterized statements. No business logic here."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    def open(self) -> None:
        # Don't block startup on the database; first request will wait instead.
        self.pool.open(wait=False)

    def close(self) -> None:
        self.pool.close()

    def execute(self, statement: str, parameters: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Run one statement and return its rows as dicts.

        Statements without a result set return an empty list. Any driver
        or pool error is re-raised as `StorageError` with the original
        exception chained; the gateway never retries.
        """

        try:
            with self.pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(statement, parameters)
                    if cur.description is None:
                        return []
                    return cur.fetchall()
        except psycopg.Error as exc:
            logger.error("Statement failed: %s", exc.__class__.__name__)
            raise StorageError("Database operation failed") from exc

    def ping(self) -> None:
        """Lightweight reachability check. Raises `StorageError` on failure."""

        self.execute("SELECT 1")
