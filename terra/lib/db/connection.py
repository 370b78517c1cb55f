"""SQLite access for the notification log and recipient directory.

`get_db()` hands out a `Database`. The monitor service opens one long-lived
connection with `init_db()`; the web server and tests fall back to a small
pool. `close_db()` releases whichever is in use.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import cache
from pathlib import Path
from typing import Any, cast

import aiosqlite

from terra.lib.config import get_settings
from terra.lib.db.types import SQLParams
from terra.lib.exceptions import DatabaseNotConnectedError
from terra.logging import get_logger

_logger = get_logger("lib.db")

_SQL_DIR = Path(__file__).resolve().parent.parent / "sql"

# Applied in order by create_schema()
SCHEMA_TEMPLATES = (
    "init_notification_table.sql",
    "idx_notification.sql",
    "init_recipient_table.sql",
)


@cache
def load_template(name: str) -> str:
    """Read a statement from the bundled sql/ directory."""
    path = _SQL_DIR / name
    if not path.exists():
        raise FileNotFoundError(f"SQL template not found: {path}")
    return path.read_text()


def _row_as_dict(
    cursor: aiosqlite.Cursor, row: tuple[Any, ...]
) -> dict[str, Any]:
    columns = [col[0] for col in cursor.description or ()]
    return dict(zip(columns, row, strict=True))


class Database:
    """A single aiosqlite connection returning rows as dicts."""

    def __init__(self, db_path: str | None = None):
        self._db_path = db_path or get_settings().db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    @property
    def _conn(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise DatabaseNotConnectedError()
        return self._connection

    async def connect(self) -> None:
        if self.is_connected:
            return
        conn = await aiosqlite.connect(
            self._db_path, timeout=get_settings().db_timeout_sec
        )
        conn.row_factory = _row_as_dict  # type: ignore[assignment]
        self._connection = conn

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    async def execute(self, sql: str, params: SQLParams = ()) -> int:
        """Run one statement and commit it, returning the affected row count."""
        cursor = await self._conn.execute(sql, params)
        await self._conn.commit()
        return cursor.rowcount

    async def executescript(self, sql: str) -> None:
        await self._conn.executescript(sql)

    async def fetchone(
        self, sql: str, params: SQLParams = ()
    ) -> dict[str, Any] | None:
        async with self._conn.execute(sql, params) as cursor:
            return cast(dict[str, Any] | None, await cursor.fetchone())

    async def fetchall(
        self, sql: str, params: SQLParams = ()
    ) -> list[dict[str, Any]]:
        async with self._conn.execute(sql, params) as cursor:
            return cast(list[dict[str, Any]], await cursor.fetchall())


class ConnectionPool:
    """Reusable connections, at most `max_size` checked out at once."""

    def __init__(self, max_size: int = 5) -> None:
        self._max_size = max_size
        self._idle: list[Database] = []
        self._slots: asyncio.Semaphore | None = None

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Database]:
        # Created lazily so it binds to the running loop
        if self._slots is None:
            self._slots = asyncio.Semaphore(self._max_size)
        async with self._slots:
            db = self._idle.pop() if self._idle else Database()
            try:
                await db.connect()
                yield db
            except Exception:
                await db.close()
                raise
            finally:
                self._idle.append(db)

    async def close(self) -> None:
        idle, self._idle = self._idle, []
        self._slots = None
        for db in idle:
            await db.close()
        if idle:
            _logger.info("Closed %d pooled connections", len(idle))


_persistent: Database | None = None
_pool = ConnectionPool()


@asynccontextmanager
async def get_db() -> AsyncIterator[Database]:
    """Yield the persistent connection if open, else a pooled one."""
    if _persistent is not None:
        yield _persistent
        return
    async with _pool.acquire() as db:
        yield db


async def create_schema(db: Database) -> None:
    """Create the notification and recipient tables if missing."""
    for name in SCHEMA_TEMPLATES:
        await db.executescript(load_template(name))


async def init_db() -> None:
    """Open the persistent connection in WAL mode and ensure the schema."""
    global _persistent
    if _persistent is None:
        _persistent = Database()
        await _persistent.connect()
        _logger.info("Opened database %s", get_settings().db_path)
    await _persistent.execute("PRAGMA journal_mode=WAL")
    await create_schema(_persistent)


async def close_db() -> None:
    global _persistent
    if _persistent is not None:
        await _persistent.close()
        _persistent = None
        _logger.info("Closed persistent database connection")
    await _pool.close()
