"""Tests for database connection handling."""

import pytest

from terra.lib.db import ConnectionPool, Database, get_db, load_template
from terra.lib.db import connection
from terra.lib.exceptions import DatabaseNotConnectedError


class TestDatabase:
    """Tests for the Database wrapper."""

    @pytest.mark.asyncio
    async def test_rows_are_dicts(self, test_db):
        db = Database(str(test_db))
        await db.connect()
        try:
            row = await db.fetchone("SELECT 1 AS one, 'x' AS two")
        finally:
            await db.close()

        assert row == {"one": 1, "two": "x"}

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self, test_db):
        db = Database(str(test_db))
        await db.connect()
        try:
            first = db._connection
            await db.connect()
            assert db._connection is first
            assert db.is_connected
        finally:
            await db.close()

        assert not db.is_connected

    @pytest.mark.asyncio
    async def test_requires_connection(self, test_db):
        with pytest.raises(DatabaseNotConnectedError):
            await Database(str(test_db)).fetchall("SELECT 1")


class TestConnectionPool:
    """Tests for the connection pool."""

    @pytest.mark.asyncio
    async def test_reuses_connections(self, test_db):
        pool = ConnectionPool(max_size=2)

        async with pool.acquire() as first:
            pass
        async with pool.acquire() as second:
            pass

        assert first is second
        await pool.close()
        assert not first.is_connected

    @pytest.mark.asyncio
    async def test_broken_connection_is_closed(self, test_db):
        pool = ConnectionPool()

        with pytest.raises(RuntimeError):
            async with pool.acquire() as db:
                raise RuntimeError("boom")

        assert not db.is_connected
        await pool.close()


class TestInitDb:
    """Tests for the persistent connection lifecycle."""

    @pytest.mark.asyncio
    async def test_init_and_close(self, db):
        await connection.init_db()
        try:
            async with get_db() as first:
                pass
            async with get_db() as second:
                pass
            assert first is second
            mode = await first.fetchone("PRAGMA journal_mode")
            assert mode == {"journal_mode": "wal"}
        finally:
            await connection.close_db()

        assert connection._persistent is None


def test_missing_template():
    with pytest.raises(FileNotFoundError):
        load_template("does_not_exist.sql")
