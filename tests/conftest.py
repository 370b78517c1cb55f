"""Shared pytest fixtures for the test suite."""

import logging
import sqlite3
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from terra.lib.config import Settings, ThresholdSet, set_settings
from terra.lib.cooldown import CooldownRegistry
from terra.lib.db import close_db
from terra.lib.db.connection import SCHEMA_TEMPLATES
from terra.lib.dispatcher import AlertDispatcher
from terra.lib.notifications import SendResult

_SQL_DIR = Path(__file__).parent.parent / "terra" / "lib" / "sql"


class FakeClock:
    """Controllable time source for cooldown tests."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def configure_caplog(caplog):
    """Ensure caplog captures logs from the terra namespace."""
    caplog.set_level(logging.DEBUG, logger="terra")


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset global settings after each test to avoid cross-test pollution."""
    yield
    set_settings(None)


@pytest.fixture(autouse=True)
def test_db(tmp_path):
    """Use a temporary SQLite database with the full schema for each test."""
    db_file = tmp_path / "test.sqlite3"
    set_settings(Settings(db_path=str(db_file)))

    conn = sqlite3.connect(str(db_file))
    for name in SCHEMA_TEMPLATES:
        conn.executescript((_SQL_DIR / name).read_text())
    conn.close()

    yield db_file


@pytest_asyncio.fixture
async def db(test_db):
    """Temporary database whose pooled connections are closed afterwards."""
    yield test_db
    await close_db()


@pytest.fixture
def frozen_time():
    """Return a fixed datetime for deterministic tests."""
    return datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def clock(frozen_time):
    return FakeClock(frozen_time)


@pytest.fixture
def thresholds():
    return ThresholdSet()


@pytest.fixture
def registry(clock):
    return CooldownRegistry(timedelta(minutes=30), clock=clock)


@pytest.fixture
def recipients():
    """Recipient directory with two active tokens."""
    directory = MagicMock()
    directory.list_active_recipients = AsyncMock(
        return_value=["token-1", "token-2"]
    )
    return directory


@pytest.fixture
def channel():
    """Notification channel that delivers to every target."""
    mock = MagicMock()

    async def send(targets, title, body, metadata):
        return SendResult(len(targets), 0)

    mock.send = AsyncMock(side_effect=send)
    return mock


@pytest.fixture
def notification_log():
    log = MagicMock()
    log.append = AsyncMock()
    return log


@pytest.fixture
def dispatcher(thresholds, registry, recipients, channel, notification_log):
    return AlertDispatcher(
        thresholds=thresholds,
        registry=registry,
        recipients=recipients,
        channel=channel,
        log=notification_log,
    )
