"""Append-only log of dispatched notifications."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import cast, override

import aiosqlite

from terra.lib.config import AlertKind, Severity
from terra.lib.db import NotificationRow, get_db, load_template
from terra.lib.exceptions import TransportError
from terra.logging import get_logger

logger = get_logger("lib.history")


@dataclass(frozen=True, slots=True)
class NotificationRecord:
    """One dispatched (or attempted) alert notification."""

    unit_id: str
    kind: AlertKind
    message: str
    severity: Severity
    timestamp: datetime
    recipient_success_count: int = 0
    recipient_failure_count: int = 0

    @property
    def sent(self) -> bool:
        """Whether a send was attempted for at least one recipient."""
        return (self.recipient_success_count + self.recipient_failure_count) > 0


class NotificationLog(ABC):
    """Durable, append-only store of notification records."""

    @abstractmethod
    async def append(self, record: NotificationRecord) -> None:
        """Append a record.

        Raises:
            TransportError: If the record could not be stored.
        """


class SqliteNotificationLog(NotificationLog):
    """Notification log kept in the `notification` table."""

    @override
    async def append(self, record: NotificationRecord) -> None:
        params = {
            "unit_id": record.unit_id,
            "alert_type": str(record.kind),
            "message": record.message,
            "severity": str(record.severity),
            "sent": int(record.sent),
            "success_count": record.recipient_success_count,
            "failure_count": record.recipient_failure_count,
            "recording_time": record.timestamp.isoformat(),
            "epoch": int(record.timestamp.timestamp() * 1000),
        }
        try:
            async with get_db() as db:
                await db.execute(load_template("insert_notification.sql"), params)
        except (aiosqlite.Error, OSError) as e:
            raise TransportError(f"Failed to log notification: {e}") from e
        logger.debug(
            "Logged %s notification for %s", record.kind, record.unit_id
        )

    async def recent(self, limit: int = 50) -> list[NotificationRow]:
        """Return the most recent records, newest first."""
        try:
            async with get_db() as db:
                rows = await db.fetchall(
                    load_template("recent_notifications.sql"), {"limit": limit}
                )
        except (aiosqlite.Error, OSError) as e:
            raise TransportError(f"Failed to read notifications: {e}") from e
        return cast(list[NotificationRow], rows)
