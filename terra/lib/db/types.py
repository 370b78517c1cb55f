"""Type definitions for database operations."""

from typing import Any, TypedDict

type SQLParams = tuple[Any, ...] | dict[str, Any]
"""SQL parameter types: positional tuple or named dict for query binding."""


class NotificationRow(TypedDict):
    """Logged notification as stored in the database."""

    unit_id: str
    alert_type: str
    message: str
    severity: str
    sent: int
    success_count: int
    failure_count: int
    recording_time: str
    epoch: int
