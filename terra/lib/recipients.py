"""Lookup of current notification recipients.

A directory answers with the push tokens alerts should go to. "No recipients
configured" is an empty list, never an error; only a genuine lookup failure
raises.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import override

import aiosqlite

from terra.lib.config import RecipientSource, get_settings
from terra.lib.db import get_db, load_template
from terra.lib.exceptions import TransportError
from terra.logging import get_logger

logger = get_logger("lib.recipients")


def _unique(tokens: Iterable[str]) -> list[str]:
    """Drop blanks and duplicates, keeping first-seen order."""
    return list(dict.fromkeys(t for t in tokens if t))


class RecipientDirectory(ABC):
    """Resolves the current delivery targets."""

    @abstractmethod
    async def list_active_recipients(self) -> list[str]:
        """Return the active recipient tokens (possibly empty).

        Raises:
            TransportError: If the lookup itself failed.
        """


class StaticRecipientDirectory(RecipientDirectory):
    """Fixed token list, from RECIPIENT_TOKENS by default."""

    def __init__(self, tokens: Iterable[str] | None = None) -> None:
        if tokens is None:
            tokens = get_settings().notifications.recipient_tokens
        self._tokens = _unique(tokens)

    @override
    async def list_active_recipients(self) -> list[str]:
        return list(self._tokens)


class DatabaseRecipientDirectory(RecipientDirectory):
    """Active tokens from the `recipient` table."""

    @override
    async def list_active_recipients(self) -> list[str]:
        try:
            async with get_db() as db:
                rows = await db.fetchall(load_template("active_recipients.sql"))
        except (aiosqlite.Error, OSError) as e:
            raise TransportError(f"Failed to list recipients: {e}") from e
        return _unique(row["token"] for row in rows)


def get_recipient_directory() -> RecipientDirectory:
    """Factory function to get the configured recipient directory."""
    source = get_settings().notifications.recipient_source
    if source == RecipientSource.DATABASE:
        return DatabaseRecipientDirectory()
    return StaticRecipientDirectory()
