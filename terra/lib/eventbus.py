"""Redis-based event bus subscriber for incoming sensor readings.

Readings are published by the ingestion side as JSON messages on the
reading topic:

    {"unit_id": "basket1", "reading": {"temperature": 22.5, ...}}

`basketId` is accepted in place of `unit_id`.
"""

import json
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import Any, Self

import redis.asyncio as aioredis

from terra.lib.config import get_settings
from terra.lib.exceptions import MalformedReadingError
from terra.logging import get_logger

logger = get_logger("lib.eventbus")


@dataclass(frozen=True, slots=True)
class ReadingEvent:
    """A unit's latest reading changed."""

    unit_id: str
    payload: Mapping[str, Any] | None

    @classmethod
    def from_message(cls, data: Any) -> Self:
        """Parse a decoded bus message.

        Raises:
            MalformedReadingError: If the message has no usable unit id.
        """
        if not isinstance(data, dict):
            raise MalformedReadingError(
                f"Expected message object, got {type(data).__name__}"
            )
        unit_id = data.get("unit_id") or data.get("basketId")
        if not isinstance(unit_id, str) or not unit_id:
            raise MalformedReadingError("Message has no unit id")
        return cls(unit_id=unit_id, payload=data.get("reading"))


class ReadingSubscriber:
    """Subscribes to sensor readings from the event bus."""

    def __init__(self, topic: str | None = None) -> None:
        cfg = get_settings().eventbus
        self._redis_url = cfg.redis_url
        self._topic = topic or cfg.reading_topic
        self._client: aioredis.Redis | None = None
        self._pubsub: aioredis.client.PubSub | None = None

    async def connect(self) -> None:
        """Connect to Redis and subscribe to the reading topic."""
        self._client = aioredis.from_url(self._redis_url)
        self._pubsub = self._client.pubsub()
        await self._pubsub.subscribe(self._topic)
        logger.info(
            "Reading subscriber connected to Redis, topic: %s", self._topic
        )

    async def receive(self) -> AsyncIterator[ReadingEvent]:
        """Async iterator that yields reading events as they arrive."""
        if self._pubsub is None:
            return

        async for message in self._pubsub.listen():
            if message["type"] != "message":
                continue

            try:
                data = json.loads(message["data"])
                yield ReadingEvent.from_message(data)
            except (ValueError, MalformedReadingError) as e:
                logger.warning("Invalid reading message: %s", e)

    async def close(self) -> None:
        """Close the subscriber connection."""
        if self._pubsub is not None:
            await self._pubsub.unsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        logger.info("Reading subscriber closed")

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        """Async context manager exit."""
        await self.close()
