"""Ingestion adapter between the reading event bus and the dispatcher.

The ingestion path never surfaces errors: empty readings are ignored and
every failure is logged.
"""

import asyncio
from collections.abc import AsyncIterator, Mapping
from typing import Any

from terra.lib.dispatcher import AlertDispatcher
from terra.lib.eventbus import ReadingEvent
from terra.lib.exceptions import MalformedReadingError
from terra.lib.reading import SensorSnapshot
from terra.logging import get_logger

logger = get_logger("monitor.ingest")


async def on_reading(
    dispatcher: AlertDispatcher,
    unit_id: str,
    payload: Mapping[str, Any] | None,
) -> None:
    """Handle a change of a unit's latest reading."""
    if not payload:
        logger.info("No data for %s", unit_id)
        return

    try:
        snapshot = SensorSnapshot.from_raw(payload)
    except MalformedReadingError as e:
        logger.warning("Ignoring reading for %s: %s", unit_id, e)
        return

    logger.info(
        "%s - Temp: %s, Humidity: %s, Moisture: %s",
        unit_id,
        snapshot.temperature,
        snapshot.humidity,
        snapshot.soil_moisture,
    )
    try:
        await dispatcher.handle_reading(unit_id, snapshot)
    except Exception:
        logger.exception("Error monitoring %s", unit_id)


class ReadingConsumer:
    """Feeds reading events to the dispatcher, one task per event.

    Readings from different units (or successive readings of one unit) are
    evaluated concurrently; the cooldown registry serializes admissions.
    """

    def __init__(self, dispatcher: AlertDispatcher) -> None:
        self._dispatcher = dispatcher
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, event: ReadingEvent) -> asyncio.Task[None]:
        """Schedule evaluation of one reading event."""
        task = asyncio.create_task(
            on_reading(self._dispatcher, event.unit_id, event.payload)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def consume(self, events: AsyncIterator[ReadingEvent]) -> None:
        """Submit every event from the stream until it ends."""
        async for event in events:
            self.submit(event)

    async def drain(self) -> None:
        """Wait for in-flight evaluations to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
