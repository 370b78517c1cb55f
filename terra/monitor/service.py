"""Headless monitor service.

Subscribes to the reading topic and dispatches alerts without the web
server. Cooldowns are only visible to the status API of another process
when COOLDOWN_BACKEND=redis.
"""

from terra.lib.db import close_db, init_db
from terra.lib.dispatcher import create_dispatcher
from terra.lib.eventbus import ReadingSubscriber
from terra.lib.service import run_service
from terra.logging import get_logger
from terra.monitor.ingest import ReadingConsumer

logger = get_logger("monitor.service")


async def run() -> None:
    """Run the monitor until the subscription ends or is cancelled."""
    await init_db()
    consumer = ReadingConsumer(create_dispatcher())
    try:
        async with ReadingSubscriber() as subscriber:
            logger.info("Monitor service started")
            await consumer.consume(subscriber.receive())
    finally:
        await consumer.drain()
        await close_db()


def main() -> None:
    """Entry point for the monitor service."""
    run_service(run, name="monitor")
