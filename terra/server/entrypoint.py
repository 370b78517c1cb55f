"""Application factory for the web server."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from starlette.applications import Starlette
from starlette.routing import Route

from terra.lib.db import close_db, create_schema, get_db
from terra.lib.dispatcher import create_dispatcher
from terra.lib.eventbus import ReadingSubscriber
from terra.logging import configure, get_logger
from terra.monitor.ingest import ReadingConsumer

from .api.alerts import trigger_test_alert
from .api.health import health_check
from .api.notifications import get_notifications
from .api.status import get_status

_logger = get_logger("server.entrypoint")


async def _consume_readings(
    consumer: ReadingConsumer, subscriber: ReadingSubscriber
) -> None:
    """Feed bus events to the consumer, logging if the subscription dies."""
    try:
        await consumer.consume(subscriber.receive())
    except Exception:
        _logger.exception("Reading subscriber stopped unexpectedly")
    else:
        _logger.warning("Reading subscription ended")


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncIterator[None]:
    """Wire the dispatcher and run the reading subscriber in the background."""
    async with get_db() as db:
        await create_schema(db)

    dispatcher = create_dispatcher()
    app.state.dispatcher = dispatcher
    consumer = ReadingConsumer(dispatcher)

    subscriber = ReadingSubscriber()
    await subscriber.connect()
    subscriber_task = asyncio.create_task(_consume_readings(consumer, subscriber))
    _logger.info("Reading subscriber started")

    try:
        yield
    finally:
        subscriber_task.cancel()
        with suppress(asyncio.CancelledError):
            await subscriber_task
        try:
            await consumer.drain()
            await subscriber.close()
        finally:
            await close_db()
        _logger.info("Reading subscriber stopped")


def create_app() -> Starlette:
    """Create and configure the Starlette application.

    Returns:
        Configured Starlette application instance.
    """
    configure()

    routes = [
        Route("/health", health_check),
        Route("/api/status", get_status),
        Route("/api/notifications", get_notifications),
        Route("/api/alerts/test", trigger_test_alert, methods=["GET", "POST"]),
    ]

    return Starlette(routes=routes, lifespan=lifespan)
