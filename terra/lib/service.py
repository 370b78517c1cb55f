"""Process runner for the long-running monitor service."""

import asyncio
import signal
from collections.abc import Awaitable, Callable
from contextlib import suppress

from terra.logging import configure, get_logger


def run_service(
    main: Callable[[], Awaitable[None]],
    *,
    name: str = "service",
) -> None:
    """Run `main` on a fresh event loop until it finishes or is signalled.

    SIGTERM and SIGINT cancel the main task so its cleanup (draining
    in-flight readings, closing the database) still runs.
    """
    configure()
    logger = get_logger(f"{name}.service")
    label = name.capitalize()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    task = loop.create_task(main())
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, task.cancel)

    logger.info("%s service starting", label)
    try:
        with suppress(KeyboardInterrupt, asyncio.CancelledError):
            loop.run_until_complete(task)
    finally:
        loop.close()
    logger.info("%s service stopped", label)
