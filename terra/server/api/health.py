"""Health check endpoint.

The monitor is healthy when it can reach both SQLite (notification log)
and Redis (reading bus). The last logged notification and the number of
tracked cooldown keys are reported for information only.
"""

import asyncio
from datetime import UTC, datetime

import aiosqlite
import redis.asyncio as redis
from starlette.requests import Request
from starlette.responses import JSONResponse

from terra.lib.config import get_settings
from terra.lib.db import get_db
from terra.lib.exceptions import DatabaseError, TransportError
from terra.lib.history import SqliteNotificationLog
from terra.logging import get_logger

logger = get_logger("server.api.health")


async def _check_database() -> tuple[bool, str]:
    try:
        async with get_db() as db:
            await db.fetchone("SELECT 1")
    except (DatabaseError, aiosqlite.Error, OSError) as e:
        logger.error("Database health check failed: %s", e)
        return False, str(e)
    return True, "ok"


async def _check_redis() -> tuple[bool, str]:
    client = redis.from_url(get_settings().eventbus.redis_url)
    try:
        await client.ping()
    except (redis.RedisError, OSError) as e:
        logger.error("Redis health check failed: %s", e)
        return False, str(e)
    finally:
        await client.aclose()
    return True, "ok"


async def _last_notification() -> str | None:
    try:
        rows = await SqliteNotificationLog().recent(1)
    except TransportError as e:
        logger.warning("Could not read last notification: %s", e)
        return None
    return rows[0]["recording_time"] if rows else None


async def _tracked_cooldowns(request: Request) -> int | None:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        return None
    try:
        return len(await dispatcher.registry.snapshot())
    except Exception as e:
        logger.warning("Could not read cooldown registry: %s", e)
        return None


async def health_check(request: Request) -> JSONResponse:
    """Report the state of the database and the reading bus."""
    (
        (db_ok, db_status),
        (redis_ok, redis_status),
        last_sent,
        tracked,
    ) = await asyncio.gather(
        _check_database(),
        _check_redis(),
        _last_notification(),
        _tracked_cooldowns(request),
    )
    healthy = db_ok and redis_ok

    return JSONResponse(
        {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": {
                "database": {"ok": db_ok, "status": db_status},
                "redis": {"ok": redis_ok, "status": redis_status},
            },
            "lastNotification": last_sent,
            "trackedCooldowns": tracked,
        },
        status_code=200 if healthy else 503,
    )
