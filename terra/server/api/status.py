"""Monitoring status endpoint."""

from datetime import UTC, datetime

from starlette.requests import Request
from starlette.responses import JSONResponse

from terra.lib.cooldown import format_key
from terra.lib.dispatcher import AlertDispatcher
from terra.logging import get_logger

logger = get_logger("server.api.status")


async def get_status(request: Request) -> JSONResponse:
    """Return thresholds, cooldown window and last alert times."""
    dispatcher: AlertDispatcher = request.app.state.dispatcher
    try:
        registry = dispatcher.registry
        entries = await registry.snapshot()
        last_alerts = {
            format_key(key): at.isoformat() for key, at in sorted(entries.items())
        }
        status = {
            "thresholds": dispatcher.thresholds.model_dump(by_alias=True),
            "cooldownMinutes": registry.window_minutes,
            "lastAlertTimes": last_alerts,
            "timestamp": datetime.now(UTC).isoformat(),
        }
    except Exception as e:
        logger.exception("Error getting monitoring status")
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)

    return JSONResponse(status)
