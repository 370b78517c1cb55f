"""Recent notifications endpoint."""

from starlette.requests import Request
from starlette.responses import JSONResponse

from terra.lib.exceptions import TransportError
from terra.lib.history import SqliteNotificationLog
from terra.logging import get_logger

logger = get_logger("server.api.notifications")

_DEFAULT_LIMIT = 50
_MAX_LIMIT = 500


def _parse_limit(raw: str | None) -> int:
    """Parse the limit query param, clamped to [1, _MAX_LIMIT]."""
    if raw is None:
        return _DEFAULT_LIMIT
    try:
        limit = int(raw)
    except ValueError:
        raise ValueError("limit must be an integer") from None
    return max(1, min(limit, _MAX_LIMIT))


async def get_notifications(request: Request) -> JSONResponse:
    """Return the most recent logged notifications, newest first."""
    try:
        limit = _parse_limit(request.query_params.get("limit"))
    except ValueError as e:
        return JSONResponse({"success": False, "error": str(e)}, status_code=400)

    try:
        rows = await SqliteNotificationLog().recent(limit)
    except TransportError as e:
        logger.error("Failed to read notifications: %s", e)
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)

    return JSONResponse({"notifications": rows, "count": len(rows)})
