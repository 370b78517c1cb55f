"""Manual alert trigger endpoint, used to test the delivery path."""

from starlette.requests import Request
from starlette.responses import JSONResponse

from terra.lib.config import AlertKind, Severity, get_settings
from terra.lib.dispatcher import AlertDispatcher
from terra.lib.policy import AlertCondition
from terra.logging import get_logger

logger = get_logger("server.api.alerts")

TEST_MESSAGE = "This is a test alert from the Terra monitor."


async def trigger_test_alert(request: Request) -> JSONResponse:
    """Dispatch a test alert for the configured test unit.

    Goes through the cooldown registry like any other alert, so repeated
    calls within the cooldown window are acknowledged but not delivered.
    """
    dispatcher: AlertDispatcher = request.app.state.dispatcher
    condition = AlertCondition(
        unit_id=get_settings().test_unit_id,
        kind=AlertKind.TEST,
        severity=Severity.INFO,
        message=TEST_MESSAGE,
    )
    try:
        outcome = await dispatcher.dispatch(condition)
    except Exception as e:
        logger.exception("Error triggering test alert")
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)

    message = (
        "Test alert triggered"
        if outcome.admitted
        else "Test alert is in cooldown period"
    )
    return JSONResponse({"success": True, "message": message})
