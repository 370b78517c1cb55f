"""Alert dispatch for incoming sensor readings.

For each reading the dispatcher:
- Evaluates the threshold policy into candidate alert conditions
- Asks the cooldown registry to admit each candidate
- For admitted candidates, looks up recipients, sends the notification and
  appends a record to the notification log

Every collaborator call is a best-effort step: failures are logged and never
stop the other candidates of the same reading. Once a cooldown has advanced
it is never rolled back, even if nothing could be delivered.
"""

from dataclasses import dataclass
from datetime import datetime

from terra.lib.config import ThresholdSet, get_settings
from terra.lib.cooldown import CooldownRegistry, create_registry, format_key
from terra.lib.history import (
    NotificationLog,
    NotificationRecord,
    SqliteNotificationLog,
)
from terra.lib.notifications import (
    NotificationChannel,
    SendResult,
    format_alert_message,
    get_channel,
)
from terra.lib.policy import AlertCondition, evaluate
from terra.lib.reading import SensorSnapshot
from terra.lib.recipients import RecipientDirectory, get_recipient_directory
from terra.lib.retry import best_effort
from terra.logging import get_logger

logger = get_logger("lib.dispatcher")


@dataclass(frozen=True, slots=True)
class DispatchOutcome:
    """What happened to one candidate condition."""

    condition: AlertCondition
    admitted: bool
    recipients: int = 0
    success_count: int = 0
    failure_count: int = 0
    logged: bool = False


class AlertDispatcher:
    """Evaluates readings and dispatches cooldown-gated alerts."""

    def __init__(
        self,
        thresholds: ThresholdSet,
        registry: CooldownRegistry,
        recipients: RecipientDirectory,
        channel: NotificationChannel,
        log: NotificationLog,
    ) -> None:
        self._thresholds = thresholds
        self._registry = registry
        self._recipients = recipients
        self._channel = channel
        self._log = log

    @property
    def thresholds(self) -> ThresholdSet:
        return self._thresholds

    @property
    def registry(self) -> CooldownRegistry:
        return self._registry

    async def handle_reading(
        self, unit_id: str, snapshot: SensorSnapshot
    ) -> list[DispatchOutcome]:
        """Evaluate one reading and dispatch every admitted alert.

        Candidates are handled independently: a refused admission or a
        failing collaborator for one never affects the others.

        Returns:
            One outcome per candidate condition, in policy order.
        """
        candidates = evaluate(unit_id, snapshot, self._thresholds)
        if not candidates:
            return []

        now = self._registry.now()
        outcomes: list[DispatchOutcome] = []
        for condition in candidates:
            _, outcome = await best_effort(
                lambda c=condition: self.dispatch(c, now),
                name=f"Dispatch of {format_key(condition.key)}",
                logger=logger,
                default=DispatchOutcome(condition, admitted=False),
            )
            outcomes.append(outcome)
        return outcomes

    async def dispatch(
        self, condition: AlertCondition, now: datetime | None = None
    ) -> DispatchOutcome:
        """Admit a single condition and, if admitted, deliver and log it."""
        if now is None:
            now = self._registry.now()

        if not await self._registry.try_admit(condition.key, now):
            return DispatchOutcome(condition, admitted=False)

        return await self._deliver(condition, now)

    async def _deliver(
        self, condition: AlertCondition, now: datetime
    ) -> DispatchOutcome:
        """Send an admitted alert and append it to the notification log.

        The registry lock is not held here, so a slow recipient lookup or
        send only delays this alert.
        """
        _, targets = await best_effort(
            self._recipients.list_active_recipients,
            name="Recipient lookup",
            logger=logger,
            default=[],
        )

        result = SendResult(0, 0)
        if not targets:
            logger.info(
                "No recipients available for %s", format_key(condition.key)
            )
        else:
            message = format_alert_message(condition, now)
            _, result = await best_effort(
                lambda: self._channel.send(
                    targets, message.title, message.body, message.metadata
                ),
                name=f"Notification send for {format_key(condition.key)}",
                logger=logger,
                default=SendResult(0, len(targets)),
            )

        record = NotificationRecord(
            unit_id=condition.unit_id,
            kind=condition.kind,
            message=condition.message,
            severity=condition.severity,
            timestamp=now,
            recipient_success_count=result.success_count,
            recipient_failure_count=result.failure_count,
        )
        logged, _ = await best_effort(
            lambda: self._log.append(record),
            name=f"Notification log for {format_key(condition.key)}",
            logger=logger,
            default=None,
        )

        logger.info(
            "Alert dispatched: %s for %s (%d recipients, %d ok, %d failed)",
            condition.kind,
            condition.unit_id,
            len(targets),
            result.success_count,
            result.failure_count,
        )
        return DispatchOutcome(
            condition,
            admitted=True,
            recipients=len(targets),
            success_count=result.success_count,
            failure_count=result.failure_count,
            logged=logged,
        )


def create_dispatcher() -> AlertDispatcher:
    """Build a dispatcher wired to the configured collaborators."""
    return AlertDispatcher(
        thresholds=get_settings().thresholds,
        registry=create_registry(),
        recipients=get_recipient_directory(),
        channel=get_channel(),
        log=SqliteNotificationLog(),
    )
