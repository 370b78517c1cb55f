"""Push notification delivery for alerts.

Provides an abstract notification channel with pluggable backends. A channel
sends one message to many recipient tokens and reports how many deliveries
succeeded and failed; failures for individual recipients are counted, never
raised.
"""

import asyncio
import json
import urllib.request
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, NamedTuple, override

from terra.lib.config import NotificationSettings, get_settings
from terra.lib.policy import AlertCondition, format_unit_name
from terra.lib.retry import with_retry
from terra.logging import get_logger

logger = get_logger("lib.notifications")

TITLE_PREFIX = "🌱 Terra Alert"


class SendResult(NamedTuple):
    """Per-recipient delivery counts."""

    success_count: int
    failure_count: int


@dataclass(frozen=True, slots=True)
class AlertMessage:
    """Rendered notification content for one alert."""

    title: str
    body: str
    metadata: dict[str, str]


def format_alert_message(condition: AlertCondition, now: datetime) -> AlertMessage:
    """Render an alert condition as a push notification."""
    return AlertMessage(
        title=f"{TITLE_PREFIX} - {condition.kind}",
        body=f"{format_unit_name(condition.unit_id)}: {condition.message}",
        metadata={
            "basketId": condition.unit_id,
            "alertType": str(condition.kind),
            "severity": str(condition.severity),
            "timestamp": str(int(now.timestamp() * 1000)),
        },
    )


class NotificationChannel(ABC):
    """Abstract base class for notification backends."""

    @abstractmethod
    async def send(
        self,
        targets: Sequence[str],
        title: str,
        body: str,
        metadata: Mapping[str, str],
    ) -> SendResult:
        """Send one notification to every target."""


class WebhookPushChannel(NotificationChannel):
    """Posts one JSON message per recipient token to a push gateway."""

    def __init__(self, settings: NotificationSettings | None = None) -> None:
        self._cfg = settings or get_settings().notifications

    def _build_payload(
        self,
        target: str,
        title: str,
        body: str,
        metadata: Mapping[str, str],
    ) -> dict[str, Any]:
        """Build the gateway payload for a single recipient."""
        return {
            "to": target,
            "notification": {"title": title, "body": body},
            "data": dict(metadata),
        }

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._cfg.auth_token.get_secret_value()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _send_one(self, payload: dict[str, Any]) -> bool:
        """Deliver to one recipient with retry logic."""
        data = json.dumps(payload).encode("utf-8")
        url = self._cfg.endpoint_url
        timeout = self._cfg.timeout_sec
        headers = self._headers()

        def do_send() -> None:
            req = urllib.request.Request(
                url, data=data, headers=headers, method="POST"
            )
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                if resp.status >= 300:
                    raise OSError(f"Push gateway returned status {resp.status}")

        return await with_retry(
            do_send,
            name="Push",
            logger=logger,
            max_retries=self._cfg.max_retries,
            initial_backoff_sec=self._cfg.initial_backoff_sec,
            run_in_thread=True,
        )

    @override
    async def send(
        self,
        targets: Sequence[str],
        title: str,
        body: str,
        metadata: Mapping[str, str],
    ) -> SendResult:
        """Send to all targets concurrently and count the outcomes."""
        results = await asyncio.gather(
            *(
                self._send_one(self._build_payload(t, title, body, metadata))
                for t in targets
            ),
            return_exceptions=True,
        )
        success = sum(1 for r in results if r is True)
        result = SendResult(success, len(results) - success)
        logger.info(
            "Push notification sent: %d successful, %d failed",
            result.success_count,
            result.failure_count,
        )
        return result


class NoOpChannel(NotificationChannel):
    """No-op channel that logs but doesn't send notifications."""

    @override
    async def send(
        self,
        targets: Sequence[str],
        title: str,
        body: str,
        metadata: Mapping[str, str],
    ) -> SendResult:
        logger.info(
            "Notifications disabled, skipping '%s' for %d recipients",
            title,
            len(targets),
        )
        return SendResult(0, 0)


def get_channel() -> NotificationChannel:
    """Factory function to get the configured notification channel."""
    cfg = get_settings().notifications
    if not cfg.enabled or not cfg.endpoint_url:
        return NoOpChannel()
    return WebhookPushChannel(cfg)
