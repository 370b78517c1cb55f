"""Tests for the notification channels."""

import json
from unittest.mock import MagicMock, patch

import pytest
from pydantic import SecretStr

from terra.lib.config import (
    AlertKind,
    NotificationSettings,
    Settings,
    Severity,
    set_settings,
)
from terra.lib.notifications import (
    NoOpChannel,
    SendResult,
    WebhookPushChannel,
    format_alert_message,
    get_channel,
)
from terra.lib.policy import AlertCondition

ENDPOINT = "https://push.example.com/send"


def make_channel(**overrides):
    cfg = {
        "enabled": True,
        "endpoint_url": ENDPOINT,
        "max_retries": 2,
        "initial_backoff_sec": 0,
        "timeout_sec": 5,
    }
    cfg.update(overrides)
    return WebhookPushChannel(NotificationSettings(**cfg))


def ok_response(status=200):
    response = MagicMock()
    response.status = status
    return MagicMock(__enter__=MagicMock(return_value=response))


class TestFormatAlertMessage:
    """Tests for format_alert_message()."""

    def test_renders_title_body_and_metadata(self, frozen_time):
        condition = AlertCondition(
            unit_id="basket2",
            kind=AlertKind.LOW_HUMIDITY,
            severity=Severity.WARNING,
            message="Humidity is 40%. Consider increasing ventilation or moisture.",
        )

        message = format_alert_message(condition, frozen_time)

        assert message.title == "🌱 Terra Alert - Low Humidity"
        assert message.body == (
            "Basket 2: Humidity is 40%. Consider increasing ventilation or moisture."
        )
        assert message.metadata == {
            "basketId": "basket2",
            "alertType": "Low Humidity",
            "severity": "warning",
            "timestamp": "1718452800000",
        }


class TestWebhookPushChannel:
    """Tests for the webhook push channel."""

    @pytest.mark.asyncio
    @patch("terra.lib.notifications.urllib.request.urlopen")
    async def test_successful_send(self, mock_urlopen):
        mock_urlopen.return_value = ok_response()

        result = await make_channel(auth_token=SecretStr("secret")).send(
            ["tok-1", "tok-2"], "Title", "Body", {"basketId": "basket1"}
        )

        assert result == SendResult(2, 0)
        assert mock_urlopen.call_count == 2
        request = mock_urlopen.call_args_list[0].args[0]
        assert request.full_url == ENDPOINT
        assert request.get_method() == "POST"
        assert request.get_header("Authorization") == "Bearer secret"
        payload = json.loads(request.data)
        assert payload["notification"] == {"title": "Title", "body": "Body"}
        assert payload["data"] == {"basketId": "basket1"}
        assert payload["to"] in {"tok-1", "tok-2"}

    @pytest.mark.asyncio
    @patch("terra.lib.notifications.urllib.request.urlopen")
    async def test_partial_failure_is_counted(self, mock_urlopen):
        def urlopen(request, timeout):
            if json.loads(request.data)["to"] == "bad":
                raise OSError("unreachable")
            return ok_response()

        mock_urlopen.side_effect = urlopen

        result = await make_channel().send(["good", "bad", "good-2"], "T", "B", {})

        assert result == SendResult(2, 1)
        # Two attempts for the failing target, one for each good one
        assert mock_urlopen.call_count == 4

    @pytest.mark.asyncio
    @patch("terra.lib.notifications.urllib.request.urlopen")
    async def test_retry_on_network_error(self, mock_urlopen):
        mock_urlopen.side_effect = [OSError("Network error"), ok_response()]

        result = await make_channel().send(["tok"], "T", "B", {})

        assert result == SendResult(1, 0)
        assert mock_urlopen.call_count == 2

    @pytest.mark.asyncio
    @patch("terra.lib.notifications.urllib.request.urlopen")
    async def test_error_status_counts_as_failure(self, mock_urlopen):
        mock_urlopen.return_value = ok_response(status=500)

        result = await make_channel(max_retries=1).send(["tok"], "T", "B", {})

        assert result == SendResult(0, 1)

    @pytest.mark.asyncio
    @patch("terra.lib.notifications.urllib.request.urlopen")
    async def test_no_retry_on_non_network_error(self, mock_urlopen):
        mock_urlopen.side_effect = ValueError("Bad data")

        result = await make_channel().send(["tok"], "T", "B", {})

        assert result == SendResult(0, 1)
        assert mock_urlopen.call_count == 1

    def test_no_auth_header_without_token(self):
        assert "Authorization" not in make_channel()._headers()


class TestNoOpChannel:
    """Tests for the no-op channel."""

    @pytest.mark.asyncio
    async def test_send_logs_only(self, caplog):
        result = await NoOpChannel().send(["tok"], "Title", "Body", {})

        assert result == SendResult(0, 0)
        assert "disabled" in caplog.text.lower()


class TestGetChannel:
    """Tests for the channel factory."""

    def test_noop_when_disabled(self):
        assert isinstance(get_channel(), NoOpChannel)

    def test_webhook_when_enabled(self, tmp_path):
        set_settings(
            Settings(
                db_path=str(tmp_path / "db.sqlite3"),
                enable_notification_service=True,
                push_endpoint_url=ENDPOINT,
            )
        )
        assert isinstance(get_channel(), WebhookPushChannel)
