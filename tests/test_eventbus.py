"""Tests for the Redis reading subscriber."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from terra.lib.eventbus import ReadingEvent, ReadingSubscriber
from terra.lib.exceptions import MalformedReadingError


class TestReadingEvent:
    """Tests for ReadingEvent.from_message()."""

    def test_unit_id_and_reading(self):
        event = ReadingEvent.from_message(
            {"unit_id": "basket1", "reading": {"temperature": 20}}
        )
        assert event == ReadingEvent("basket1", {"temperature": 20})

    def test_basket_id_alias(self):
        event = ReadingEvent.from_message({"basketId": "basket2"})
        assert event.unit_id == "basket2"
        assert event.payload is None

    @pytest.mark.parametrize(
        "data", [[], "basket1", {"reading": {}}, {"unit_id": 3}, {"unit_id": ""}]
    )
    def test_rejects_messages_without_unit(self, data):
        with pytest.raises(MalformedReadingError):
            ReadingEvent.from_message(data)


class TestReadingSubscriber:
    """Tests for ReadingSubscriber."""

    @pytest.mark.asyncio
    async def test_connect_subscribes_to_topic(self):
        mock_client = MagicMock()
        mock_pubsub = MagicMock()
        mock_pubsub.subscribe = AsyncMock()
        mock_client.pubsub.return_value = mock_pubsub

        with patch(
            "terra.lib.eventbus.aioredis.from_url", return_value=mock_client
        ):
            subscriber = ReadingSubscriber()
            await subscriber.connect()

        mock_pubsub.subscribe.assert_awaited_once_with("sensor.reading")

    @pytest.mark.asyncio
    async def test_receive_yields_valid_events(self, caplog):
        messages = [
            {"type": "subscribe", "data": 1},
            {
                "type": "message",
                "data": json.dumps(
                    {"unit_id": "basket1", "reading": {"humidity": 30}}
                ).encode(),
            },
            {"type": "message", "data": b"not json"},
            {"type": "message", "data": json.dumps({"reading": {}}).encode()},
        ]

        async def listen():
            for message in messages:
                yield message

        subscriber = ReadingSubscriber()
        subscriber._pubsub = MagicMock()
        subscriber._pubsub.listen = listen

        events = [event async for event in subscriber.receive()]

        assert events == [ReadingEvent("basket1", {"humidity": 30})]
        assert caplog.text.count("Invalid reading message") == 2

    @pytest.mark.asyncio
    async def test_receive_without_connection_yields_nothing(self):
        events = [event async for event in ReadingSubscriber().receive()]
        assert events == []

    @pytest.mark.asyncio
    async def test_close(self):
        subscriber = ReadingSubscriber()
        pubsub = MagicMock()
        pubsub.unsubscribe = AsyncMock()
        pubsub.aclose = AsyncMock()
        client = MagicMock()
        client.aclose = AsyncMock()
        subscriber._pubsub = pubsub
        subscriber._client = client

        await subscriber.close()

        pubsub.unsubscribe.assert_awaited_once()
        pubsub.aclose.assert_awaited_once()
        client.aclose.assert_awaited_once()
        assert subscriber._pubsub is None
        assert subscriber._client is None
