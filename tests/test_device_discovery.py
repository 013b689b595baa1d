"""Tests for the discovery subsystem adapters."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from thing_service.core.device_discovery import ThingAddedChannel, ThingAddedEvent
from thing_service.messaging.mqtt_discovery import MQTTDeviceDiscovery


class TestThingAddedChannel:

    def test_publish_reaches_every_queue(self):
        channel = ThingAddedChannel()
        first, second = channel.subscribe(), channel.subscribe()

        channel.publish(ThingAddedEvent(thing={"id": "X"}))

        assert first.get_nowait().thing_id == "X"
        assert second.get_nowait().thing_id == "X"

    def test_unsubscribe(self):
        channel = ThingAddedChannel()
        queue = channel.subscribe()

        assert channel.unsubscribe(queue) is True
        assert channel.unsubscribe(queue) is False
        channel.publish(ThingAddedEvent(thing={"id": "X"}))
        assert queue.empty()


class TestLocalDeviceDiscovery:

    def test_add_thing_publishes_only_new_ids(self, discovery):
        events = discovery.subscribe()

        assert discovery.add_thing({"id": "X"}) is True
        assert discovery.add_thing({"id": "X", "name": "renamed"}) is False

        assert events.qsize() == 1
        assert discovery.get_things() == [{"id": "X", "name": "renamed"}]

    def test_add_thing_without_id_is_ignored(self, discovery):
        assert discovery.add_thing({"name": "anonymous"}) is False
        assert discovery.get_things() == []

    def test_event_payload_is_a_copy(self, discovery):
        events = discovery.subscribe()
        description = {"id": "X", "properties": {"p": {}}}
        discovery.add_thing(description)

        event = events.get_nowait()
        event.thing["properties"]["p"]["href"] = "/things/X/properties/p"

        assert "href" not in description["properties"]["p"]

    def test_remove_thing(self, discovery):
        discovery.add_thing({"id": "X"})

        assert discovery.remove_thing("X") is True
        assert discovery.remove_thing("X") is False
        assert discovery.get_things() == []

    def test_readded_device_is_announced_again(self, discovery):
        events = discovery.subscribe()
        discovery.add_thing({"id": "X"})
        discovery.remove_thing("X")
        discovery.add_thing({"id": "X"})

        assert events.qsize() == 2


@pytest.fixture
def mqtt_discovery():
    return MQTTDeviceDiscovery({"mqtt_topic_prefix": "smartcity"})


class TestMQTTDeviceDiscovery:

    def test_announcement_topic(self, mqtt_discovery):
        assert mqtt_discovery.announcement_topic == "smartcity/+/+/description"

    def test_announcement_adds_device(self, mqtt_discovery):
        payload = json.dumps({"name": "Thermostat", "properties": {"temperature": {}}}).encode()

        thing_id = mqtt_discovery.handle_announcement(
            "smartcity/smart_thermostat/thermostat_1/description", payload
        )

        assert thing_id == "thermostat_1"
        thing, = mqtt_discovery.get_things()
        assert thing["id"] == "thermostat_1"
        assert thing["type"] == "smart_thermostat"
        assert thing["name"] == "Thermostat"

    def test_announced_id_wins_over_topic(self, mqtt_discovery):
        topic = "smartcity/smart_light/light_1/description"
        mqtt_discovery.handle_announcement(topic, json.dumps({"id": "porch-light"}).encode())

        assert [t["id"] for t in mqtt_discovery.get_things()] == ["porch-light"]

        assert mqtt_discovery.handle_announcement(topic, b"") == "porch-light"
        assert mqtt_discovery.get_things() == []

    def test_empty_payload_retracts_device(self, mqtt_discovery):
        topic = "smartcity/smart_light/light_1/description"
        mqtt_discovery.handle_announcement(topic, b"{}")
        mqtt_discovery.handle_announcement(topic, b"")

        assert mqtt_discovery.get_things() == []

    def test_invalid_json_is_dropped(self, mqtt_discovery):
        assert mqtt_discovery.handle_announcement(
            "smartcity/smart_light/light_1/description", b"{oops"
        ) is None
        assert mqtt_discovery.get_things() == []

    def test_non_object_payload_is_dropped(self, mqtt_discovery):
        assert mqtt_discovery.handle_announcement(
            "smartcity/smart_light/light_1/description", b"[1, 2]"
        ) is None

    def test_other_topics_are_ignored(self, mqtt_discovery):
        assert mqtt_discovery.handle_announcement(
            "smartcity/smart_light/light_1/data", b"{}"
        ) is None
        assert mqtt_discovery.get_things() == []

    def test_message_before_connect_is_dropped(self, mqtt_discovery):
        msg = SimpleNamespace(topic="smartcity/smart_light/light_1/description", payload=b"{}")
        mqtt_discovery._on_message(None, None, msg)

        assert mqtt_discovery.get_things() == []

    @pytest.mark.asyncio
    async def test_message_is_handled_on_event_loop(self, mqtt_discovery):
        mqtt_discovery._loop = asyncio.get_running_loop()
        events = mqtt_discovery.subscribe()
        msg = SimpleNamespace(topic="smartcity/smart_light/light_1/description", payload=b"{}")

        mqtt_discovery._on_message(None, None, msg)
        event = await asyncio.wait_for(events.get(), timeout=1.0)

        assert event.thing_id == "light_1"

    def test_on_connect_subscribes(self, mqtt_discovery):
        client = MagicMock()

        mqtt_discovery._on_connect(client, None, None, MagicMock(is_failure=False), None)

        assert mqtt_discovery.is_connected
        client.subscribe.assert_called_once_with("smartcity/+/+/description", qos=1)

    def test_on_connect_failure(self, mqtt_discovery):
        client = MagicMock()

        mqtt_discovery._on_connect(client, None, None, MagicMock(is_failure=True), None)

        assert mqtt_discovery.is_connected is False
        client.subscribe.assert_not_called()
