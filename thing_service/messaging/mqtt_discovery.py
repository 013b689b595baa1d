# thing_service/messaging/mqtt_discovery.py
import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from ..core.device_discovery import LocalDeviceDiscovery

logger = logging.getLogger(__name__)

class MQTTDeviceDiscovery(LocalDeviceDiscovery):
    """
    Discovery subsystem fed by device announcements over MQTT

    Device adapters publish their description (retained) on
        {prefix}/{device_type}/{device_id}/description
    and clear it with an empty payload when the device goes away.
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__()
        self.config = config
        self.topic_prefix = config.get('mqtt_topic_prefix', 'smartcity')
        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=f"thing-registry-{int(time.time())}",
            protocol=mqtt.MQTTv311
        )

        # Authentication
        username = config.get('mqtt_username')
        password = config.get('mqtt_password')
        if username and password:
            self.client.username_pw_set(username, password)

        # Callbacks
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message
        self.client.on_disconnect = self._on_disconnect

        self.is_connected = False
        # Announcement topic -> id the device announced itself with
        self._topic_ids: Dict[str, str] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._connection_event: Optional[asyncio.Event] = None

    @property
    def announcement_topic(self) -> str:
        return f"{self.topic_prefix}/+/+/description"

    async def connect(self, timeout: float = 10.0) -> bool:
        """Connect to the MQTT broker and start listening for announcements"""
        self._loop = asyncio.get_running_loop()
        self._connection_event = asyncio.Event()

        broker = self.config.get('mqtt_broker', 'localhost')
        port = self.config.get('mqtt_port', 1883)
        try:
            logger.info(f"Connecting to MQTT broker at {broker}:{port}")
            self.client.connect(broker, port, 60)
            self.client.loop_start()
        except Exception as e:
            logger.error(f"MQTT connection failed: {e}")
            return False

        try:
            await asyncio.wait_for(self._connection_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error("Timeout waiting for MQTT connection")
            return False

        return True

    def disconnect(self):
        """Disconnect from MQTT broker"""
        self.client.loop_stop()
        if self.is_connected:
            self.client.disconnect()
            self.is_connected = False
            logger.info("Disconnected from MQTT broker")

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        """MQTT connect callback"""
        if reason_code.is_failure:
            logger.error(f"MQTT connection failed with code {reason_code}")
            return

        logger.info("Connected to MQTT broker")
        self.is_connected = True
        client.subscribe(self.announcement_topic, qos=1)
        logger.info(f"Subscribed to device announcements: {self.announcement_topic}")

        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._connection_event.set)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        """MQTT disconnect callback"""
        self.is_connected = False
        if reason_code.is_failure:
            logger.warning(f"Unexpected MQTT disconnection: {reason_code}")
        else:
            logger.info("Disconnected from MQTT broker")

    def _on_message(self, client, userdata, msg):
        """MQTT message callback, runs on the network thread"""
        if self._loop is None:
            logger.warning(f"Dropping announcement received before connect: {msg.topic}")
            return
        self._loop.call_soon_threadsafe(self.handle_announcement, msg.topic, msg.payload)

    def handle_announcement(self, topic: str, payload: bytes) -> Optional[str]:
        """
        Apply one announcement to the set of connected devices

        Returns:
            The id of the device that was added, updated or removed
        """
        # Parse topic: {prefix}/{device_type}/{device_id}/description
        topic_parts = topic.split('/')
        if len(topic_parts) < 4 or topic_parts[-1] != 'description':
            logger.debug(f"Ignoring message on non-announcement topic: {topic}")
            return None

        device_type = topic_parts[-3]
        device_id = topic_parts[-2]

        if not payload:
            thing_id = self._topic_ids.pop(topic, device_id)
            self.remove_thing(thing_id)
            return thing_id

        try:
            description = json.loads(payload.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Invalid JSON in announcement for {device_id}: {e}")
            return None

        if not isinstance(description, dict):
            logger.error(f"Announcement for {device_id} is not an object")
            return None

        description.setdefault('id', device_id)
        description.setdefault('type', device_type)
        self._topic_ids[topic] = description['id']
        self.add_thing(description)
        return description['id']
