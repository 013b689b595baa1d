# thing_service/core/device_discovery.py
import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ThingAddedEvent:
    """A device the discovery subsystem has just found"""
    thing: Dict[str, Any]

    @property
    def thing_id(self) -> str:
        return self.thing.get('id', '')


class ThingAddedChannel:
    """
    Typed fan-out channel for ThingAddedEvent

    Each subscriber gets its own queue, so a slow consumer never blocks
    publishing or the other consumers.
    """

    def __init__(self):
        self._queues: List[asyncio.Queue] = []

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> bool:
        for index, existing in enumerate(self._queues):
            if existing is queue:
                del self._queues[index]
                return True
        return False

    def publish(self, event: ThingAddedEvent):
        for queue in list(self._queues):
            queue.put_nowait(event)

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)


class DiscoveryInterface(ABC):
    """
    Interface of the discovery subsystem the registry reconciles against
    """

    @abstractmethod
    def get_things(self) -> List[Dict[str, Any]]:
        """Get descriptions of all devices currently connected"""
        pass

    @abstractmethod
    def subscribe(self) -> asyncio.Queue:
        """Subscribe to ThingAddedEvent notifications"""
        pass

    @abstractmethod
    def unsubscribe(self, queue: asyncio.Queue) -> bool:
        """Stop receiving ThingAddedEvent notifications on a queue"""
        pass


class LocalDeviceDiscovery(DiscoveryInterface):
    """
    In-process discovery subsystem
    Device adapters report their devices through add_thing / remove_thing
    """

    def __init__(self):
        self.connected_things: Dict[str, Dict[str, Any]] = {}
        self.channel = ThingAddedChannel()

    def get_things(self) -> List[Dict[str, Any]]:
        return list(self.connected_things.values())

    def subscribe(self) -> asyncio.Queue:
        return self.channel.subscribe()

    def unsubscribe(self, queue: asyncio.Queue) -> bool:
        return self.channel.unsubscribe(queue)

    def add_thing(self, description: Dict[str, Any]) -> bool:
        """
        Record a connected device

        Returns:
            True if the device was not known before (an event was published)
        """
        thing_id = description.get('id')
        if not thing_id:
            logger.warning(f"Ignoring device description without id: {description}")
            return False

        is_new = thing_id not in self.connected_things
        self.connected_things[thing_id] = description

        if is_new:
            logger.info(f"Discovered new device: {thing_id}")
            self.channel.publish(ThingAddedEvent(thing=copy.deepcopy(description)))
        else:
            logger.debug(f"Updated device description: {thing_id}")
        return is_new

    def remove_thing(self, thing_id: str) -> bool:
        """Forget a device that disconnected"""
        if self.connected_things.pop(thing_id, None) is None:
            return False
        logger.info(f"Device disconnected: {thing_id}")
        return True
