# thing_service/core/subscriber_hub.py
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from .device_discovery import DiscoveryInterface, ThingAddedEvent
from .errors import SubscriberDeliveryError

logger = logging.getLogger(__name__)

class SubscriberInterface(ABC):
    """A live connection listening for newly discovered things"""

    @abstractmethod
    async def send(self, payload: str):
        """Deliver a serialized payload"""
        pass

    @abstractmethod
    def on_close(self, handler: Callable[[], None]):
        """Register a handler fired when the underlying connection closes"""
        pass


class SubscriberHub:
    """
    Fans "new thing discovered" events out to every open subscriber

    A subscriber is removed only when its own connection closes; failing to
    deliver to it leaves it registered.
    """

    def __init__(self):
        self.subscribers: List[SubscriberInterface] = []
        self._discovery: Optional[DiscoveryInterface] = None
        self._events: Optional[asyncio.Queue] = None
        self._consumer_task: Optional[asyncio.Task] = None

    @property
    def subscriber_count(self) -> int:
        return len(self.subscribers)

    def register(self, subscriber: SubscriberInterface):
        """Add a subscriber to the list of new thing subscribers"""
        self.subscribers.append(subscriber)
        subscriber.on_close(lambda: self.unregister(subscriber))
        logger.info(f"Registered new thing subscriber ({len(self.subscribers)} open)")

    def unregister(self, subscriber: SubscriberInterface) -> bool:
        """Remove exactly this subscriber instance"""
        for index, existing in enumerate(self.subscribers):
            if existing is subscriber:
                del self.subscribers[index]
                logger.info(f"New thing subscriber closed ({len(self.subscribers)} open)")
                return True
        return False

    async def broadcast_new_thing(self, description: Dict[str, Any]) -> int:
        """
        Notify each open subscriber of a new thing

        Returns:
            Number of subscribers the payload was delivered to
        """
        payload = json.dumps(description, default=str)
        subscribers = list(self.subscribers)
        if not subscribers:
            return 0

        results = await asyncio.gather(
            *(self._deliver(subscriber, payload) for subscriber in subscribers),
            return_exceptions=True
        )

        delivered = 0
        for result in results:
            if isinstance(result, SubscriberDeliveryError):
                logger.warning(str(result))
            elif isinstance(result, BaseException):
                raise result
            else:
                delivered += 1

        logger.debug(f"Delivered new thing {description.get('id')} to "
                     f"{delivered}/{len(subscribers)} subscribers")
        return delivered

    async def _deliver(self, subscriber: SubscriberInterface, payload: str):
        try:
            await subscriber.send(payload)
        except Exception as e:
            raise SubscriberDeliveryError(f"Failed to deliver to subscriber {subscriber!r}: {e}") from e

    def attach(self, discovery: DiscoveryInterface):
        """Start forwarding the discovery subsystem's ThingAddedEvents"""
        if self._consumer_task is not None:
            raise RuntimeError("SubscriberHub is already attached to a discovery subsystem")

        self._discovery = discovery
        self._events = discovery.subscribe()
        self._consumer_task = asyncio.create_task(self._consume_events(self._events))
        logger.info("Subscriber hub listening for new things")

    async def detach(self):
        """Stop forwarding ThingAddedEvents"""
        if self._consumer_task is None:
            return

        self._consumer_task.cancel()
        try:
            await self._consumer_task
        except asyncio.CancelledError:
            pass

        self._discovery.unsubscribe(self._events)
        self._consumer_task = None
        self._discovery = None
        self._events = None
        logger.info("Subscriber hub stopped listening for new things")

    async def wait_idle(self):
        """Wait until every queued ThingAddedEvent has been broadcast"""
        if self._events is not None:
            await self._events.join()

    async def _consume_events(self, events: asyncio.Queue):
        while True:
            event: ThingAddedEvent = await events.get()
            try:
                await self.broadcast_new_thing(event.thing)
            except Exception as e:
                logger.error(f"Error broadcasting new thing {event.thing_id}: {e}")
            finally:
                events.task_done()

    def clear(self):
        """Drop every subscriber"""
        self.subscribers = []
