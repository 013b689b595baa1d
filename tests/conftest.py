"""Shared pytest fixtures for the thing registry test suite."""

import asyncio
from typing import Callable, List

import pytest

from thing_service.core.addressing import Addressing
from thing_service.core.device_discovery import LocalDeviceDiscovery
from thing_service.core.discovery_sync import DiscoverySync
from thing_service.core.subscriber_hub import SubscriberHub, SubscriberInterface
from thing_service.core.thing_registry import ThingRegistry
from thing_service.storage.memory_storage import MemoryThingStore


class FakeSubscriber(SubscriberInterface):
    """Records every payload it is sent."""

    def __init__(self, name: str = "subscriber", fail: bool = False):
        self.name = name
        self.fail = fail
        self.sent: List[str] = []
        self._close_handlers: List[Callable[[], None]] = []

    async def send(self, payload: str):
        if self.fail:
            raise ConnectionError(f"{self.name} connection reset")
        self.sent.append(payload)

    def on_close(self, handler: Callable[[], None]):
        self._close_handlers.append(handler)

    def close(self):
        for handler in self._close_handlers:
            handler()

    def __repr__(self):
        return f"FakeSubscriber({self.name})"


class GatedStore(MemoryThingStore):
    """Memory store whose list_things blocks until released."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def list_things(self):
        self.started.set()
        await self.release.wait()
        return await super().list_things()


@pytest.fixture
def addressing():
    return Addressing(things_path="/things", properties_path="/properties")


@pytest.fixture
def store():
    return MemoryThingStore()


@pytest.fixture
def registry(store, addressing):
    return ThingRegistry(store, addressing)


@pytest.fixture
def discovery():
    return LocalDeviceDiscovery()


@pytest.fixture
def discovery_sync(registry, discovery, addressing):
    return DiscoverySync(registry, discovery, addressing)


@pytest.fixture
def hub():
    return SubscriberHub()


@pytest.fixture
def lamp_description():
    return {
        "name": "Porch Lamp",
        "type": "onOffSwitch",
        "description": "Light by the front door",
        "properties": {
            "on": {"type": "boolean"},
        },
    }
