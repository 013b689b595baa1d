# thing_service/main.py - Service orchestration
import asyncio
import logging
import sys
from typing import Optional

import uvicorn
from dotenv import load_dotenv

from .api.things_api import ThingsAPI
from .config.settings import Settings
from .core.addressing import Addressing
from .core.device_discovery import LocalDeviceDiscovery
from .core.discovery_sync import DiscoverySync
from .core.subscriber_hub import SubscriberHub
from .core.thing_registry import ThingRegistry
from .messaging.mqtt_discovery import MQTTDeviceDiscovery
from .storage.factory import StorageFactory

logger = logging.getLogger(__name__)

class ThingServiceOrchestrator:
    """Wires storage, discovery, registry, subscriber hub and API together"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.store = None
        self.discovery: Optional[LocalDeviceDiscovery] = None
        self.registry: Optional[ThingRegistry] = None
        self.discovery_sync: Optional[DiscoverySync] = None
        self.hub: Optional[SubscriberHub] = None
        self.api: Optional[ThingsAPI] = None
        self.is_running = False

    async def initialize(self) -> bool:
        """Initialize all components"""
        try:
            logger.info("Initializing Thing Service Orchestrator...")
            addressing = Addressing.from_settings(self.settings)

            self.store = StorageFactory.create_storage(
                self.settings.STORAGE_TYPE, self.settings.STORAGE_PATH
            )
            await self.store.initialize()

            self.discovery = await self._create_discovery()

            self.registry = ThingRegistry(self.store, addressing)
            self.discovery_sync = DiscoverySync(self.registry, self.discovery, addressing)

            self.hub = SubscriberHub()
            self.hub.attach(self.discovery)

            self.api = ThingsAPI(
                self.registry,
                self.discovery_sync,
                self.hub,
                things_path=self.settings.THINGS_PATH,
                new_things_path=self.settings.NEW_THINGS_PATH
            )

            # Warm the cache so the first request doesn't pay for it
            things = await self.registry.get_all()
            logger.info(f"📦 {len(things)} things registered")

            self.is_running = True
            logger.info("Thing Service Orchestrator initialized successfully")
            return True

        except Exception as e:
            logger.error(f"Orchestrator initialization failed: {e}")
            return False

    async def _create_discovery(self) -> LocalDeviceDiscovery:
        if self.settings.DISCOVERY_TYPE.lower() != 'mqtt':
            logger.info("Using local device discovery")
            return LocalDeviceDiscovery()

        discovery = MQTTDeviceDiscovery({
            'mqtt_broker': self.settings.MQTT_BROKER,
            'mqtt_port': self.settings.MQTT_PORT,
            'mqtt_topic_prefix': self.settings.MQTT_TOPIC_PREFIX,
            'mqtt_username': self.settings.MQTT_USERNAME,
            'mqtt_password': self.settings.MQTT_PASSWORD
        })
        if not await discovery.connect():
            logger.warning("MQTT connection failed, continuing without device announcements")
        return discovery

    async def shutdown(self):
        """Shutdown all components gracefully"""
        logger.info("Shutting down Thing Service Orchestrator...")
        self.is_running = False

        if self.hub:
            await self.hub.detach()
            self.hub.clear()

        if isinstance(self.discovery, MQTTDeviceDiscovery):
            self.discovery.disconnect()

        logger.info("Thing Service Orchestrator shutdown complete")


def configure_logging(level: str):
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


async def main():
    """Main entry point"""
    load_dotenv()
    settings = Settings()
    configure_logging(settings.LOG_LEVEL)

    logger.info("🚀 Starting Smart City Thing Registry")
    orchestrator = ThingServiceOrchestrator(settings)

    if not await orchestrator.initialize():
        logger.error("❌ Failed to initialize services")
        await orchestrator.shutdown()
        return

    config_uvicorn = uvicorn.Config(
        app=orchestrator.api.app,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
    server = uvicorn.Server(config_uvicorn)

    logger.info(f"Starting Thing Registry API on port {settings.API_PORT}")
    logger.info(f"API Documentation: http://{settings.API_HOST}:{settings.API_PORT}/docs")

    try:
        await server.serve()
    except Exception as e:
        logger.error(f"💥 Service error: {e}")
        raise
    finally:
        await orchestrator.shutdown()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
