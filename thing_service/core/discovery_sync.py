# thing_service/core/discovery_sync.py
import copy
import logging
from typing import Any, Dict, List, Optional

from .addressing import Addressing
from .device_discovery import DiscoveryInterface
from .thing import is_property_map
from .thing_registry import ThingRegistry

logger = logging.getLogger(__name__)

class DiscoverySync:
    """
    Finds devices connected to the gateway that are not registered yet

    Read-only: neither the registry nor the discovery subsystem is modified.
    """

    def __init__(self, registry: ThingRegistry, discovery: DiscoveryInterface,
                 addressing: Optional[Addressing] = None):
        self.registry = registry
        self.discovery = discovery
        self.addressing = addressing or registry.addressing

    async def get_new_things(self) -> List[Dict[str, Any]]:
        """
        Get devices which are connected but not yet saved in the registry,
        with hrefs assigned so they can be addressed before registration

        Returns:
            Copies of the connected device descriptions, in discovery order
        """
        stored_things = await self.registry.get_all()
        connected_things = self.discovery.get_things()

        new_things = []
        for connected_thing in connected_things:
            thing_id = connected_thing.get('id')
            if not thing_id:
                logger.warning(f"Skipping connected device without id: {connected_thing}")
                continue
            if thing_id in stored_things:
                continue
            if not is_property_map(connected_thing.get('properties') or {}):
                logger.warning(f"Skipping connected device {thing_id} with malformed properties")
                continue
            new_things.append(self._with_addresses(thing_id, connected_thing))

        logger.debug(f"Found {len(new_things)} unregistered devices "
                     f"out of {len(connected_things)} connected")
        return new_things

    def _with_addresses(self, thing_id: str, connected_thing: Dict[str, Any]) -> Dict[str, Any]:
        new_thing = copy.deepcopy(connected_thing)
        new_thing['href'] = self.addressing.thing_href(thing_id)

        for property_name, property_description in (new_thing.get('properties') or {}).items():
            property_description['href'] = self.addressing.property_href(thing_id, property_name)

        return new_thing
