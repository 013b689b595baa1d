# thing_service/storage/memory_storage.py
import copy
import logging
from typing import Any, Dict, List, Tuple

from .storage_interface import ThingStoreInterface
from ..core.errors import ThingConflictError

logger = logging.getLogger(__name__)

class MemoryThingStore(ThingStoreInterface):
    """In-process storage, nothing survives a restart"""
    
    def __init__(self):
        self.things: Dict[str, Dict[str, Any]] = {}
        self.list_calls = 0
    
    async def initialize(self):
        logger.info("Memory thing storage initialized")
    
    async def list_things(self) -> List[Tuple[str, Dict[str, Any]]]:
        self.list_calls += 1
        return [(thing_id, copy.deepcopy(description))
                for thing_id, description in self.things.items()]
    
    async def create_thing(self, thing_id: str, description: Dict[str, Any]) -> Dict[str, Any]:
        if thing_id in self.things:
            raise ThingConflictError(thing_id)
        self.things[thing_id] = copy.deepcopy(description)
        logger.debug(f"Stored thing {thing_id}")
        return copy.deepcopy(description)
    
    async def remove_thing(self, thing_id: str):
        if self.things.pop(thing_id, None) is not None:
            logger.debug(f"Deleted thing {thing_id}")
