# thing_service/storage/filesystem_storage.py
import json
import logging
import os
from typing import Any, Dict, List, Tuple
from urllib.parse import quote, unquote

from .storage_interface import ThingStoreInterface
from ..core.errors import StoreUnavailableError, ThingConflictError

logger = logging.getLogger(__name__)

class FilesystemThingStore(ThingStoreInterface):
    """
    Filesystem storage, one JSON document per thing
    
    Layout:
        base_path/
            <quoted id>.json
    """
    
    SUFFIX = ".json"
    
    def __init__(self, base_path: str = "/app/storage/things"):
        self.base_path = base_path
    
    def _thing_path(self, thing_id: str) -> str:
        return os.path.join(self.base_path, quote(thing_id, safe='') + self.SUFFIX)
    
    async def initialize(self):
        """Initialize filesystem storage"""
        try:
            os.makedirs(self.base_path, exist_ok=True)
            logger.info(f"Filesystem thing storage initialized at {self.base_path}")
        except OSError as e:
            logger.error(f"Failed to initialize filesystem storage: {e}")
            raise StoreUnavailableError(f"Cannot create {self.base_path}: {e}") from e
    
    async def list_things(self) -> List[Tuple[str, Dict[str, Any]]]:
        """Read every thing document"""
        things = []
        if not os.path.exists(self.base_path):
            return things
        
        try:
            for filename in sorted(os.listdir(self.base_path)):
                if not filename.endswith(self.SUFFIX):
                    continue
                thing_id = unquote(filename[:-len(self.SUFFIX)])
                with open(os.path.join(self.base_path, filename), 'r') as f:
                    things.append((thing_id, json.load(f)))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to list things: {e}")
            raise StoreUnavailableError(f"Cannot read things from {self.base_path}: {e}") from e
        
        return things
    
    async def create_thing(self, thing_id: str, description: Dict[str, Any]) -> Dict[str, Any]:
        """Write a new thing document, refusing to overwrite"""
        path = self._thing_path(thing_id)
        try:
            os.makedirs(self.base_path, exist_ok=True)
            with open(path, 'x') as f:
                json.dump(description, f, indent=2)
        except FileExistsError:
            raise ThingConflictError(thing_id)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to store thing {thing_id}: {e}")
            # Don't leave a half-written document behind
            if os.path.exists(path):
                os.remove(path)
            raise StoreUnavailableError(f"Cannot store thing {thing_id}: {e}", thing_id) from e
        
        logger.debug(f"Stored thing {thing_id} at {path}")
        return description
    
    async def remove_thing(self, thing_id: str):
        """Delete a thing document"""
        path = self._thing_path(thing_id)
        try:
            if os.path.exists(path):
                os.remove(path)
                logger.debug(f"Deleted thing {thing_id}")
        except OSError as e:
            logger.error(f"Failed to delete thing {thing_id}: {e}")
            raise StoreUnavailableError(f"Cannot delete thing {thing_id}: {e}", thing_id) from e
