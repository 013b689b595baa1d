# thing_service/storage/storage_interface.py
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

class ThingStoreInterface(ABC):
    """Abstract interface for thing storage backends"""
    
    @abstractmethod
    async def initialize(self):
        """Initialize storage backend"""
        pass
    
    @abstractmethod
    async def list_things(self) -> List[Tuple[str, Dict[str, Any]]]:
        """List every stored thing as (id, description) pairs"""
        pass
    
    @abstractmethod
    async def create_thing(self, thing_id: str, description: Dict[str, Any]) -> Dict[str, Any]:
        """
        Persist a new thing
        
        Returns:
            The stored description
            
        Raises:
            ThingConflictError: if a thing with this id is already stored
        """
        pass
    
    @abstractmethod
    async def remove_thing(self, thing_id: str):
        """Delete a stored thing, deleting an unknown id is a no-op"""
        pass
