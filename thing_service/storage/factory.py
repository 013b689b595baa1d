# thing_service/storage/factory.py
import logging
import os
from typing import Optional

from .storage_interface import ThingStoreInterface

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_PATH = "/app/storage/things"

class StorageFactory:
    @staticmethod
    def create_storage(storage_type: Optional[str] = None,
                       storage_path: Optional[str] = None) -> ThingStoreInterface:
        """Create storage instance based on configuration"""
        if storage_type is None:
            storage_type = os.environ.get('STORAGE_TYPE', 'filesystem')
        if storage_path is None:
            storage_path = os.environ.get('STORAGE_PATH', DEFAULT_STORAGE_PATH)
        
        if storage_type.lower() == 'memory':
            from .memory_storage import MemoryThingStore
            logger.info("Using memory thing storage")
            return MemoryThingStore()
        
        elif storage_type.lower() == 'filesystem':
            from .filesystem_storage import FilesystemThingStore
            logger.info(f"Using filesystem thing storage at {storage_path}")
            return FilesystemThingStore(base_path=storage_path)
        
        else:
            logger.error(f"Unsupported storage type: {storage_type}, using filesystem")
            from .filesystem_storage import FilesystemThingStore
            return FilesystemThingStore(base_path=storage_path)
