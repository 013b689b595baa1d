# thing_service/core/errors.py
from typing import Optional


class ThingRegistryError(Exception):
    """Base class for registry failures"""
    
    def __init__(self, message: str, thing_id: Optional[str] = None):
        super().__init__(message)
        self.thing_id = thing_id


class ThingNotFoundError(ThingRegistryError):
    """Lookup of an id the registry does not know"""
    
    def __init__(self, thing_id: str):
        super().__init__(f"Unable to find thing with id: {thing_id}", thing_id)


class ThingConflictError(ThingRegistryError):
    """Create with an id that is already stored"""
    
    def __init__(self, thing_id: str):
        super().__init__(f"Thing already exists: {thing_id}", thing_id)


class StoreUnavailableError(ThingRegistryError):
    """Persistent store I/O failure"""


class SubscriberDeliveryError(ThingRegistryError):
    """A single subscriber could not be sent a payload"""
