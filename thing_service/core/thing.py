# thing_service/core/thing.py
import copy
import logging
from typing import Any, Callable, Dict, List, Optional

from .addressing import Addressing

logger = logging.getLogger(__name__)

def is_property_map(properties: Any) -> bool:
    """Check that properties map each property name to a descriptor object"""
    return isinstance(properties, dict) and all(
        isinstance(descriptor, dict) for descriptor in properties.values()
    )


class Thing:
    """
    A device registered with the gateway

    Wraps the persisted description of one device and derives its
    addresses (thing href and per-property hrefs) from its id.
    """

    def __init__(self, thing_id: str, description: Dict[str, Any],
                 addressing: Optional[Addressing] = None):
        self.id = thing_id
        self.addressing = addressing or Addressing()

        description = copy.deepcopy(description or {})
        self.name = description.pop('name', '')
        self.type = description.pop('type', '')
        self.properties: Dict[str, Dict[str, Any]] = description.pop('properties', None) or {}
        if not is_property_map(self.properties):
            raise ValueError(f"Properties of thing {thing_id} must map names to objects")
        self.actions: Dict[str, Any] = description.pop('actions', None) or {}
        self.events: Dict[str, Any] = description.pop('events', None) or {}
        description.pop('href', None)
        description.pop('id', None)
        # Anything else (description text, metadata...) is carried through untouched
        self.extra: Dict[str, Any] = description

        self.href = self.addressing.thing_href(self.id)
        for property_name, property_description in self.properties.items():
            property_description['href'] = self.addressing.property_href(self.id, property_name)

        self.is_removed = False
        self._removed_handlers: List[Callable[["Thing"], None]] = []

    def get_description(self) -> Dict[str, Any]:
        """Get the externally visible description of this thing"""
        description = copy.deepcopy(self.extra)
        description.update({
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'href': self.href,
            'properties': copy.deepcopy(self.properties),
            'actions': copy.deepcopy(self.actions),
            'events': copy.deepcopy(self.events)
        })
        return description

    def on_removed(self, handler: Callable[["Thing"], None]):
        """Register a callback invoked once when the thing is removed"""
        self._removed_handlers.append(handler)

    def remove(self):
        """Release the thing after it has been deleted from the registry"""
        if self.is_removed:
            return
        self.is_removed = True

        handlers = self._removed_handlers
        self._removed_handlers = []
        for handler in handlers:
            try:
                handler(self)
            except Exception as e:
                logger.error(f"Removal handler failed for thing {self.id}: {e}")

        logger.debug(f"Released thing {self.id}")

    def __repr__(self) -> str:
        return f"Thing(id={self.id!r}, name={self.name!r})"
