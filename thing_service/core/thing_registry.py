# thing_service/core/thing_registry.py
import asyncio
import logging
from typing import Any, Dict, List, Optional

from .addressing import Addressing
from .errors import StoreUnavailableError, ThingNotFoundError, ThingRegistryError
from .thing import Thing
from ..storage.storage_interface import ThingStoreInterface

logger = logging.getLogger(__name__)

class ThingRegistry:
    """
    In-memory registry of things backed by a persistent store

    The cache starts cold and is loaded from the store on first use. While
    warm it mirrors the store: create and remove write to the store first
    and only then touch the cache.

    Concurrency:
        - concurrent callers hitting a cold cache share a single load
        - load, create and remove are serialized by one lock, so cache
          mutations are applied in the order the store saw them
        - reads of a warm cache never wait
    """

    def __init__(self, store: ThingStoreInterface, addressing: Optional[Addressing] = None):
        self.store = store
        self.addressing = addressing or Addressing()
        self.things: Dict[str, Thing] = {}
        self._warm = False
        self._generation = 0
        self._lock = asyncio.Lock()
        self._loading: Optional[asyncio.Task] = None

    @property
    def is_warm(self) -> bool:
        return self._warm

    async def get_all(self) -> Dict[str, Thing]:
        """
        Get all things known to the gateway, loading them from the store
        the first time

        Returns:
            Mapping of thing id to Thing
        """
        if self._warm:
            return self.things

        loading = self._loading
        if loading is None or loading.done():
            loading = asyncio.create_task(self._load(self._generation))
            self._loading = loading

        try:
            # Shielded: a cancelled caller must not cancel the load the others wait on
            return await asyncio.shield(loading)
        finally:
            if self._loading is loading and loading.done():
                self._loading = None

    async def _load(self, generation: int) -> Dict[str, Thing]:
        async with self._lock:
            if self._warm and generation == self._generation:
                return self.things

            logger.info("Loading things from store...")
            records = await self._call_store("list things", self.store.list_things())

            things = {}
            for thing_id, description in records:
                try:
                    things[thing_id] = Thing(thing_id, description, self.addressing)
                except (TypeError, ValueError, AttributeError) as e:
                    logger.error(f"Stored thing {thing_id} is unreadable: {e}")
                    raise StoreUnavailableError(f"Stored thing {thing_id} is unreadable: {e}", thing_id) from e

            if generation != self._generation:
                # clear() ran while the store was being queried
                logger.debug("Registry was cleared during load, discarding result")
                return things

            self.things = things
            self._warm = True
            logger.info(f"Loaded {len(things)} things from store")
            return self.things

    async def get_descriptions(self) -> List[Dict[str, Any]]:
        """Get descriptions of all stored things"""
        things = await self.get_all()
        return [thing.get_description() for thing in things.values()]

    async def get(self, thing_id: str) -> Thing:
        """
        Get a thing by its id

        Raises:
            ThingNotFoundError: if no thing has this id
        """
        things = await self.get_all()
        thing = things.get(thing_id)
        if thing is None:
            raise ThingNotFoundError(thing_id)
        return thing

    async def get_description(self, thing_id: str) -> Dict[str, Any]:
        """Get the description of a thing by its id"""
        thing = await self.get(thing_id)
        return thing.get_description()

    async def create(self, thing_id: str, description: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a new thing with the given id and description

        The thing is only added to the cache once the store has accepted it.

        Returns:
            The persisted description
        """
        thing = Thing(thing_id, description, self.addressing)

        async with self._lock:
            stored = await self._call_store(
                f"create thing {thing_id}",
                self.store.create_thing(thing.id, thing.get_description())
            )
            self.things[thing.id] = thing

        logger.info(f"Created thing: {thing_id}")
        return stored

    async def remove(self, thing_id: str):
        """
        Remove a thing from the store and the cache

        Removing a thing that is not cached succeeds as long as the store
        delete does.
        """
        async with self._lock:
            await self._call_store(f"remove thing {thing_id}", self.store.remove_thing(thing_id))

            thing = self.things.pop(thing_id, None)

        if thing is None:
            logger.debug(f"Thing {thing_id} was not cached")
            return

        thing.remove()
        logger.info(f"Removed thing: {thing_id}")

    def clear(self):
        """Reset the cache to cold without touching the store"""
        self.things = {}
        self._warm = False
        self._generation += 1
        self._loading = None
        logger.debug("Thing registry cleared")

    async def _call_store(self, operation: str, call):
        try:
            return await call
        except ThingRegistryError:
            raise
        except Exception as e:
            logger.error(f"Store failed to {operation}: {e}")
            raise StoreUnavailableError(f"Store failed to {operation}: {e}") from e

    def __contains__(self, thing_id: str) -> bool:
        return thing_id in self.things

    def __len__(self) -> int:
        return len(self.things)
