"""
Single-writer property cache.

Every mutation is queued and applied, one at a time, by a worker task that owns the
list. Readers get immutable snapshots. The favorites overlay is applied inside the
same worker, so cached ``is_favorite`` flags always match the overlay at the moment
of the last committed mutation.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Tuple, TypeVar

from realestate.schemas.property import Property

logger = logging.getLogger(__name__)

T = TypeVar("T")

Mutation = Callable[[Tuple[Property, ...]], Tuple[Tuple[Property, ...], T]]
Listener = Callable[[List[Property]], None]


def _no_favorites(property_id: str) -> bool:
    return False


class PropertyCache:
    """Authoritative in-memory list of properties."""

    def __init__(self):
        self._items: Tuple[Property, ...] = ()
        self._queue: "asyncio.Queue[Tuple[Mutation, asyncio.Future]]" = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []
        self._overlay: Callable[[str], bool] = _no_favorites

    # Read side

    def snapshot(self) -> List[Property]:
        """Current contents, in catalog order."""
        return list(self._items)

    def get(self, property_id: str) -> Optional[Property]:
        for item in self._items:
            if item.id == property_id:
                return item
        return None

    def __len__(self) -> int:
        return len(self._items)

    def is_favorite(self, property_id: str) -> bool:
        return self._overlay(property_id)

    def bind_overlay(self, overlay: Callable[[str], bool]) -> None:
        """Install the predicate used to derive ``is_favorite``."""
        self._overlay = overlay

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with the new snapshot after each mutation.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Write side

    async def replace(self, properties: List[Property]) -> List[Property]:
        """Replace the whole cache atomically."""
        def mutation(_current):
            items = tuple(self._apply_overlay(p) for p in properties)
            return items, list(items)
        return await self._submit(mutation)

    async def upsert(self, prop: Property) -> Property:
        """Replace the entry with the same id, or append it."""
        def mutation(current):
            stored = self._apply_overlay(prop)
            items = list(current)
            for index, item in enumerate(items):
                if item.id == stored.id:
                    items[index] = stored
                    break
            else:
                items.append(stored)
            return tuple(items), stored
        return await self._submit(mutation)

    async def patch(self, property_id: str, change: Callable[[Property], Property]) -> Optional[Property]:
        """Apply ``change`` to the entry with the given id, if cached."""
        def mutation(current):
            items = list(current)
            for index, item in enumerate(items):
                if item.id == property_id:
                    items[index] = self._apply_overlay(change(item))
                    return tuple(items), items[index]
            return current, None
        return await self._submit(mutation)

    async def remove(self, property_id: str) -> bool:
        def mutation(current):
            items = tuple(item for item in current if item.id != property_id)
            return items, len(items) != len(current)
        return await self._submit(mutation)

    async def refresh_overlay(self) -> List[Property]:
        """Re-derive ``is_favorite`` for every cached property."""
        def mutation(current):
            items = tuple(self._apply_overlay(item) for item in current)
            return items, list(items)
        return await self._submit(mutation)

    async def close(self) -> None:
        """Stop the worker once the queued mutations are applied."""
        if self._worker is None:
            return
        await self._queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    # Internals

    def _apply_overlay(self, prop: Property) -> Property:
        return prop.with_favorite(self._overlay(prop.id))

    async def _submit(self, mutation: Mutation) -> T:
        self._ensure_worker()
        future = asyncio.get_running_loop().create_future()
        await self._queue.put((mutation, future))
        # Shielded: a caller that stops waiting does not withdraw its mutation
        return await asyncio.shield(future)

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="property-cache-writer")

    async def _run(self) -> None:
        while True:
            mutation, future = await self._queue.get()
            try:
                items, result = mutation(self._items)
                self._items = items
                self._notify()
                if not future.done():
                    future.set_result(result)
            except Exception as e:
                logger.error(f"Cache mutation failed: {e}")
                if not future.done():
                    future.set_exception(e)
            finally:
                self._queue.task_done()

    def _notify(self) -> None:
        snapshot = list(self._items)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.warning(f"Cache listener {listener!r} failed: {e}")
