"""
Favorites overlay.
Tracks the signed-in user's favorited property ids and derives ``is_favorite`` on
the cached properties.
"""

import logging
from typing import FrozenSet, List, Optional, Set

from realestate.repositories.document import SERVER_TIMESTAMP, DocumentStore, subcollection
from realestate.schemas.favorite import Favorite
from realestate.schemas.property import Property
from realestate.services.auth import AuthContext, require_user
from realestate.services.cache import PropertyCache
from realestate.utils.exceptions import FavoriteLoadError, FavoriteToggleError
from realestate.utils.locks import KeyedLocks

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
FAVORITES_SUBCOLLECTION = "favorites"


def favorites_collection(user_id: str) -> str:
    return subcollection(USERS_COLLECTION, user_id, FAVORITES_SUBCOLLECTION)


class FavoritesOverlay:
    """
    Per-user set of favorited property ids.

    The set remembers the user it was loaded for; for any other user, or when
    nobody is signed in, every property reads as not favorite. Toggles for the
    same (user, property) pair are serialized.
    """

    def __init__(self, store: DocumentStore, auth: AuthContext, cache: PropertyCache):
        self.store = store
        self.auth = auth
        self.cache = cache
        self._ids: FrozenSet[str] = frozenset()
        self._owner_id: Optional[str] = None
        self._toggle_locks = KeyedLocks()
        cache.bind_overlay(self.is_favorite)

    @property
    def favorite_ids(self) -> FrozenSet[str]:
        """Favorited ids of the signed-in user."""
        if not self._owned_by_current_user():
            return frozenset()
        return self._ids

    def is_favorite(self, property_id: str) -> bool:
        return self._owned_by_current_user() and property_id in self._ids

    def favorites(self) -> List[Property]:
        """Cached properties the signed-in user has favorited."""
        return [prop for prop in self.cache.snapshot() if prop.is_favorite]

    async def load(self) -> FrozenSet[str]:
        """
        Replace the local id set with the user's remote favorites and re-apply it.

        Raises:
            UnauthenticatedError: If nobody is signed in
            FavoriteLoadError: If the favorites cannot be read; the set is unchanged
        """
        user_id = require_user(self.auth)
        try:
            documents = await self.store.list(favorites_collection(user_id))
        except Exception as e:
            logger.error(f"Failed to load favorites of user {user_id}: {e}")
            raise FavoriteLoadError(e) from e

        self._set_ids(user_id, {document.id for document in documents})
        await self.cache.refresh_overlay()
        logger.info(f"Loaded {len(self._ids)} favorites for user {user_id}")
        return self._ids

    async def toggle(self, prop: Property) -> bool:
        """
        Add the property to the user's favorites, or remove it when already there.

        Returns:
            The new favorite status

        Raises:
            UnauthenticatedError: If nobody is signed in
            FavoriteToggleError: If the remote check or write fails; the set is unchanged
        """
        user_id = require_user(self.auth)
        collection = favorites_collection(user_id)

        async with self._toggle_locks.hold((user_id, prop.id)):
            try:
                existing = await self.store.get(collection, prop.id)
                if existing is not None:
                    await self.store.delete(collection, prop.id)
                else:
                    snapshot = Favorite.from_property(prop).to_document()
                    await self.store.set(collection, prop.id, {**snapshot, "addedAt": SERVER_TIMESTAMP})
            except Exception as e:
                logger.error(f"Failed to toggle favorite {prop.id} for user {user_id}: {e}")
                raise FavoriteToggleError(prop.id, e) from e

            ids = set(self._ids) if self._owner_id == user_id else set()
            if existing is not None:
                ids.discard(prop.id)
            else:
                ids.add(prop.id)
            self._set_ids(user_id, ids)

        await self.cache.refresh_overlay()
        is_favorite = existing is None
        logger.debug(f"Property {prop.id} favorite={is_favorite} for user {user_id}")
        return is_favorite

    async def clear(self) -> None:
        """Forget the local favorites, e.g. on sign-out."""
        self._ids = frozenset()
        self._owner_id = None
        await self.cache.refresh_overlay()

    async def list_snapshots(self) -> List[Favorite]:
        """
        Read the user's favorite snapshots from the store.

        Raises:
            UnauthenticatedError: If nobody is signed in
            FavoriteLoadError: If the favorites cannot be read
        """
        user_id = require_user(self.auth)
        try:
            documents = await self.store.list(favorites_collection(user_id))
        except Exception as e:
            logger.error(f"Failed to list favorites of user {user_id}: {e}")
            raise FavoriteLoadError(e) from e

        snapshots = []
        for document in documents:
            try:
                snapshots.append(Favorite.from_document(document.id, document.data))
            except ValueError as e:
                logger.warning(f"Skipping unparseable favorite {document.id} of user {user_id}: {e}")
        return snapshots

    async def delete_all(self) -> int:
        """
        Remove every favorite of the signed-in user, then clear the local set.

        Returns:
            Number of favorites deleted

        Raises:
            UnauthenticatedError: If nobody is signed in
            FavoriteLoadError: If the favorites cannot be listed
            FavoriteToggleError: If one of them cannot be deleted
        """
        user_id = require_user(self.auth)
        collection = favorites_collection(user_id)
        try:
            documents = await self.store.list(collection)
        except Exception as e:
            raise FavoriteLoadError(e) from e

        deleted = 0
        for document in documents:
            try:
                if await self.store.delete(collection, document.id):
                    deleted += 1
            except Exception as e:
                logger.error(f"Failed to delete favorite {document.id} of user {user_id}: {e}")
                raise FavoriteToggleError(document.id, e) from e

        await self.clear()
        logger.info(f"Deleted {deleted} favorites of user {user_id}")
        return deleted

    def _owned_by_current_user(self) -> bool:
        user_id = self.auth.current_user_id()
        return bool(user_id) and user_id == self._owner_id

    def _set_ids(self, user_id: str, ids: Set[str]) -> None:
        self._owner_id = user_id
        self._ids = frozenset(ids)
