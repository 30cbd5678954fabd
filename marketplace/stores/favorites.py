"""Per-user favorites cache.

Pure local cache: no remote sync. The set lives under a storage key
namespaced by the acting user (``guest`` when nobody is logged in), and is
dropped from memory whenever the scope changes so one user's bookmarks never
show up in another user's session on the same device. The new scope's set is
read back from storage on the next access.
"""
from __future__ import annotations

import logging
from typing import Any

from marketplace.core.constants import FAVORITES_KEY, GUEST_SCOPE
from marketplace.core.persistence import JsonPersistence
from marketplace.domain.favorites import FavoriteItem

logger = logging.getLogger(__name__)


def favorites_key(user_id: str | None) -> str:
    return f"{FAVORITES_KEY}:{user_id or GUEST_SCOPE}"


class FavoritesStore:
    def __init__(self, persistence: JsonPersistence):
        self._persistence = persistence
        self._favorites: list[FavoriteItem] = []
        self.is_initialized = False
        self.user_scope: str | None = None

    @property
    def favorites(self) -> list[FavoriteItem]:
        self.ensure_loaded()
        return list(self._favorites)

    @property
    def storage_key(self) -> str:
        return favorites_key(self.user_scope)

    def count(self) -> int:
        self.ensure_loaded()
        return len(self._favorites)

    def set_user_scope(self, user_id: str | None) -> None:
        user_id = str(user_id) if user_id else None
        if self.user_scope != user_id:
            self.user_scope = user_id
            self.is_initialized = False
            self._favorites = []

    def load_persisted_favorites(self) -> list[FavoriteItem]:
        """Read the scope's set; never raises, falls back to empty."""
        try:
            raw = self._persistence.load(self.storage_key, default=None)
            self._favorites = _parse_items(raw)
        except Exception as exc:
            logger.warning("Failed to load favorites for scope %s: %s", self.user_scope, exc)
            self._favorites = []
        self.is_initialized = True
        return list(self._favorites)

    def ensure_loaded(self) -> None:
        if not self.is_initialized:
            self.load_persisted_favorites()

    def is_favorite(self, item_id: str | int) -> bool:
        self.ensure_loaded()
        key = str(item_id)
        return any(item.key == key for item in self._favorites)

    def toggle_favorite(self, item: FavoriteItem | dict[str, Any]) -> bool:
        """Add or remove ``item``; returns True when it is now a favorite."""
        if isinstance(item, dict):
            item = FavoriteItem.from_dict(item)
        self.ensure_loaded()

        if self.is_favorite(item.id):
            self._favorites = [f for f in self._favorites if f.key != item.key]
            added = False
        else:
            self._favorites = [item, *self._favorites]
            added = True
        self._save()
        return added

    def remove_favorite(self, item_id: str | int) -> None:
        self.ensure_loaded()
        key = str(item_id)
        self._favorites = [f for f in self._favorites if f.key != key]
        self._save()

    def clear_favorites(self) -> None:
        self._favorites = []
        self.is_initialized = True
        self._persistence.remove(self.storage_key)

    def _save(self) -> None:
        self._persistence.save(self.storage_key, [item.to_dict() for item in self._favorites])


def _parse_items(raw: Any) -> list[FavoriteItem]:
    if not isinstance(raw, list):
        return []
    items: list[FavoriteItem] = []
    seen: set[str] = set()
    for entry in raw:
        if not isinstance(entry, dict) or "id" not in entry:
            continue
        try:
            item = FavoriteItem.from_dict(entry)
        except (TypeError, ValueError):
            continue
        if item.key in seen:
            continue
        seen.add(item.key)
        items.append(item)
    return items
