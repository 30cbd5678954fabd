"""Local state stores."""

from .auth import AuthStore
from .favorites import FavoritesStore
from .orders import OrderStore

__all__ = ["AuthStore", "FavoritesStore", "OrderStore"]
