"""Optimistic update helpers for the order store."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from marketplace.domain.order import Order
from marketplace.stores.orders import OrderStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptimisticEdit:
    """Snapshot taken before an optimistic edit, enough to undo it."""

    order_id: str
    before: Order
    after: Order

    def rollback(self, store: OrderStore) -> bool:
        """Restore ``before`` unless someone else wrote the order since."""
        current = store.get_order_by_id(self.order_id)
        if current is None:
            return False
        if current.version != self.after.version:
            logger.info("Skipping rollback of %s: order changed since the edit", self.order_id)
            return False
        store.apply_remote(self.before)
        return True


def apply_optimistic(store: OrderStore, order_id: str, updates: dict[str, Any]) -> OptimisticEdit | None:
    """Apply ``updates`` through the store and remember how to undo them."""
    before = store.get_order_by_id(order_id)
    if before is None:
        return None
    after = store.update_order(order_id, updates)
    if after is None:
        return None
    return OptimisticEdit(order_id=order_id, before=before, after=after)
