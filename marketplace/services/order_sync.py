"""Orders list refresh: remote list -> mapping -> reconciliation."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from marketplace.core.exceptions import ApiError
from marketplace.core.notifications import Notifier
from marketplace.domain.order import Order
from marketplace.domain.order_mapping import map_remote_order, map_remote_orders
from marketplace.integrations.api_client import ApiClient
from marketplace.stores.auth import AuthStore
from marketplace.stores.orders import OrderStore

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    ok: bool
    error_key: str | None = None
    orders: list[Order] = field(default_factory=list)


class OrderSyncService:
    """Keeps the order store in line with the backend on screen focus."""

    def __init__(self, api: ApiClient, orders: OrderStore, auth: AuthStore, notifier: Notifier):
        self._api = api
        self._orders = orders
        self._auth = auth
        self._notifier = notifier

    async def refresh_orders(self, *, is_refresh: bool = False) -> SyncResult:
        """Fetch the user's orders and reconcile them into the store.

        Without a session the store is emptied. On failure local state is left
        untouched. The loading flag is cleared on every path.
        """
        if not is_refresh:
            self._orders.set_loading(True)

        try:
            token = self._auth.token
            if not token:
                self._orders.set_orders([])
                return SyncResult(True)

            started_at = datetime.now(timezone.utc)
            items = await self._api.list_orders(token)
            mapped = map_remote_orders(items)
            self._orders.reconcile_orders(mapped, fetch_started_at=started_at)
            logger.info("Orders refreshed: %s remote records", len(mapped))
            return SyncResult(True, orders=self._orders.orders)
        except ApiError as exc:
            logger.error("Error loading orders: %s", exc)
            self._orders.set_error(exc.message)
            self._notifier.error("Error", "No se pudieron cargar las órdenes")
            return SyncResult(False, "load_failed", orders=self._orders.orders)
        finally:
            self._orders.set_loading(False)

    async def refresh_order(self, order_id: str) -> Order | None:
        """Pull one order from the server into the store; ``None`` on failure."""
        token = self._auth.token
        if not token:
            return None
        try:
            raw = await self._api.get_order(token, order_id)
        except ApiError as exc:
            logger.error("Error loading order %s: %s", order_id, exc)
            return None
        order = map_remote_order(raw)
        if not order.id:
            return None
        return self._orders.apply_remote(order)
