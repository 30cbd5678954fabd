"""Application bootstrap wiring storage, API client and stores."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from marketplace.application.checkout import (
    BookingForm,
    CheckoutResult,
    ConfirmationDetails,
    PaymentDecisionResult,
    PaymentStartResult,
    ServiceBooking,
    complete_payment,
    load_confirmation,
    start_payment,
    submit_booking,
)
from marketplace.core.config import Settings, load_settings
from marketplace.core.kv_store import KeyValueStore, create_kv_store
from marketplace.core.notifications import Notifier
from marketplace.core.persistence import JsonPersistence, PersistencePolicy
from marketplace.integrations.api_client import ApiClient
from marketplace.services.order_sync import OrderSyncService, SyncResult
from marketplace.stores.auth import AuthStore
from marketplace.stores.favorites import FavoritesStore
from marketplace.stores.orders import OrderStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


@dataclass
class AppContext:
    """Owns every store instance; the UI layer holds one of these."""

    settings: Settings
    kv_store: KeyValueStore
    api: ApiClient
    notifier: Notifier
    orders: OrderStore
    favorites: FavoritesStore
    auth: AuthStore
    order_sync: OrderSyncService

    def start(self) -> None:
        """Restore persisted state in dependency order."""
        self.auth.load_persisted_data()
        self.orders.hydrate()
        self.favorites.set_user_scope(self.auth.user_id)
        self.favorites.load_persisted_favorites()

    async def close(self) -> None:
        await self.api.close()

    async def refresh_orders(self, *, is_refresh: bool = False) -> SyncResult:
        return await self.order_sync.refresh_orders(is_refresh=is_refresh)

    async def submit_booking(
        self,
        form: BookingForm | dict[str, Any],
        booking: ServiceBooking | dict[str, Any] | None,
    ) -> CheckoutResult:
        return await submit_booking(
            form,
            booking,
            api=self.api,
            orders=self.orders,
            notifier=self.notifier,
            token=self.auth.token,
            currency=self.settings.checkout_currency,
        )

    async def start_payment(
        self, *, order_id: str | None = None, service_id: str | None = None
    ) -> PaymentStartResult:
        return await start_payment(
            api=self.api,
            notifier=self.notifier,
            token=self.auth.token,
            order_id=order_id,
            service_id=service_id,
        )

    async def complete_payment(self, order_id: str, transaction_id: str) -> PaymentDecisionResult:
        return await complete_payment(
            order_id,
            transaction_id,
            orders=self.orders,
            notifier=self.notifier,
            api=self.api,
            token=self.auth.token,
        )

    async def load_confirmation(self, **params: Any) -> ConfirmationDetails | None:
        return await load_confirmation(
            api=self.api, orders=self.orders, token=self.auth.token, **params
        )


def build_context(
    settings: Settings | None = None,
    *,
    kv_store: KeyValueStore | None = None,
    api: ApiClient | None = None,
) -> AppContext:
    """Create the client runtime components from configuration."""
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    kv_store = kv_store if kv_store is not None else create_kv_store(settings.redis_url)
    api = api or ApiClient(settings.api_url, timeout_seconds=settings.api_timeout_seconds)
    persistence = JsonPersistence(kv_store, PersistencePolicy.DEFAULT)
    notifier = Notifier()

    orders = OrderStore(
        persistence,
        enforce_transitions=settings.enforce_order_transitions,
        default_currency=settings.default_currency,
    )
    favorites = FavoritesStore(persistence)
    auth = AuthStore(api, persistence, notifier, favorites=favorites, orders=orders)
    order_sync = OrderSyncService(api, orders, auth, notifier)

    logger.info("Client context ready (api=%s, redis=%s)", settings.api_url, settings.uses_redis)
    return AppContext(
        settings=settings,
        kv_store=kv_store,
        api=api,
        notifier=notifier,
        orders=orders,
        favorites=favorites,
        auth=auth,
        order_sync=order_sync,
    )
