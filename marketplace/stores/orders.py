"""Local order store: the in-process authority for the user's orders.

Mutations are synchronous and persist the order list after each change.
Network reconciliation happens outside (see ``marketplace.services`` and
``marketplace.application.checkout``); this module only offers the merge
primitives they need.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from marketplace.core.constants import (
    DEFAULT_CURRENCY,
    ORDERS_STORAGE_KEY,
    ORDERS_STORAGE_VERSION,
    RECENT_ORDERS_LIMIT,
)
from marketplace.core.exceptions import OrderNotFoundException, ValidationException
from marketplace.core.persistence import JsonPersistence
from marketplace.domain.booking import BookingData
from marketplace.domain.order import (
    BookingDetails,
    ContactInfo,
    Order,
    OrderStatus,
    generate_order_id,
    normalize_updates,
    now_iso,
    parse_timestamp,
)
from marketplace.domain.order_fsm import ensure_transition, initial_status

logger = logging.getLogger(__name__)

Listener = Callable[["OrderStore"], None]


class OrderStore:
    """Orders visible to the current user, most recent first."""

    def __init__(
        self,
        persistence: JsonPersistence | None = None,
        *,
        enforce_transitions: bool = True,
        default_currency: str = DEFAULT_CURRENCY,
    ):
        self._persistence = persistence
        self.enforce_transitions = enforce_transitions
        self.default_currency = default_currency
        self._orders: list[Order] = []
        self._pending_refs: set[str] = set()
        self._listeners: list[Listener] = []
        self.loading = False
        self.error: str | None = None
        self.is_hydrated = False

    # ---------- state plumbing ----------

    @property
    def orders(self) -> list[Order]:
        return list(self._orders)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _commit(self, orders: list[Order], *, persist: bool = True) -> None:
        self._orders = orders
        self.error = None
        if persist:
            self._persist()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as exc:
                logger.error("Order store listener failed: %s", exc)

    def _persist(self) -> None:
        if not self._persistence:
            return
        payload = {
            "state": {"orders": [order.to_dict() for order in self._orders]},
            "version": ORDERS_STORAGE_VERSION,
        }
        self._persistence.save(ORDERS_STORAGE_KEY, payload)

    def hydrate(self) -> int:
        """Load persisted orders; returns how many were restored."""
        if not self._persistence:
            self.is_hydrated = True
            return 0

        payload = self._persistence.load(ORDERS_STORAGE_KEY)
        orders: list[Order] = []
        if isinstance(payload, dict) and payload.get("version") == ORDERS_STORAGE_VERSION:
            state = payload.get("state")
            raw_orders = state.get("orders") if isinstance(state, dict) else None
            seen: set[str] = set()
            for raw in raw_orders if isinstance(raw_orders, list) else []:
                try:
                    order = Order.from_dict(raw)
                except (KeyError, TypeError, ValueError, AttributeError) as exc:
                    logger.warning("Skipping corrupt persisted order: %s", exc)
                    continue
                if order.id in seen:
                    continue
                seen.add(order.id)
                orders.append(order)
        elif payload is not None:
            logger.warning("Discarding orders storage with unsupported schema: %r", type(payload).__name__)

        self._orders = orders
        self.is_hydrated = True
        logger.info("Order store hydrated with %s orders", len(orders))
        self._notify()
        return len(orders)

    def _index_of(self, order_id: str) -> int:
        for idx, order in enumerate(self._orders):
            if order.id == order_id:
                return idx
        return -1

    def _new_id(self) -> str:
        existing = {order.id for order in self._orders}
        order_id = generate_order_id()
        while order_id in existing:
            order_id = generate_order_id()
        return order_id

    @staticmethod
    def _build(order_id: str, data: dict[str, Any]) -> Order:
        fields = normalize_updates(data)
        fields.setdefault("status", OrderStatus.PENDING)
        status = OrderStatus.normalize(fields["status"])
        if status is None:
            raise ValidationException(f"Unsupported status: {fields['status']}")
        fields["status"] = status
        try:
            return Order(id=order_id, created_at=now_iso(), **fields)
        except (TypeError, ValueError) as exc:
            raise ValidationException(f"Invalid order data: {exc}") from exc

    # ---------- CRUD ----------

    def add_order(self, data: dict[str, Any]) -> str:
        """Create an order locally (no remote call) and return its id."""
        order = self._build(self._new_id(), data)
        self._commit([order, *self._orders])
        logger.info("Order %s added locally", order.id)
        return order.id

    def create_booking_from_service(
        self,
        service_id: str,
        service_title: str,
        provider_name: str,
        provider_id: str,
        booking_data: BookingData | dict[str, Any],
    ) -> str:
        if isinstance(booking_data, dict):
            booking_data = BookingData.from_dict(booking_data)

        order = Order(
            id=self._new_id(),
            service_id=service_id,
            service_title=service_title,
            service_name=service_title,
            provider_name=provider_name,
            provider_id=provider_id,
            status=initial_status(booking_data.payment_method, booking_data.transaction_id),
            total=booking_data.total_price,
            currency=self.default_currency,
            payment_method=booking_data.payment_method,
            transaction_id=booking_data.transaction_id,
            created_at=now_iso(),
            scheduled_date=booking_data.date,
            scheduled_time=booking_data.time,
            address=booking_data.address,
            notes=booking_data.notes,
            contact_info=ContactInfo(
                name=booking_data.contact_name,
                phone=booking_data.contact_phone,
                email=booking_data.contact_email,
            ),
            booking_details=BookingDetails(
                date=booking_data.date,
                time=booking_data.time,
                quantity=booking_data.quantity,
            ),
        )
        self._commit([order, *self._orders])
        logger.info("Booking %s created for service %s (%s)", order.id, service_id, order.status)
        return order.id

    def update_order(self, order_id: str, updates: dict[str, Any]) -> Order | None:
        """Merge ``updates`` into the order; unknown ids are ignored.

        A ``status`` key is checked against the transition table when the
        store enforces transitions and raises ``InvalidTransition``. Field values
        the order rejects raise ``ValidationException`` and leave it untouched.
        """
        idx = self._index_of(order_id)
        if idx < 0:
            return None

        current = self._orders[idx]
        changes = dict(updates)
        if "status" in changes:
            if self.enforce_transitions:
                changes["status"] = ensure_transition(current, changes["status"])
            else:
                changes["status"] = OrderStatus.normalize(changes["status"]) or changes["status"]

        try:
            updated = current.merged(
                {**changes, "version": current.version + 1, "updated_at": now_iso()}
            )
        except (TypeError, ValueError) as exc:
            raise ValidationException(f"Invalid order data: {exc}") from exc
        orders = list(self._orders)
        orders[idx] = updated
        self._commit(orders)
        return updated

    def transition_order(self, order_id: str, new_status: str, **extra: Any) -> Order:
        """Validated status change; raises for unknown ids and illegal moves."""
        order = self.get_order_by_id(order_id)
        if order is None:
            raise OrderNotFoundException(order_id)
        status = ensure_transition(order, new_status)
        updated = self.update_order(order_id, {**extra, "status": status})
        if updated is None:
            raise OrderNotFoundException(order_id)
        return updated

    def remove_order(self, order_id: str) -> None:
        self._commit([order for order in self._orders if order.id != order_id])

    def get_order_by_id(self, order_id: str) -> Order | None:
        idx = self._index_of(order_id)
        return self._orders[idx] if idx >= 0 else None

    def get_orders_by_status(self, status: str) -> list[Order]:
        return [order for order in self._orders if order.status == status]

    def set_orders(self, orders: Iterable[Order]) -> None:
        """Replace the whole set with an authoritative list."""
        self._pending_refs.clear()
        self._commit(list(orders))

    def clear_orders(self) -> None:
        self._pending_refs.clear()
        self._commit([])

    def set_loading(self, loading: bool) -> None:
        self.loading = loading
        self._notify()

    def set_error(self, error: str | None) -> None:
        self.error = error
        self._notify()

    # ---------- selectors ----------

    def pending_orders(self) -> list[Order]:
        return self.get_orders_by_status(OrderStatus.PENDING)

    def completed_orders(self) -> list[Order]:
        return self.get_orders_by_status(OrderStatus.COMPLETED)

    def orders_count(self) -> int:
        return len(self._orders)

    def recent_orders(self, limit: int = RECENT_ORDERS_LIMIT) -> list[Order]:
        def _created(order: Order) -> datetime:
            return parse_timestamp(order.created_at) or datetime.min.replace(tzinfo=timezone.utc)

        return sorted(self._orders, key=_created, reverse=True)[:limit]

    # ---------- reservations ----------

    def reserve_order(self, data: dict[str, Any]) -> Order:
        """Insert an optimistic order tagged with a fresh correlation id."""
        reference = uuid.uuid4().hex
        order = self._build(self._new_id(), {**data, "client_reference": reference})
        self._pending_refs.add(reference)
        self._commit([order, *self._orders])
        logger.info("Order %s reserved (ref=%s)", order.id, reference)
        return order

    def _index_of_reference(self, client_reference: str) -> int:
        for idx, order in enumerate(self._orders):
            if order.client_reference == client_reference:
                return idx
        return -1

    def confirm_reservation(self, client_reference: str, server_order: Order) -> Order | None:
        """Swap the reserved record for the server's, matched by correlation id."""
        idx = self._index_of_reference(client_reference)
        if idx < 0:
            logger.warning("Reservation %s no longer in store", client_reference)
            return None

        confirmed = server_order.merged({"client_reference": client_reference})
        if not confirmed.updated_at:
            confirmed = confirmed.merged({"updated_at": now_iso()})
        orders = list(self._orders)
        orders[idx] = confirmed
        # A refresh may already have pulled the server record in.
        orders = [
            order for pos, order in enumerate(orders) if pos == idx or order.id != confirmed.id
        ]
        self._pending_refs.discard(client_reference)
        self._commit(orders)
        logger.info("Reservation %s confirmed as order %s", client_reference, confirmed.id)
        return confirmed

    def release_reservation(self, client_reference: str) -> bool:
        """Roll back a reservation whose server call failed."""
        self._pending_refs.discard(client_reference)
        idx = self._index_of_reference(client_reference)
        if idx < 0:
            return False
        orders = list(self._orders)
        released = orders.pop(idx)
        self._commit(orders)
        logger.info("Reservation %s released (order %s)", client_reference, released.id)
        return True

    def has_pending_reservation(self, client_reference: str) -> bool:
        return client_reference in self._pending_refs

    # ---------- reconciliation ----------

    def apply_remote(self, order: Order) -> Order:
        """Upsert a server record without transition checks."""
        if not order.updated_at:
            order = order.merged({"updated_at": now_iso()})
        idx = self._index_of(order.id)
        orders = list(self._orders)
        if idx >= 0:
            order = order.merged(
                {"client_reference": order.client_reference or orders[idx].client_reference}
            )
            orders[idx] = order
        else:
            orders.insert(0, order)
        self._commit(orders)
        return order

    def reconcile_orders(
        self,
        remote_orders: Iterable[Order],
        *,
        fetch_started_at: datetime | None = None,
    ) -> None:
        """Adopt the server's list, last writer wins per order.

        A local record survives when it was written after the remote record's
        ``updated_at`` or after ``fetch_started_at`` (edited while the list
        request was in flight). Reservations still waiting for the server are
        kept in front.
        """
        local_by_id = {order.id: order for order in self._orders}
        merged: list[Order] = []
        seen: set[str] = set()
        for remote in remote_orders:
            if not remote.id or remote.id in seen:
                continue
            seen.add(remote.id)
            local = local_by_id.get(remote.id)
            if local is not None and _local_wins(local, remote, fetch_started_at):
                merged.append(local)
            else:
                merged.append(remote)

        pending = [
            order
            for order in self._orders
            if order.client_reference in self._pending_refs and order.id not in seen
        ]
        self._commit(pending + merged)


def _local_wins(local: Order, remote: Order, fetch_started_at: datetime | None) -> bool:
    local_ts = local.updated_at_dt
    if local_ts is None:
        return False
    remote_ts = remote.updated_at_dt
    if remote_ts is not None and local_ts > remote_ts:
        return True
    return fetch_started_at is not None and local_ts > fetch_started_at
