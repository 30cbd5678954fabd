"""Use case: record a payment confirmation coming back from the provider."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from marketplace.core.exceptions import ApiError
from marketplace.core.notifications import Notifier
from marketplace.domain.order import Order, OrderStatus
from marketplace.domain.order_fsm import try_transition
from marketplace.domain.order_mapping import map_remote_order
from marketplace.integrations.api_client import ApiClient
from marketplace.services.reconciliation import apply_optimistic
from marketplace.stores.orders import OrderStore

logger = logging.getLogger(__name__)

FAILED_PAYMENT_STATUSES = frozenset({"rejected", "failed", "cancelled"})


@dataclass
class PaymentDecisionResult:
    ok: bool
    error_key: str | None = None
    order: Order | None = None


async def complete_payment(
    order_id: str,
    transaction_id: str,
    *,
    orders: OrderStore,
    notifier: Notifier,
    api: ApiClient | None = None,
    token: str | None = None,
) -> PaymentDecisionResult:
    """Move the order to ``confirmed`` and stamp the transaction id.

    The local edit is applied first. When the backend is reachable the
    order is re-read and the edit is undone only if the server explicitly
    reports the payment as failed; transport errors keep the local state.
    """
    order = orders.get_order_by_id(order_id)
    if order is None and api is not None and token:
        try:
            remote = map_remote_order(await api.get_order(token, order_id))
        except ApiError as exc:
            logger.warning("Could not fetch order %s for payment: %s", order_id, exc)
        else:
            if remote.id:
                order = orders.apply_remote(remote)
    if order is None:
        return PaymentDecisionResult(False, "not_found")

    if order.status == OrderStatus.CONFIRMED:
        return PaymentDecisionResult(False, "already_processed", order=order)

    check = try_transition(order, OrderStatus.CONFIRMED)
    if not check.allowed:
        logger.warning("Payment for order %s rejected: %s", order.id, check.reason)
        return PaymentDecisionResult(False, "invalid_transition", order=order)

    edit = apply_optimistic(
        orders,
        order.id,
        {"status": OrderStatus.CONFIRMED, "transaction_id": transaction_id},
    )
    if edit is None:
        return PaymentDecisionResult(False, "not_found")

    if api is not None and token:
        try:
            raw = await api.get_order(token, order.id)
        except ApiError as exc:
            logger.warning("Payment of %s not verified with backend: %s", order.id, exc)
        else:
            payment_status = str(raw.get("paymentStatus") or "").lower() if isinstance(raw, dict) else ""
            if payment_status in FAILED_PAYMENT_STATUSES:
                edit.rollback(orders)
                notifier.error("Pago rechazado", "Mercado Pago no confirmó el pago")
                return PaymentDecisionResult(False, "payment_rejected", order=orders.get_order_by_id(order.id))

    notifier.success("Pago completado", f"Transacción {transaction_id}")
    return PaymentDecisionResult(True, order=orders.get_order_by_id(order.id))
