"""Order status transition rules (single source of truth)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from marketplace.core.exceptions import InvalidTransition
from marketplace.domain.order import Order, OrderStatus, PaymentMethod


ALLOWED_TRANSITIONS: Mapping[str, frozenset[str]] = {
    OrderStatus.PENDING: frozenset(
        {
            OrderStatus.CONFIRMED,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.CONFIRMED: frozenset(
        {
            OrderStatus.IN_PROGRESS,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.IN_PROGRESS: frozenset(
        {
            OrderStatus.COMPLETED,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
    }
)


@dataclass(frozen=True, slots=True)
class TransitionValidationResult:
    allowed: bool
    reason: str | None = None


def initial_status(payment_method: str | None, transaction_id: str | None) -> str:
    """Mercado Pago orders that arrive with a transaction are already paid."""
    if payment_method == PaymentMethod.MERCADO_PAGO and transaction_id:
        return OrderStatus.CONFIRMED
    return OrderStatus.PENDING


def validate_order_transition(
    *,
    current_status: str | None,
    target_status: str | None,
) -> TransitionValidationResult:
    """Check ``current -> target`` against the transition matrix."""
    if not target_status:
        return TransitionValidationResult(False, "Target status is missing.")

    target = OrderStatus.normalize(target_status)
    if target is None:
        return TransitionValidationResult(False, f"Unsupported status: {target_status}")

    if current_status is None:
        return TransitionValidationResult(True)

    current = OrderStatus.normalize(current_status)
    if current is None:
        return TransitionValidationResult(False, f"Unsupported current status: {current_status}")

    if current == target:
        return TransitionValidationResult(True)

    if current in TERMINAL_STATUSES:
        return TransitionValidationResult(False, f"Cannot change terminal status '{current}'.")

    if target not in ALLOWED_TRANSITIONS[current]:
        return TransitionValidationResult(False, f"Transition '{current} -> {target}' is not allowed.")

    return TransitionValidationResult(True)


def try_transition(order: Order, new_status: str) -> TransitionValidationResult:
    return validate_order_transition(current_status=order.status, target_status=new_status)


def ensure_transition(order: Order, new_status: str) -> str:
    """Return the normalized target status or raise :class:`InvalidTransition`."""
    result = try_transition(order, new_status)
    if not result.allowed:
        raise InvalidTransition(order.id, order.status, str(new_status), result.reason)
    return OrderStatus.normalize(new_status) or order.status
