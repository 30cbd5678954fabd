"""Use case: assemble what the confirmation screen shows after payment."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from marketplace.core.constants import FALLBACK_PROVIDER_NAME, FALLBACK_SERVICE_TITLE
from marketplace.core.exceptions import ApiError, InvalidTransition
from marketplace.domain.order import (
    ContactInfo,
    OrderStatus,
    PaymentMethod,
    coerce_amount,
    parse_timestamp,
)
from marketplace.domain.order_mapping import extract_order_id
from marketplace.integrations.api_client import ApiClient
from marketplace.stores.orders import OrderStore

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "No especificada"


@dataclass
class ConfirmationDetails:
    booking_id: str
    service_name: str
    provider_name: str
    date: str
    time: str
    address: str
    total_amount: float
    payment_method: str
    status: str
    transaction_id: str | None = None
    contact_info: ContactInfo = field(default_factory=ContactInfo)
    source: str = "fallback"


def _split_timestamp(value: Any) -> tuple[str, str]:
    moment = parse_timestamp(value) or datetime.now(timezone.utc)
    return moment.date().isoformat(), moment.strftime("%H:%M")


async def _from_backend(
    api: ApiClient,
    token: str,
    order_id: str,
    payment_method: str | None,
    transaction_id: str | None,
) -> ConfirmationDetails:
    order = await api.get_order(token, order_id)
    invoice = await api.get_order_invoice(token, order_id)
    order = order if isinstance(order, dict) else {}
    service = invoice.get("service") if isinstance(invoice, dict) else None
    service = service if isinstance(service, dict) else {}

    date, time = _split_timestamp(order.get("createdAt"))
    if order.get("paymentStatus") == "completed":
        status = OrderStatus.CONFIRMED
    else:
        status = OrderStatus.normalize(order.get("status")) or OrderStatus.PENDING

    return ConfirmationDetails(
        booking_id=extract_order_id(order) or order_id,
        service_name=str(service.get("title") or FALLBACK_SERVICE_TITLE),
        provider_name=FALLBACK_PROVIDER_NAME,
        date=date,
        time=time,
        address=str(service.get("locationText") or ""),
        total_amount=coerce_amount(order.get("amount"), order.get("total")),
        payment_method=str(order.get("paymentMethod") or payment_method or PaymentMethod.MERCADO_PAGO),
        status=status,
        transaction_id=transaction_id,
        source="remote",
    )


def _from_store(
    orders: OrderStore,
    booking_id: str,
    transaction_id: str | None,
    success: bool,
) -> ConfirmationDetails | None:
    order = orders.get_order_by_id(booking_id)
    if order is None:
        return None

    if success and transaction_id:
        try:
            order = orders.transition_order(
                booking_id, OrderStatus.CONFIRMED, transaction_id=transaction_id
            )
        except InvalidTransition as exc:
            logger.warning("Not confirming order %s: %s", booking_id, exc.message)

    details = order.booking_details
    return ConfirmationDetails(
        booking_id=order.id,
        service_name=order.service_title or order.service_name,
        provider_name=order.provider_name,
        date=order.scheduled_date or (details.date if details and details.date else NOT_SPECIFIED),
        time=order.scheduled_time or (details.time if details and details.time else NOT_SPECIFIED),
        address=order.address,
        total_amount=order.total,
        payment_method=order.payment_method,
        status=OrderStatus.CONFIRMED if success else order.status,
        transaction_id=transaction_id or order.transaction_id,
        contact_info=order.contact_info,
        source="local",
    )


def _fallback(
    booking_id: str,
    payment_method: str | None,
    transaction_id: str | None,
    success: bool,
) -> ConfirmationDetails:
    date, time = _split_timestamp(None)
    return ConfirmationDetails(
        booking_id=booking_id,
        service_name=FALLBACK_SERVICE_TITLE,
        provider_name=FALLBACK_PROVIDER_NAME,
        date=date,
        time=time,
        address="",
        total_amount=0.0,
        payment_method=payment_method or "",
        status=OrderStatus.CONFIRMED if success else OrderStatus.PENDING,
        transaction_id=transaction_id,
    )


async def load_confirmation(
    *,
    api: ApiClient,
    orders: OrderStore,
    token: str | None,
    order_id: str | None = None,
    booking_id: str | None = None,
    transaction_id: str | None = None,
    payment_method: str | None = None,
    success: bool = False,
) -> ConfirmationDetails | None:
    """Backend first, then the local store, then a generic record.

    Returns ``None`` only when neither id was given. Never raises.
    """
    if order_id:
        try:
            return await _from_backend(api, token or "", str(order_id), payment_method, transaction_id)
        except ApiError as exc:
            logger.error("Error cargando detalles de la orden %s: %s", order_id, exc)
        booking_id = booking_id or order_id

    if not booking_id:
        return None

    local = _from_store(orders, str(booking_id), transaction_id, success)
    if local is not None:
        return local
    return _fallback(str(booking_id), payment_method, transaction_id, success)
