"""Mapping of raw backend order records into :class:`Order`.

The backend is not strict about field names or presence, so every function
here is total: any input produces a structurally valid order.
"""
from __future__ import annotations

from typing import Any

from marketplace.core.constants import (
    DEFAULT_CURRENCY,
    FALLBACK_PROVIDER_NAME,
    FALLBACK_SERVICE_TITLE,
)
from marketplace.domain.order import (
    BookingDetails,
    ContactInfo,
    Order,
    OrderStatus,
    PaymentMethod,
    coerce_amount,
    now_iso,
)


def _text(value: Any, default: str = "") -> str:
    if value is None or value == "":
        return default
    if isinstance(value, (dict, list)):
        return default
    return str(value)


def _optional_text(value: Any) -> str | None:
    text = _text(value)
    return text or None


def extract_order_id(raw: Any) -> str:
    """Server records carry ``id``, ``orderId`` or a Mongo ``_id``."""
    if not isinstance(raw, dict):
        return ""
    for key in ("id", "orderId", "_id"):
        value = raw.get(key)
        if isinstance(value, dict):
            value = value.get("$oid")
        if value not in (None, ""):
            return str(value)
    return ""


def map_remote_order(raw: Any) -> Order:
    data: dict[str, Any] = raw if isinstance(raw, dict) else {}

    title = _text(data.get("serviceTitle")) or _text(data.get("serviceName"), FALLBACK_SERVICE_TITLE)
    name = _text(data.get("serviceName")) or title
    version = data.get("version")

    return Order(
        id=extract_order_id(data),
        service_id=_text(data.get("serviceId")),
        service_title=title,
        service_name=name,
        provider_name=_text(data.get("providerName"), FALLBACK_PROVIDER_NAME),
        provider_id=_text(data.get("providerId")),
        status=OrderStatus.normalize(data.get("status")) or OrderStatus.PENDING,
        total=coerce_amount(data.get("total"), data.get("amount")),
        currency=_text(data.get("currency"), DEFAULT_CURRENCY),
        payment_method=PaymentMethod.normalize(data.get("paymentMethod")),
        transaction_id=_optional_text(data.get("transactionId")),
        created_at=_text(data.get("createdAt")) or now_iso(),
        scheduled_date=_optional_text(data.get("scheduledDate")),
        scheduled_time=_optional_text(data.get("scheduledTime")),
        address=_text(data.get("address")),
        description=_text(data.get("description")) or _text(data.get("notes")),
        notes=_optional_text(data.get("notes")),
        contact_info=ContactInfo.from_dict(data.get("contactInfo")),
        booking_details=BookingDetails.from_dict(data.get("bookingDetails")),
        client_reference=_optional_text(data.get("clientReference")),
        updated_at=_optional_text(data.get("updatedAt")),
        version=version if isinstance(version, int) and not isinstance(version, bool) else 0,
    )


def map_remote_orders(items: Any) -> list[Order]:
    """Map a list payload; anything that is not a list maps to ``[]``."""
    if isinstance(items, dict):
        for key in ("orders", "items", "data"):
            if isinstance(items.get(key), list):
                items = items[key]
                break
    if not isinstance(items, list):
        return []
    return [map_remote_order(item) for item in items]
