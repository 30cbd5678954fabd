"""Order domain types and status enums."""
from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any

from marketplace.core.constants import DEFAULT_CURRENCY


class OrderStatus:
    """Order lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = frozenset({PENDING, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED})

    @classmethod
    def normalize(cls, status: Any) -> str | None:
        """Lower-case known statuses; ``None`` for anything unknown."""
        if status is None:
            return None
        value = str(status).strip().lower().replace("-", "_")
        return value if value in cls.ALL else None


class PaymentMethod:
    """Payment methods accepted by the backend."""

    YAPE = "yape"
    PLIN = "plin"
    MERCADO_PAGO = "mercado_pago"
    BANK = "bank"

    ALL = frozenset({YAPE, PLIN, MERCADO_PAGO, BANK})
    FALLBACK = BANK

    @classmethod
    def normalize(cls, method: Any) -> str:
        value = str(method or "").strip().lower()
        return value if value in cls.ALL else cls.FALLBACK


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: Any) -> datetime | None:
    """Parse ISO strings (``Z`` suffix allowed) and epoch milliseconds."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (TypeError, ValueError, OverflowError, OSError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def coerce_amount(*candidates: Any) -> float:
    """First parseable candidate as a non-negative finite float, else 0.

    ``None`` and unparseable values fall through to the next candidate.
    """
    for value in candidates:
        if value is None:
            continue
        try:
            amount = float(value)
        except (TypeError, ValueError):
            continue
        if math.isnan(amount) or math.isinf(amount) or amount < 0:
            return 0.0
        return amount
    return 0.0


def generate_order_id() -> str:
    """``order_<epoch ms>_<0..999>``; uniqueness is checked by the store."""
    return f"order_{int(time.time() * 1000)}_{random.randint(0, 999)}"


@dataclass(frozen=True)
class ContactInfo:
    """Contact snapshot copied into the order at creation time."""

    name: str = ""
    phone: str = ""
    email: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "phone": self.phone, "email": self.email}

    @classmethod
    def from_dict(cls, data: Any) -> ContactInfo:
        if isinstance(data, ContactInfo):
            return data
        if not isinstance(data, dict):
            return cls()
        return cls(
            name=str(data.get("name") or ""),
            phone=str(data.get("phone") or ""),
            email=str(data.get("email") or ""),
        )


@dataclass(frozen=True)
class BookingDetails:
    date: str = ""
    time: str = ""
    quantity: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "time": self.time, "quantity": self.quantity}

    @classmethod
    def from_dict(cls, data: Any) -> BookingDetails | None:
        if isinstance(data, BookingDetails):
            return data
        if not isinstance(data, dict):
            return None
        try:
            quantity = int(data.get("quantity") or 1)
        except (TypeError, ValueError):
            quantity = 1
        return cls(
            date=str(data.get("date") or ""),
            time=str(data.get("time") or ""),
            quantity=quantity,
        )


# Wire (camelCase) name -> attribute name.
FIELD_ALIASES: dict[str, str] = {
    "serviceId": "service_id",
    "serviceTitle": "service_title",
    "serviceName": "service_name",
    "providerName": "provider_name",
    "providerId": "provider_id",
    "paymentMethod": "payment_method",
    "transactionId": "transaction_id",
    "createdAt": "created_at",
    "scheduledDate": "scheduled_date",
    "scheduledTime": "scheduled_time",
    "contactInfo": "contact_info",
    "bookingDetails": "booking_details",
    "clientReference": "client_reference",
    "updatedAt": "updated_at",
}

IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


@dataclass(frozen=True)
class Order:
    """One booked service transaction."""

    id: str
    service_id: str
    service_title: str
    provider_name: str
    provider_id: str
    total: float
    payment_method: str
    address: str = ""
    contact_info: ContactInfo = field(default_factory=ContactInfo)
    service_name: str = ""
    status: str = OrderStatus.PENDING
    currency: str = DEFAULT_CURRENCY
    created_at: str = field(default_factory=now_iso)
    transaction_id: str | None = None
    scheduled_date: str | None = None
    scheduled_time: str | None = None
    description: str | None = None
    notes: str | None = None
    booking_details: BookingDetails | None = None
    client_reference: str | None = None
    updated_at: str | None = None
    version: int = 0

    def __post_init__(self) -> None:
        if self.total < 0:
            raise ValueError(f"Order total must be non-negative, got {self.total}")
        if not self.service_name:
            object.__setattr__(self, "service_name", self.service_title)

    @property
    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    @property
    def updated_at_dt(self) -> datetime | None:
        return parse_timestamp(self.updated_at)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "serviceId": self.service_id,
            "serviceTitle": self.service_title,
            "serviceName": self.service_name,
            "providerName": self.provider_name,
            "providerId": self.provider_id,
            "status": self.status,
            "total": float(self.total),
            "currency": self.currency,
            "paymentMethod": self.payment_method,
            "createdAt": self.created_at,
            "address": self.address,
            "contactInfo": self.contact_info.to_dict(),
            "version": self.version,
        }
        optional = {
            "transactionId": self.transaction_id,
            "scheduledDate": self.scheduled_date,
            "scheduledTime": self.scheduled_time,
            "description": self.description,
            "notes": self.notes,
            "bookingDetails": self.booking_details.to_dict() if self.booking_details else None,
            "clientReference": self.client_reference,
            "updatedAt": self.updated_at,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Order:
        """Rebuild an order written by :meth:`to_dict` (persisted state)."""
        return cls(
            id=str(data["id"]),
            service_id=str(data.get("serviceId", "")),
            service_title=str(data.get("serviceTitle", "")),
            service_name=str(data.get("serviceName", "")),
            provider_name=str(data.get("providerName", "")),
            provider_id=str(data.get("providerId", "")),
            status=OrderStatus.normalize(data.get("status")) or OrderStatus.PENDING,
            total=coerce_amount(data.get("total")),
            currency=str(data.get("currency") or DEFAULT_CURRENCY),
            payment_method=PaymentMethod.normalize(data.get("paymentMethod")),
            created_at=str(data.get("createdAt") or now_iso()),
            address=str(data.get("address", "")),
            contact_info=ContactInfo.from_dict(data.get("contactInfo")),
            transaction_id=data.get("transactionId"),
            scheduled_date=data.get("scheduledDate"),
            scheduled_time=data.get("scheduledTime"),
            description=data.get("description"),
            notes=data.get("notes"),
            booking_details=BookingDetails.from_dict(data.get("bookingDetails")),
            client_reference=data.get("clientReference"),
            updated_at=data.get("updatedAt"),
            version=int(data.get("version", 0) or 0),
        )

    def merged(self, updates: dict[str, Any]) -> Order:
        """Return a copy with ``updates`` applied.

        Keys may use attribute or wire names. ``id`` and ``created_at`` are
        never overwritten; unknown keys are ignored.
        """
        changes = normalize_updates(updates)
        return replace(self, **changes) if changes else self


_ORDER_FIELDS = frozenset(f.name for f in fields(Order))


def normalize_updates(updates: dict[str, Any]) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    for key, value in updates.items():
        name = FIELD_ALIASES.get(key, key)
        if name not in _ORDER_FIELDS or name in IMMUTABLE_FIELDS:
            continue
        if name == "contact_info":
            value = ContactInfo.from_dict(value)
        elif name == "booking_details" and value is not None:
            value = BookingDetails.from_dict(value)
        changes[name] = value
    return changes
