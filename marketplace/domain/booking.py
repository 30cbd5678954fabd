"""Booking input collected by the checkout flow."""
from __future__ import annotations

from dataclasses import dataclass

from marketplace.core.exceptions import ValidationException
from marketplace.domain.order import PaymentMethod


@dataclass(frozen=True)
class BookingData:
    """Everything needed to materialize an order from a service listing.

    ``date`` and ``time`` are the schedule the user picked; they are required
    and copied verbatim into the order.
    """

    date: str
    time: str
    address: str
    contact_name: str
    contact_phone: str
    contact_email: str
    quantity: int
    total_price: float
    payment_method: str
    notes: str | None = None
    transaction_id: str | None = None

    def __post_init__(self) -> None:
        errors: dict[str, str] = {}
        if not str(self.date or "").strip():
            errors["date"] = "Scheduled date is required"
        if not str(self.time or "").strip():
            errors["time"] = "Scheduled time is required"
        if self.quantity < 1:
            errors["quantity"] = "Quantity must be at least 1"
        if self.total_price < 0:
            errors["total_price"] = "Total price must be non-negative"
        if self.payment_method not in PaymentMethod.ALL:
            errors["payment_method"] = f"Unsupported payment method: {self.payment_method}"
        if errors:
            raise ValidationException("Invalid booking data", errors)

    @classmethod
    def from_dict(cls, data: dict) -> BookingData:
        """Accept both ``contactName`` and ``contact_name`` style keys."""

        def pick(snake: str, camel: str, default=None):
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        return cls(
            date=pick("date", "date", ""),
            time=pick("time", "time", ""),
            address=pick("address", "address", ""),
            contact_name=pick("contact_name", "contactName", ""),
            contact_phone=pick("contact_phone", "contactPhone", ""),
            contact_email=pick("contact_email", "contactEmail", ""),
            quantity=int(pick("quantity", "quantity", 1)),
            total_price=float(pick("total_price", "totalPrice", 0)),
            payment_method=pick("payment_method", "paymentMethod", PaymentMethod.BANK),
            notes=pick("notes", "notes"),
            transaction_id=pick("transaction_id", "transactionId"),
        )
