"""Checkout -> payment -> confirmation use cases."""

from .booking_form import BookingForm, Provider, ServiceBooking
from .complete_payment import PaymentDecisionResult, complete_payment
from .load_confirmation import ConfirmationDetails, load_confirmation
from .start_payment import PaymentStartResult, extract_init_point, start_payment
from .submit_booking import CheckoutResult, build_order_payload, submit_booking

__all__ = [
    "BookingForm",
    "Provider",
    "ServiceBooking",
    "CheckoutResult",
    "ConfirmationDetails",
    "PaymentDecisionResult",
    "PaymentStartResult",
    "build_order_payload",
    "complete_payment",
    "extract_init_point",
    "load_confirmation",
    "start_payment",
    "submit_booking",
]
