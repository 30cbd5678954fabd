"""Use case: submit the checkout form and create the order on the backend."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from marketplace.application.checkout.booking_form import BookingForm, ServiceBooking, form_errors
from marketplace.core.constants import CHECKOUT_CURRENCY
from marketplace.core.exceptions import ApiError
from marketplace.core.notifications import Notifier
from marketplace.domain.order import Order, PaymentMethod
from marketplace.domain.order_mapping import extract_order_id, map_remote_order
from marketplace.integrations.api_client import ApiClient
from marketplace.stores.orders import OrderStore

logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    ok: bool
    error_key: str | None = None
    order_id: str | None = None
    order: Order | None = None
    errors: dict[str, str] = field(default_factory=dict)
    message: str | None = None


def build_order_payload(
    form: BookingForm,
    booking: ServiceBooking,
    *,
    currency: str,
    client_reference: str | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "serviceId": booking.service_id,
        "serviceTitle": booking.service_name,
        "providerId": booking.provider.id,
        "providerName": booking.provider.name,
        "paymentMethod": PaymentMethod.MERCADO_PAGO,
        "quantity": booking.quantity,
        "amount": booking.total_price,
        "currency": currency,
        "address": form.address,
        "notes": form.notes,
        "contactInfo": {
            "name": form.contact_name,
            "phone": form.contact_phone,
            "email": form.contact_email,
        },
        "bookingDetails": {"quantity": booking.quantity},
    }
    if booking.date and booking.time:
        payload["bookingDetails"].update({"date": booking.date, "time": booking.time})
    if client_reference:
        payload["clientReference"] = client_reference
    return payload


async def submit_booking(
    form_data: BookingForm | dict[str, Any],
    booking: ServiceBooking | dict[str, Any] | None,
    *,
    api: ApiClient,
    orders: OrderStore,
    notifier: Notifier,
    token: str | None,
    currency: str = CHECKOUT_CURRENCY,
) -> CheckoutResult:
    try:
        form = form_data if isinstance(form_data, BookingForm) else BookingForm.model_validate(form_data)
    except ValidationError as exc:
        notifier.error("Error", "Por favor corrige los errores en el formulario")
        return CheckoutResult(False, "invalid_form", errors=form_errors(exc))

    if booking is None:
        notifier.error("Error", "No se encontraron los detalles de la reserva")
        return CheckoutResult(False, "missing_booking")
    if not isinstance(booking, ServiceBooking):
        try:
            booking = ServiceBooking.model_validate(booking)
        except ValidationError as exc:
            notifier.error("Error", "No se encontraron los detalles de la reserva")
            return CheckoutResult(False, "missing_booking", errors=form_errors(exc))

    if not token:
        notifier.error("Autenticación requerida", "Debes iniciar sesión para crear la orden.")
        return CheckoutResult(False, "auth_required")

    reserved = orders.reserve_order(
        {
            "service_id": booking.service_id,
            "service_title": booking.service_name,
            "provider_id": booking.provider.id,
            "provider_name": booking.provider.name,
            "payment_method": PaymentMethod.MERCADO_PAGO,
            "total": booking.total_price,
            "currency": currency,
            "address": form.address,
            "notes": form.notes,
            "scheduled_date": booking.date,
            "scheduled_time": booking.time,
            "contact_info": {
                "name": form.contact_name,
                "phone": form.contact_phone,
                "email": form.contact_email,
            },
            "booking_details": {
                "date": booking.date or "",
                "time": booking.time or "",
                "quantity": booking.quantity,
            },
        }
    )
    reference = reserved.client_reference
    if not reference:
        logger.error("Order %s was reserved without a client reference", reserved.id)
        orders.remove_order(reserved.id)
        notifier.error("Error", "No se pudo procesar la reserva. Intenta de nuevo.")
        return CheckoutResult(False, "create_failed")
    payload = build_order_payload(form, booking, currency=currency, client_reference=reference)

    try:
        created = await api.create_order(token, payload)
    except ApiError as exc:
        logger.error("Error creating booking: %s", exc)
        orders.release_reservation(reference)
        message = exc.message or "No se pudo procesar la reserva. Intenta de nuevo."
        notifier.error("Error", message)
        return CheckoutResult(False, "create_failed", message=message)

    server_id = extract_order_id(created)
    if not server_id:
        logger.error("Backend created an order without an id: %r", created)
        orders.release_reservation(reference)
        notifier.error("Error", "No se pudo procesar la reserva. Intenta de nuevo.")
        return CheckoutResult(False, "create_failed")

    # Keep the locally known fields for anything the server did not echo.
    server_order = map_remote_order({**reserved.to_dict(), **created, "id": server_id})
    confirmed = orders.confirm_reservation(reference, server_order)
    return CheckoutResult(True, order_id=server_id, order=confirmed or server_order)
