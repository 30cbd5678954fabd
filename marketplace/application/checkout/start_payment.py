"""Use case: open a Mercado Pago checkout for an order or a service."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from marketplace.core.exceptions import ApiError, PaymentUnavailableException
from marketplace.core.notifications import Notifier
from marketplace.integrations.api_client import ApiClient

logger = logging.getLogger(__name__)

# Places the backend has been seen to put the checkout URL, in priority order.
_INIT_POINT_PATHS: tuple[tuple[str, ...], ...] = (
    ("init_point",),
    ("sandbox_init_point",),
    ("preference", "init_point"),
    ("preference", "sandbox_init_point"),
    ("url",),
    ("data", "init_point"),
)


@dataclass
class PaymentStartResult:
    ok: bool
    error_key: str | None = None
    payment_url: str | None = None


def extract_init_point(preference: Any) -> str:
    """Return the checkout URL or raise :class:`PaymentUnavailableException`."""
    for path in _INIT_POINT_PATHS:
        value: Any = preference
        for key in path:
            value = value.get(key) if isinstance(value, dict) else None
        if isinstance(value, str) and value.strip():
            return value.strip()
    raise PaymentUnavailableException(
        "Preferencia creada sin URL inicial. Verifica la configuración de Mercado Pago en el backend."
    )


async def start_payment(
    *,
    api: ApiClient,
    notifier: Notifier,
    token: str | None,
    order_id: str | None = None,
    service_id: str | None = None,
) -> PaymentStartResult:
    if order_id:
        payload = {"orderId": str(order_id)}
    elif service_id:
        payload = {"serviceId": str(service_id)}
    else:
        logger.error("Payment requested without orderId or serviceId")
        notifier.error("Error", "Falta serviceId para crear preferencia")
        return PaymentStartResult(False, "missing_reference")

    try:
        preference = await api.create_mercado_pago_preference(token or "", payload)
        payment_url = extract_init_point(preference)
    except PaymentUnavailableException as exc:
        logger.error("No init point in Mercado Pago preference: %r", preference)
        notifier.error("Mercado Pago no disponible", exc.message)
        return PaymentStartResult(False, "no_init_point")
    except ApiError as exc:
        logger.error("Mercado Pago preference failed: %s", exc)
        notifier.error(
            "Mercado Pago no disponible",
            "El pago con Mercado Pago no está configurado en el servidor.",
        )
        return PaymentStartResult(False, "service_unavailable")

    return PaymentStartResult(True, payment_url=payment_url)
