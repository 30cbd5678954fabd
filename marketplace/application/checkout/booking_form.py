"""Checkout form and booking summary models.

Validation happens here, at the boundary, so the use cases can trust their
input.
"""
from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class BookingForm(BaseModel):
    """Contact and address data typed by the client at checkout."""

    contact_name: str = Field(..., description="Contact name")
    contact_phone: str = Field(..., description="Contact phone")
    contact_email: str = Field(..., description="Contact email")
    address: str = Field(..., description="Service address")
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("contact_name", "address")
    @classmethod
    def required_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Este campo es requerido")
        return v.strip()

    @field_validator("contact_phone")
    @classmethod
    def valid_phone(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El teléfono de contacto es requerido")
        if not PHONE_RE.match(v):
            raise ValueError("Formato de teléfono inválido")
        return v

    @field_validator("contact_email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El email de contacto es requerido")
        if not EMAIL_RE.match(v):
            raise ValueError("Formato de email inválido")
        return v


class Provider(BaseModel):
    id: str
    name: str


class ServiceBooking(BaseModel):
    """What is being booked: the service, its provider and the price."""

    model_config = ConfigDict(populate_by_name=True)

    service_id: str = Field(..., alias="serviceId")
    service_name: str = Field(..., alias="serviceName")
    provider: Provider
    quantity: int = Field(1, ge=1)
    total_price: float = Field(..., ge=0, alias="totalPrice")
    date: Optional[str] = None
    time: Optional[str] = None


def form_errors(exc: ValidationError) -> dict[str, str]:
    """Flatten pydantic errors into ``{field: message}``."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("form",)
        field = str(loc[0])
        message = str(error.get("msg", "Valor inválido"))
        errors.setdefault(field, message.removeprefix("Value error, "))
    return errors
