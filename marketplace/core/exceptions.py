"""Custom exceptions for the marketplace client core."""
from __future__ import annotations


class MarketplaceException(Exception):
    """Base exception for all marketplace client errors."""

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)
        self.message = message


class ApiError(MarketplaceException):
    """Remote API failure.

    ``status`` is the HTTP status code, or 0 when the request never got a
    response (connection refused, DNS failure, timeout).
    """

    def __init__(self, message: str, status: int = 0) -> None:
        super().__init__(message)
        self.status = status

    def __str__(self) -> str:
        return f"{self.message} (status={self.status})"


class PersistenceException(MarketplaceException):
    """Key-value store read/write errors."""

    pass


class ValidationException(MarketplaceException):
    """Input validation errors."""

    def __init__(self, message: str, errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or {}


class AuthorizationException(MarketplaceException):
    """Operation requires an authenticated session."""

    pass


class OrderNotFoundException(MarketplaceException):
    """Order not found in the local store."""

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order with ID {order_id} not found")
        self.order_id = order_id


class InvalidTransition(MarketplaceException):
    """Order status change rejected by the transition table."""

    def __init__(self, order_id: str, current: str, target: str, reason: str | None = None) -> None:
        super().__init__(reason or f"Transition '{current} -> {target}' is not allowed")
        self.order_id = order_id
        self.current = current
        self.target = target


class PaymentUnavailableException(MarketplaceException):
    """Payment provider did not return a usable checkout URL."""

    pass


class ConfigurationException(MarketplaceException):
    """Configuration errors."""

    pass
