"""Domain package."""

from .favorites import FavoriteItem
from .order import BookingDetails, ContactInfo, Order, OrderStatus, PaymentMethod
from .order_fsm import TransitionValidationResult, try_transition, validate_order_transition
from .order_mapping import map_remote_order, map_remote_orders
from .user import User, UserRole

__all__ = [
    # Entities
    "Order",
    "FavoriteItem",
    "User",
    # Value Objects
    "ContactInfo",
    "BookingDetails",
    "OrderStatus",
    "PaymentMethod",
    "UserRole",
    # Rules
    "TransitionValidationResult",
    "try_transition",
    "validate_order_transition",
    "map_remote_order",
    "map_remote_orders",
]
