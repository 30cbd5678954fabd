"""Services layer."""

from .order_sync import OrderSyncService, SyncResult
from .reconciliation import OptimisticEdit, apply_optimistic

__all__ = ["OrderSyncService", "SyncResult", "OptimisticEdit", "apply_optimistic"]
