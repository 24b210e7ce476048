from buildseason.domain.orders.lifecycle import (
    STATUS_LABELS,
    TRANSITIONS,
    OrderLifecycleController,
    OrderLifecyclePolicy,
    OrderStatus,
    OrderTransition,
)
from buildseason.domain.orders.service import OrderFilter, OrderListing, OrderService, recompute_total

__all__ = [
    "STATUS_LABELS",
    "TRANSITIONS",
    "OrderFilter",
    "OrderLifecycleController",
    "OrderLifecyclePolicy",
    "OrderListing",
    "OrderService",
    "OrderStatus",
    "OrderTransition",
    "recompute_total",
]
