"""
Domain events for orders.

Immutable event objects published after an order change has been persisted.
Notification delivery and other reactions subscribe to these; the publisher
doesn't know who is listening.

Events carry the full domain object so handlers don't need to re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class OrderEvent:
    """Base class for all order domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


@dataclass(frozen=True)
class OrderCreated(OrderEvent):
    """A client requested a service; order is PENDING_CONFIRMATION."""
    order: Any = None  # Order

    @classmethod
    def create(cls, order: Any) -> "OrderCreated":
        return cls(order=order)


@dataclass(frozen=True)
class OrderStatusChanged(OrderEvent):
    """Order moved from one status to another."""
    order: Any = None
    previous_status: Any = None  # OrderStatus

    @classmethod
    def create(cls, order: Any, previous_status: Any) -> "OrderStatusChanged":
        return cls(order=order, previous_status=previous_status)


@dataclass(frozen=True)
class OrderFinalized(OrderEvent):
    """Order totals were locked in and a receipt exists."""
    order: Any = None
    receipt: Any = None  # Receipt

    @classmethod
    def create(cls, order: Any, receipt: Any) -> "OrderFinalized":
        return cls(order=order, receipt=receipt)
