"""Collaborator protocols consumed by the order engine.

Persistence stores are implemented on PostgreSQL in core.repositories.
Payments, earnings, provider profiles and categories belong to other
modules and are reached only through these boundaries.
"""

from typing import Any, Protocol
from uuid import UUID

from core.models import (
    Actor, Category, LineItem, LineItemCreate, Order, OrderStatus,
    Payment, ProviderProfile, Receipt, ReceiptCreate,
)


class OrderStore(Protocol):
    """Order persistence. Must serialize concurrent mutations of one order."""

    def get(self, order_id: UUID) -> Order | None:
        """Return the order or None."""

    def update(self, order_id: UUID, fields: dict[str, Any]) -> Order:
        """Apply a partial update and return the refreshed order."""

    def update_status(
        self,
        order_id: UUID,
        status: OrderStatus,
        metadata: dict[str, Any] | None = None,
        previous_status: OrderStatus | None = None
    ) -> Order:
        """Set status, its timestamp, and status-specific side fields."""


class LineItemStore(Protocol):
    def list_by_order(self, order_id: UUID) -> list[LineItem]:
        """Line items for an order, in creation order."""

    def replace_all(self, order_id: UUID, items: list[LineItemCreate]) -> list[LineItem]:
        """Delete the order's items and insert these, atomically."""


class ReceiptStore(Protocol):
    def create(self, data: ReceiptCreate) -> Receipt:
        """Insert a receipt. Raises ReceiptAlreadyExistsError if the order has one."""

    def find_by_order(self, order_id: UUID) -> Receipt | None:
        """The order's receipt, if finalized."""


class PaymentGateway(Protocol):
    def find_by_order(self, order_id: UUID) -> Payment | None:
        """The payment attached to an order, if any."""

    def capture(self, payment_id: UUID) -> Payment:
        """Capture an authorized payment."""


class EarningsLedger(Protocol):
    def create_for_order(self, actor: Actor, order_id: UUID) -> None:
        """Create the provider earning for a completed order with captured payment."""


class ProviderProfileDirectory(Protocol):
    def find_by_user_id(self, user_id: UUID) -> ProviderProfile | None:
        """Profile owned by a user."""

    def find_by_id(self, profile_id: UUID) -> ProviderProfile | None:
        """Profile by its own id."""


class CategoryCatalog(Protocol):
    def get(self, category_id: UUID) -> Category | None:
        """Category with its configured pricing mode."""
