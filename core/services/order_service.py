"""
Order service for creation, reads, estimates and admin overrides.

Lifecycle transitions live in OrderLifecycleService; finalization in
OrderFinalizationService. Everything here either creates an order or
leaves its status alone, except force_status, which is the admin escape
hatch around the state machine.
"""

import logging
from decimal import Decimal
from uuid import UUID, uuid4

from core.audit import AuditAction, AuditEntry, AuditLogger
from core.authorization import REASON_CLIENT_ROLE
from core.config import PricingConfig
from core.display_code import next_display_code
from core.event_bus import EventBus
from core.events import OrderCreated, OrderStatusChanged
from core.exceptions import (
    CategoryNotFoundError,
    OrderNotFoundError,
    OrderValidationError,
    ProviderProfileNotFoundError,
    UnauthorizedActionError,
)
from core.models import (
    Actor, CostBreakdown, CostLine, Order, OrderCreate, OrderStatus,
    ProviderProfileStatus, Receipt, Role,
)
from core.ports import CategoryCatalog, ProviderProfileDirectory, ReceiptStore
from core.pricing import (
    estimate_from_hours, estimate_from_quoted_amount, positive_hours, quote_pending_breakdown,
)
from core.repositories import OrderRepository
from utils.timezone import is_in_future, now_utc

logger = logging.getLogger(__name__)

REASON_ADMIN_ROLE = "Only admins can perform this action"


class OrderService:
    """Service for order creation and queries."""

    def __init__(
        self,
        orders: OrderRepository,
        receipts: ReceiptStore,
        profiles: ProviderProfileDirectory,
        categories: CategoryCatalog,
        audit: AuditLogger,
        event_bus: EventBus,
        config: PricingConfig | None = None
    ):
        self.orders = orders
        self.receipts = receipts
        self.profiles = profiles
        self.categories = categories
        self.audit = audit
        self.event_bus = event_bus
        self.config = config or PricingConfig()

    def create_request(self, actor: Actor, data: OrderCreate) -> Order:
        """
        Create an order request from a client to a provider.

        Pricing mode comes from the category and is frozen on the order. The
        provider's hourly rate is snapshotted even for fixed-price orders.

        Args:
            actor: Requesting client
            data: Order request data

        Returns:
            Created order in PENDING_CONFIRMATION status

        Raises:
            UnauthorizedActionError: Actor is not a client
            OrderValidationError: Start in the past, or provider suspended
            ProviderProfileNotFoundError: Unknown provider profile
            CategoryNotFoundError: Unknown category
        """
        if actor.role != Role.CLIENT:
            raise UnauthorizedActionError("create order", REASON_CLIENT_ROLE)

        if not is_in_future(data.scheduled_start_at):
            raise OrderValidationError("Scheduled window start must be in the future")

        profile = self.profiles.find_by_id(data.provider_profile_id)
        if profile is None:
            raise ProviderProfileNotFoundError(data.provider_profile_id)
        if profile.status == ProviderProfileStatus.SUSPENDED:
            raise OrderValidationError(f"Provider profile {profile.id} is suspended")

        category = self.categories.get(data.category_id)
        if category is None:
            raise CategoryNotFoundError(data.category_id)

        now = now_utc()
        display_code = next_display_code(
            self.orders.latest_display_code(),
            self.orders.display_code_exists,
        )

        order = self.orders.create({
            **data.model_dump(),
            "id": uuid4(),
            "display_code": display_code,
            "client_id": actor.id,
            "category_snapshot": category.snapshot(),
            "status": OrderStatus.PENDING_CONFIRMATION,
            "pricing_mode": category.pricing_mode,
            "hourly_rate_snapshot": profile.hourly_rate,
            "currency": self.config.currency,
            "is_first_order": not self.orders.client_has_orders(actor.id),
            "created_at": now,
            "updated_at": now,
        })

        self.audit.log_change(
            "order",
            order.id,
            AuditAction.CREATE,
            {"created": order.model_dump(mode="json", exclude_none=True)},
            actor
        )
        logger.info("Created order %s (%s) for client %s", order.display_code, order.pricing_mode.value, actor.id)

        self.event_bus.publish(OrderCreated.create(order=order))
        return order

    # =========================================================================
    # READS
    # =========================================================================

    def get_or_raise(self, order_id: UUID) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def get_by_display_code(self, display_code: str) -> Order:
        order = self.orders.find_by_display_code(display_code)
        if order is None:
            raise OrderNotFoundError(display_code)
        return order

    def list_for_client(self, client_id: UUID, limit: int = 50) -> list[Order]:
        return self.orders.list_for_client(client_id, limit)

    def list_for_provider(self, provider_profile_id: UUID, limit: int = 50) -> list[Order]:
        return self.orders.list_for_provider(provider_profile_id, limit)

    # =========================================================================
    # ESTIMATES
    # =========================================================================

    def estimate(self, provider_profile_id: UUID, estimated_hours: Decimal) -> CostBreakdown:
        """Hourly estimate at the provider's current rate."""
        estimated_hours = positive_hours(estimated_hours, "Estimated hours")

        profile = self.profiles.find_by_id(provider_profile_id)
        if profile is None:
            raise ProviderProfileNotFoundError(provider_profile_id)

        return estimate_from_hours(
            estimated_hours,
            profile.hourly_rate,
            self.config.currency,
            self.config.platform_fee_rate,
            self.config.tax_rate,
        )

    def cost_breakdown(self, order_id: UUID) -> CostBreakdown:
        """
        Cost breakdown for display.

        The receipt once finalized. Before that: the quote for fixed-price
        orders (or a zero "quote pending" breakdown), or an hours estimate
        at the order's rate snapshot for hourly orders.
        """
        order = self.get_or_raise(order_id)

        receipt = self.receipts.find_by_order(order_id)
        if receipt is not None:
            return _receipt_breakdown(receipt)

        if order.is_fixed_price:
            if order.quoted_amount:
                return estimate_from_quoted_amount(
                    order.quoted_amount,
                    order.currency,
                    self.config.platform_fee_rate,
                    self.config.tax_rate,
                )
            return quote_pending_breakdown(order.currency, self.config.tax_rate)

        hours = order.final_hours_submitted or order.estimated_hours or Decimal("0")
        return estimate_from_hours(
            hours,
            order.hourly_rate_snapshot,
            order.currency,
            self.config.platform_fee_rate,
            self.config.tax_rate,
        )

    # =========================================================================
    # ADMIN
    # =========================================================================

    def force_status(
        self,
        actor: Actor,
        order_id: UUID,
        status: OrderStatus,
        reason: str | None = None
    ) -> Order:
        """
        Set any status, bypassing the state machine.

        The reason is stored on the order only for CANCELED; it is always
        recorded in the audit log.

        Raises:
            UnauthorizedActionError: Actor is not an admin
        """
        if not actor.is_admin:
            raise UnauthorizedActionError("force order status", REASON_ADMIN_ROLE)

        order = self.get_or_raise(order_id)

        metadata = {"cancel_reason": reason} if status == OrderStatus.CANCELED and reason else None
        updated = self.orders.update_status(order_id, status, metadata, previous_status=order.status)

        self.audit.log_change(
            "order",
            order_id,
            AuditAction.FORCE_STATUS,
            {
                "status": {"old": order.status.value, "new": status.value},
                "reason": reason,
            },
            actor
        )
        logger.warning(
            "Admin %s forced order %s from %s to %s",
            actor.id, order.display_code, order.status.value, status.value,
        )

        self.event_bus.publish(OrderStatusChanged.create(order=updated, previous_status=order.status))
        return updated

    def history(self, actor: Actor, order_id: UUID) -> list[AuditEntry]:
        """Audit trail of one order, newest first. Admin only."""
        if not actor.is_admin:
            raise UnauthorizedActionError("view order history", REASON_ADMIN_ROLE)

        self.get_or_raise(order_id)
        return self.audit.get_entity_history("order", order_id)


def _receipt_breakdown(receipt: Receipt) -> CostBreakdown:
    return CostBreakdown(
        kind="receipt",
        labor_amount=receipt.labor_amount,
        platform_fee_amount=receipt.platform_fee_amount,
        platform_fee_rate=receipt.platform_fee_rate,
        tax_amount=receipt.tax_amount,
        tax_rate=receipt.tax_rate,
        subtotal_amount=receipt.subtotal_amount,
        total_amount=receipt.total_amount,
        currency=receipt.currency,
        lines=[
            CostLine(type=line.type.value, description=line.description, amount=line.amount)
            for line in receipt.lines
        ],
    )
