"""
Order finalization.

Turns approved work into the order's financial record, exactly once:
line items, totals, receipt, COMPLETED status. Payment capture and earning
creation follow as best-effort steps that cannot undo a finalization.
"""

import logging
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from core.audit import AuditAction, AuditLogger
from core.best_effort import attempt
from core.config import PricingConfig
from core.event_bus import EventBus
from core.events import OrderFinalized
from core.exceptions import (
    AlreadyFinalizedError,
    CannotFinalizeError,
    OrderNotFoundError,
    OrderValidationError,
    ReceiptAlreadyExistsError,
)
from core.models import (
    ApprovalMethod, LineItem, LineItemType, Order, OrderStatus, PricingMode,
    Receipt, ReceiptCreate, ReceiptLine, SYSTEM_ACTOR,
)
from core.ports import EarningsLedger, LineItemStore, OrderStore, PaymentGateway, ReceiptStore
from core.pricing import Totals, build_line_items, calculate_totals, positive_hours, summarize_line_items
from core.state_machine import assert_transition
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class OrderFinalizationService:
    """Single entry point for finalizing an approved order."""

    def __init__(
        self,
        orders: OrderStore,
        line_items: LineItemStore,
        receipts: ReceiptStore,
        payments: PaymentGateway,
        earnings: EarningsLedger,
        audit: AuditLogger,
        event_bus: EventBus,
        config: PricingConfig | None = None
    ):
        self.orders = orders
        self.line_items = line_items
        self.receipts = receipts
        self.payments = payments
        self.earnings = earnings
        self.audit = audit
        self.event_bus = event_bus
        self.config = config or PricingConfig()

    def finalize(
        self,
        order_id: UUID,
        approved_hours: Decimal | float | str | None,
        approval_method: ApprovalMethod
    ) -> Order:
        """
        Finalize an order.

        Args:
            order_id: Order UUID
            approved_hours: Hours to bill (hourly orders); ignored for fixed orders
            approval_method: How the work was approved

        Returns:
            The order in COMPLETED status with totals set

        Raises:
            OrderNotFoundError: Order does not exist
            AlreadyFinalizedError: Order is already COMPLETED or PAID
            InvalidTransitionError: COMPLETED is not reachable from the current status
            OrderValidationError: Hourly order without positive approved hours
            CannotFinalizeError: Fixed order without a positive quote, or
                persisted line items disagree with the computed totals
        """
        # 1. Status-level idempotency guard
        order = self._get(order_id)
        if order.is_finalized:
            raise AlreadyFinalizedError(order_id)

        # 2. Re-check the transition
        assert_transition(order.status, OrderStatus.COMPLETED)

        hours = None
        if order.pricing_mode == PricingMode.HOURLY:
            hours = positive_hours(approved_hours, "Approved hours")

        # 3. Record the approval
        order = self.orders.update(order_id, {
            "approved_hours": hours,
            "approval_method": approval_method,
        })

        # 4. Price
        if order.is_fixed_price and (not order.quoted_amount or order.quoted_amount <= 0):
            raise CannotFinalizeError(f"Order {order_id} has no accepted quote to finalize")

        platform_fee_rate = self.config.platform_fee_rate
        tax_rate = self.config.tax_rate
        drafts = build_line_items(order, hours, platform_fee_rate, tax_rate)
        labor_amount = next(d.amount for d in drafts if d.type == LineItemType.LABOR)
        expected = calculate_totals(labor_amount, platform_fee_rate, tax_rate)

        # 5. Replace line items wholesale
        self.line_items.replace_all(order_id, drafts)

        # 6. Totals from what was actually persisted
        persisted = self.line_items.list_by_order(order_id)
        totals = summarize_line_items(persisted, tax_rate)
        self._check_consistency(order_id, totals, expected)

        now = now_utc()
        order = self.orders.update(order_id, {
            "subtotal_amount": totals.subtotal_amount,
            "platform_fee_amount": totals.platform_fee_amount,
            "tax_amount": totals.tax_amount,
            "total_amount": totals.total_amount,
            "tax_scheme": self.config.tax_scheme,
            "tax_rate": tax_rate,
            "tax_region": self.config.tax_region,
            "tax_included": self.config.tax_included,
            "totals_calculated_at": now,
        })

        # 7. Receipt; an existing one means an earlier attempt got this far
        receipt = self._create_receipt(order, persisted, totals, platform_fee_rate, tax_rate, now)

        # 8. Status
        previous_status = order.status
        order = self.orders.update_status(order_id, OrderStatus.COMPLETED, previous_status=previous_status)
        self.audit.log_change(
            "order",
            order_id,
            AuditAction.FINALIZE,
            {
                "status": {"old": previous_status.value, "new": OrderStatus.COMPLETED.value},
                "total_amount": {"old": None, "new": totals.total_amount},
                "approval_method": {"old": None, "new": approval_method.value},
            },
            SYSTEM_ACTOR
        )
        logger.info(
            "Finalized order %s: total %s %s (%s)",
            order.display_code, totals.total_amount, order.currency, approval_method.value,
        )

        # 9. Downstream settlement, never propagated
        self._settle(order_id)

        self.event_bus.publish(OrderFinalized.create(order=order, receipt=receipt))

        # 10.
        return self._get(order_id)

    def _get(self, order_id: UUID) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def _check_consistency(self, order_id: UUID, actual: Totals, expected: Totals) -> None:
        mismatched = [
            name for name in ("labor_amount", "platform_fee_amount", "tax_amount", "subtotal_amount", "total_amount")
            if getattr(actual, name) != getattr(expected, name)
        ]
        if mismatched:
            logger.error(
                "Line item totals for order %s do not match computed totals: %s",
                order_id, ", ".join(mismatched),
            )
            raise CannotFinalizeError(
                f"Persisted line items for order {order_id} do not match computed totals"
            )

    def _create_receipt(
        self,
        order: Order,
        items: list[LineItem],
        totals: Totals,
        platform_fee_rate: Decimal,
        tax_rate: Decimal,
        finalized_at: datetime
    ) -> Receipt | None:
        data = ReceiptCreate(
            order_id=order.id,
            lines=[
                ReceiptLine(type=item.type, description=item.description, amount=item.amount)
                for item in items
            ],
            labor_amount=totals.labor_amount,
            platform_fee_amount=totals.platform_fee_amount,
            platform_fee_rate=platform_fee_rate,
            tax_amount=totals.tax_amount,
            tax_rate=tax_rate,
            subtotal_amount=totals.subtotal_amount,
            total_amount=totals.total_amount,
            currency=order.currency,
            approved_hours=order.approved_hours,
            finalized_at=finalized_at,
        )
        try:
            return self.receipts.create(data)
        except ReceiptAlreadyExistsError:
            logger.info("Receipt for order %s already exists; continuing finalization", order.id)
            return self.receipts.find_by_order(order.id)

    def _settle(self, order_id: UUID) -> None:
        """Capture an authorized payment, then create the provider earning."""
        lookup = attempt("payment_lookup", lambda: self.payments.find_by_order(order_id), order_id=order_id)
        payment = lookup.value
        if payment is None or not payment.is_authorized:
            return

        capture = attempt(
            "payment_capture",
            lambda: self.payments.capture(payment.id),
            order_id=order_id,
            payment_id=payment.id,
        )
        if not capture.succeeded:
            return

        attempt(
            "earning_creation",
            lambda: self.earnings.create_for_order(SYSTEM_ACTOR, order_id),
            order_id=order_id,
        )
