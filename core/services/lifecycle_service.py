"""
Order lifecycle service.

One method per lifecycle action. Every action has the same shape:

    fetch -> check state -> authorize -> validate -> mutate -> return order

State is checked against the state machine for status changes, or by
explicit status equality for sub-state actions that leave status alone
(mark arrived, submit quote, accept quote). Approval only records the
approved hours; callers run finalization afterwards.
"""

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from core.audit import AuditAction, AuditLogger, compute_changes
from core.authorization import OrderAuthorizer
from core.config import PricingConfig
from core.event_bus import EventBus
from core.events import OrderStatusChanged
from core.exceptions import (
    OrderNotFoundError,
    OrderValidationError,
    PaymentNotAuthorizedError,
    PaymentNotFoundError,
)
from core.models import Actor, ApprovalMethod, Order, OrderStatus, PricingMode
from core.ports import OrderStore, PaymentGateway
from core.pricing import positive_hours
from core.state_machine import assert_transition
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class OrderLifecycleService:
    """Status transitions and sub-state updates for a single order."""

    def __init__(
        self,
        orders: OrderStore,
        authorizer: OrderAuthorizer,
        payments: PaymentGateway,
        audit: AuditLogger,
        event_bus: EventBus,
        config: PricingConfig | None = None
    ):
        self.orders = orders
        self.authorizer = authorizer
        self.payments = payments
        self.audit = audit
        self.event_bus = event_bus
        self.config = config or PricingConfig()

    # =========================================================================
    # PROVIDER RESPONSE AND CONFIRMATION
    # =========================================================================

    def accept(self, actor: Actor, order_id: UUID) -> Order:
        """
        Provider accepts the request.

        Transition: PENDING_CONFIRMATION -> ACCEPTED
        """
        order = self._get(order_id)
        assert_transition(order.status, OrderStatus.ACCEPTED)
        self.authorizer.authorize_provider_action(actor, order, "accept order")

        return self._change_status(actor, order, OrderStatus.ACCEPTED)

    def confirm(self, actor: Actor, order_id: UUID) -> Order:
        """
        Client confirms after authorizing payment.

        Transition: ACCEPTED -> CONFIRMED

        Raises:
            PaymentNotFoundError: No payment exists for the order
            PaymentNotAuthorizedError: Payment exists but is not AUTHORIZED
        """
        order = self._get(order_id)
        assert_transition(order.status, OrderStatus.CONFIRMED)
        self.authorizer.authorize_client_action(actor, order, "confirm order")

        payment = self.payments.find_by_order(order_id)
        if payment is None:
            raise PaymentNotFoundError(order_id)
        if not payment.is_authorized:
            raise PaymentNotAuthorizedError(order_id, payment.status)

        return self._change_status(actor, order, OrderStatus.CONFIRMED)

    # =========================================================================
    # WORK
    # =========================================================================

    def start(self, actor: Actor, order_id: UUID) -> Order:
        """
        Provider starts work.

        Transition: CONFIRMED -> IN_PROGRESS
        """
        order = self._get(order_id)
        assert_transition(order.status, OrderStatus.IN_PROGRESS)
        self.authorizer.authorize_provider_action(actor, order, "mark order in progress")

        return self._change_status(actor, order, OrderStatus.IN_PROGRESS)

    def mark_arrived(self, actor: Actor, order_id: UUID) -> Order:
        """Record arrival on site. Status stays IN_PROGRESS."""
        order = self._get(order_id)
        self._require_status(order, OrderStatus.IN_PROGRESS)
        self.authorizer.authorize_provider_action(actor, order, "mark order arrived")

        return self._update(actor, order, {"arrived_at": now_utc()})

    def submit_hours(
        self,
        actor: Actor,
        order_id: UUID,
        final_hours: Decimal | float | str,
        photo_urls: list[str] | None = None
    ) -> Order:
        """
        Provider submits worked hours for an hourly order.

        Transition: IN_PROGRESS -> AWAITING_APPROVAL

        Raises:
            OrderValidationError: Fixed-price order, non-positive hours, too many photos
        """
        order = self._get(order_id)
        assert_transition(order.status, OrderStatus.AWAITING_APPROVAL)
        self.authorizer.authorize_provider_action(actor, order, "submit hours")

        if order.pricing_mode != PricingMode.HOURLY:
            raise OrderValidationError("Hours can only be submitted for hourly orders")

        hours = positive_hours(final_hours, "Final hours")

        fields = {"final_hours_submitted": hours, "submitted_at": now_utc()}
        fields.update(self._photo_fields(photo_urls))

        order = self._update(actor, order, fields)
        return self._change_status(actor, order, OrderStatus.AWAITING_APPROVAL)

    def submit_completion(
        self,
        actor: Actor,
        order_id: UUID,
        photo_urls: list[str] | None = None
    ) -> Order:
        """
        Provider reports a fixed-price job done. No hours are recorded.

        Transition: IN_PROGRESS -> AWAITING_APPROVAL
        """
        order = self._get(order_id)
        self._require_status(order, OrderStatus.IN_PROGRESS)
        assert_transition(order.status, OrderStatus.AWAITING_APPROVAL)
        self.authorizer.authorize_provider_action(actor, order, "submit completion")

        if not order.is_fixed_price:
            raise OrderValidationError("Completion can only be submitted for fixed-price orders")

        fields = {"submitted_at": now_utc()}
        fields.update(self._photo_fields(photo_urls))

        order = self._update(actor, order, fields)
        return self._change_status(actor, order, OrderStatus.AWAITING_APPROVAL)

    # =========================================================================
    # QUOTES (fixed-price orders, while ACCEPTED)
    # =========================================================================

    def submit_quote(
        self,
        actor: Actor,
        order_id: UUID,
        amount: int,
        message: str | None = None
    ) -> Order:
        """
        Provider quotes a fixed price, in minor units.

        May be resubmitted until the client accepts one.
        """
        order = self._get(order_id)
        self._require_status(order, OrderStatus.ACCEPTED)
        self.authorizer.authorize_provider_action(actor, order, "submit quote")

        if not order.is_fixed_price:
            raise OrderValidationError("Quotes can only be submitted for fixed-price orders")
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise OrderValidationError("Quote amount must be a whole number of minor units")
        if amount <= 0:
            raise OrderValidationError("Quote amount must be greater than 0")
        if order.quote_accepted_at is not None:
            raise OrderValidationError(f"Quote for order {order_id} was already accepted")

        return self._update(actor, order, {
            "quoted_amount": amount,
            "quoted_at": now_utc(),
            "quote_message": message,
        })

    def accept_quote(self, actor: Actor, order_id: UUID) -> Order:
        """Client accepts the provider's quote."""
        order = self._get(order_id)
        self._require_status(order, OrderStatus.ACCEPTED)
        self.authorizer.authorize_client_action(actor, order, "accept quote")

        if not order.is_fixed_price:
            raise OrderValidationError("Only fixed-price orders have quotes")
        if not order.quoted_amount:
            raise OrderValidationError(f"Order {order_id} has no quote to accept")

        return self._update(actor, order, {"quote_accepted_at": now_utc()})

    # =========================================================================
    # APPROVAL, DISPUTE, CANCELLATION
    # =========================================================================

    def approve(self, actor: Actor, order_id: UUID) -> Order:
        """
        Client approves the submitted work.

        Checks that COMPLETED is reachable but does not move there; run
        OrderFinalizationService.finalize with the returned approved_hours.

        Raises:
            OrderValidationError: Hourly order with no submitted hours
        """
        order = self._get(order_id)
        assert_transition(order.status, OrderStatus.COMPLETED)
        self.authorizer.authorize_client_action(actor, order, "approve hours")

        fields: dict[str, Any] = {"approval_method": ApprovalMethod.CLIENT_ACCEPTED}
        if order.pricing_mode == PricingMode.HOURLY:
            if not order.final_hours_submitted:
                raise OrderValidationError("Final hours must be submitted before approval")
            fields["approved_hours"] = order.final_hours_submitted

        return self._update(actor, order, fields)

    def dispute(self, actor: Actor, order_id: UUID, reason: str) -> Order:
        """
        Client disputes the submitted work.

        Transition: AWAITING_APPROVAL -> DISPUTED
        """
        order = self._get(order_id)
        assert_transition(order.status, OrderStatus.DISPUTED)
        self.authorizer.authorize_client_action(actor, order, "dispute hours")

        if not reason or not reason.strip():
            raise OrderValidationError("A reason is required to open a dispute")

        return self._change_status(actor, order, OrderStatus.DISPUTED, {
            "dispute_reason": reason.strip(),
            "dispute_opened_by": actor.id,
        })

    def cancel(self, actor: Actor, order_id: UUID, reason: str | None = None) -> Order:
        """
        Cancel from any status the state machine allows.

        Either party (or an admin) may cancel. The reason is stored only when given.
        """
        order = self._get(order_id)
        assert_transition(order.status, OrderStatus.CANCELED)
        self.authorizer.authorize_cancellation(actor, order)

        metadata = {"cancel_reason": reason} if reason else None
        return self._change_status(actor, order, OrderStatus.CANCELED, metadata)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _get(self, order_id: UUID) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def _require_status(self, order: Order, expected: OrderStatus) -> None:
        if order.status != expected:
            raise OrderValidationError(
                f"Order {order.id} is not in {expected.value} status. "
                f"Current status: {order.status.value}"
            )

    def _photo_fields(self, photo_urls: list[str] | None) -> dict[str, Any]:
        if not photo_urls:
            return {}
        limit = self.config.max_work_proof_photos
        if len(photo_urls) > limit:
            raise OrderValidationError(f"At most {limit} work proof photos are allowed")
        return {"work_proof_photo_urls": list(photo_urls)}

    def _update(self, actor: Actor, order: Order, fields: dict[str, Any]) -> Order:
        updated = self.orders.update(order.id, fields)

        changes = compute_changes(order.model_dump(mode="json"), updated.model_dump(mode="json"))
        if changes:
            self.audit.log_change("order", order.id, AuditAction.UPDATE, changes, actor)

        return updated

    def _change_status(
        self,
        actor: Actor,
        order: Order,
        status: OrderStatus,
        metadata: dict[str, Any] | None = None
    ) -> Order:
        updated = self.orders.update_status(order.id, status, metadata, previous_status=order.status)

        changes: dict[str, Any] = {"status": {"old": order.status.value, "new": status.value}}
        if metadata:
            changes["metadata"] = {k: str(v) if v is not None else None for k, v in metadata.items()}
        self.audit.log_change("order", order.id, AuditAction.STATUS_CHANGE, changes, actor)
        logger.info("Order %s: %s -> %s", order.display_code, order.status.value, status.value)

        self.event_bus.publish(OrderStatusChanged.create(order=updated, previous_status=order.status))
        return updated
