"""POST /api/orders/{order_id}/actions: one endpoint for every order mutation."""

from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from api.base import respond
from core.models import Actor, ApprovalMethod, OrderStatus, PricingMode


class ActionRequest(BaseModel):
    action: str
    data: dict[str, Any] = Field(default_factory=dict)


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handler = OrderActionHandler(
        services["lifecycle"],
        services["finalization"],
        services["order"],
    )

    @router.post("/orders/{order_id}/actions")
    def perform_action(request: Request, order_id: UUID, body: ActionRequest):
        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on orders. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        order = method(request.state.actor, order_id, body.data)
        return respond(request, order)

    return router


def _decimal(value: Any, name: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"'{name}' must be a number") from e
    if not number.is_finite():
        raise ValueError(f"'{name}' must be a finite number")
    return number


# =============================================================================
# HANDLER
# =============================================================================


class OrderActionHandler:
    ALLOWED_ACTIONS = {
        "accept", "confirm", "start", "mark_arrived",
        "submit_hours", "submit_completion", "submit_quote", "accept_quote",
        "approve", "dispute", "cancel", "force_status",
    }

    def __init__(self, lifecycle, finalization, orders):
        self.lifecycle = lifecycle
        self.finalization = finalization
        self.orders = orders

    def _handle_accept(self, actor: Actor, order_id: UUID, data: dict):
        return self.lifecycle.accept(actor, order_id)

    def _handle_confirm(self, actor: Actor, order_id: UUID, data: dict):
        return self.lifecycle.confirm(actor, order_id)

    def _handle_start(self, actor: Actor, order_id: UUID, data: dict):
        return self.lifecycle.start(actor, order_id)

    def _handle_mark_arrived(self, actor: Actor, order_id: UUID, data: dict):
        return self.lifecycle.mark_arrived(actor, order_id)

    def _handle_submit_hours(self, actor: Actor, order_id: UUID, data: dict):
        if "final_hours" not in data:
            raise ValueError("'final_hours' is required")
        return self.lifecycle.submit_hours(
            actor, order_id, _decimal(data["final_hours"], "final_hours"), data.get("photo_urls")
        )

    def _handle_submit_completion(self, actor: Actor, order_id: UUID, data: dict):
        return self.lifecycle.submit_completion(actor, order_id, data.get("photo_urls"))

    def _handle_submit_quote(self, actor: Actor, order_id: UUID, data: dict):
        if "amount" not in data:
            raise ValueError("'amount' is required")
        return self.lifecycle.submit_quote(actor, order_id, data["amount"], data.get("message"))

    def _handle_accept_quote(self, actor: Actor, order_id: UUID, data: dict):
        return self.lifecycle.accept_quote(actor, order_id)

    def _handle_approve(self, actor: Actor, order_id: UUID, data: dict):
        """Approval and finalization are separate operations; approving runs both."""
        approved = self.lifecycle.approve(actor, order_id)
        hours = approved.approved_hours if approved.pricing_mode == PricingMode.HOURLY else None
        return self.finalization.finalize(order_id, hours, ApprovalMethod.CLIENT_ACCEPTED)

    def _handle_dispute(self, actor: Actor, order_id: UUID, data: dict):
        return self.lifecycle.dispute(actor, order_id, data.get("reason", ""))

    def _handle_cancel(self, actor: Actor, order_id: UUID, data: dict):
        return self.lifecycle.cancel(actor, order_id, data.get("reason"))

    def _handle_force_status(self, actor: Actor, order_id: UUID, data: dict):
        if "status" not in data:
            raise ValueError("'status' is required")
        return self.orders.force_status(actor, order_id, OrderStatus(data["status"]), data.get("reason"))
