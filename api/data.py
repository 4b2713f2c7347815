"""Order reads, creation and estimates."""

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import respond
from core.exceptions import ProviderProfileNotFoundError, UnauthorizedActionError
from core.models import OrderCreate, Role


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    order_svc = services["order"]
    profiles = services["profiles"]
    authorizer = services["authorizer"]

    @router.post("/orders")
    def create_order(request: Request, body: OrderCreate):
        return respond(request, order_svc.create_request(request.state.actor, body))

    @router.get("/orders")
    def list_orders(request: Request, limit: int = Query(50, ge=1, le=500)):
        """Orders visible to the caller: their own as client, assigned as provider."""
        actor = request.state.actor

        if actor.role == Role.CLIENT:
            orders = order_svc.list_for_client(actor.id, limit)
        elif actor.role == Role.PROVIDER:
            profile = profiles.find_by_user_id(actor.id)
            if profile is None:
                raise ProviderProfileNotFoundError(actor.id)
            orders = order_svc.list_for_provider(profile.id, limit)
        else:
            raise UnauthorizedActionError("list orders", "Only clients and providers have order lists")

        return respond(request, orders)

    @router.get("/orders/code/{display_code}")
    def get_order_by_code(request: Request, display_code: str):
        order = order_svc.get_by_display_code(display_code)
        authorizer.authorize_participant(request.state.actor, order, "view order")
        return respond(request, order)

    @router.get("/orders/{order_id}")
    def get_order(request: Request, order_id: UUID):
        order = order_svc.get_or_raise(order_id)
        authorizer.authorize_participant(request.state.actor, order, "view order")
        return respond(request, order)

    @router.get("/orders/{order_id}/cost-breakdown")
    def get_cost_breakdown(request: Request, order_id: UUID):
        authorizer.authorize_participant(request.state.actor, order_svc.get_or_raise(order_id), "view order")
        return respond(request, order_svc.cost_breakdown(order_id))

    @router.get("/orders/{order_id}/history")
    def get_order_history(request: Request, order_id: UUID):
        return respond(request, order_svc.history(request.state.actor, order_id))

    @router.get("/estimates")
    def get_estimate(
        request: Request,
        provider_profile_id: UUID = Query(...),
        hours: Decimal = Query(..., gt=0),
    ):
        return respond(request, order_svc.estimate(provider_profile_id, hours))

    return router
