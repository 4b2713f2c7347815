"""Application wiring: services from collaborators, app from services."""

import logging

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import ActorMiddleware, ActorResolver, RequestIDMiddleware, actor_from_headers
from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url, get_pricing_config
from core.audit import AuditLogger
from core.authorization import OrderAuthorizer
from core.config import PricingConfig
from core.event_bus import EventBus
from core.ports import CategoryCatalog, EarningsLedger, PaymentGateway, ProviderProfileDirectory
from core.repositories import LineItemRepository, OrderRepository, ReceiptRepository
from core.services.finalization_service import OrderFinalizationService
from core.services.lifecycle_service import OrderLifecycleService
from core.services.order_service import OrderService

logger = logging.getLogger(__name__)


def build_services(
    postgres: PostgresClient,
    payments: PaymentGateway,
    earnings: EarningsLedger,
    profiles: ProviderProfileDirectory,
    categories: CategoryCatalog,
    config: PricingConfig | None = None,
    event_bus: EventBus | None = None
) -> dict:
    """
    Wire repositories and services.

    Payments, earnings, provider profiles and categories are owned by other
    modules and passed in.
    """
    config = config or PricingConfig()
    event_bus = event_bus or EventBus()
    audit = AuditLogger(postgres)

    orders = OrderRepository(postgres)
    line_items = LineItemRepository(postgres)
    receipts = ReceiptRepository(postgres)
    authorizer = OrderAuthorizer(profiles)

    return {
        "order": OrderService(orders, receipts, profiles, categories, audit, event_bus, config),
        "lifecycle": OrderLifecycleService(orders, authorizer, payments, audit, event_bus, config),
        "finalization": OrderFinalizationService(
            orders, line_items, receipts, payments, earnings, audit, event_bus, config
        ),
        "authorizer": authorizer,
        "profiles": profiles,
        "event_bus": event_bus,
    }


def build_services_from_vault(
    payments: PaymentGateway,
    earnings: EarningsLedger,
    profiles: ProviderProfileDirectory,
    categories: CategoryCatalog,
    event_bus: EventBus | None = None
) -> dict:
    """build_services() with the database URL and pricing settings read from Vault."""
    postgres = PostgresClient(get_database_url())
    return build_services(postgres, payments, earnings, profiles, categories, get_pricing_config(), event_bus)


def create_app(services: dict, resolve_actor: ActorResolver = actor_from_headers) -> FastAPI:
    """FastAPI app with actor resolution, error handlers, and order routes."""
    app = FastAPI(title="Marketplace Orders")
    app.add_middleware(ActorMiddleware, resolve_actor=resolve_actor)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    logger.info("Order API configured")
    return app
