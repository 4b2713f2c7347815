"""Shared test fixtures for the order engine test suite.

Persistence is replaced by in-memory stores implementing the same
protocols as the PostgreSQL repositories. Payments and earnings are
Mocks, since they belong to other modules.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Any
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest

import clients.vault_client as vault_module
from core.audit import AuditLogger
from core.authorization import OrderAuthorizer
from core.config import PricingConfig
from core.event_bus import EventBus
from core.exceptions import OrderNotFoundError, ReceiptAlreadyExistsError
from core.models import (
    Actor, Category, LineItem, LineItemCreate, Order, OrderStatus, Payment,
    PaymentStatus, PricingMode, ProviderProfile, Receipt, ReceiptCreate, Role,
)
from core.repositories import status_fields
from core.services.finalization_service import OrderFinalizationService
from core.services.lifecycle_service import OrderLifecycleService
from core.services.order_service import OrderService
from utils.timezone import now_utc


# =============================================================================
# TEST IDENTITY CONSTANTS
# =============================================================================

CLIENT_ID = UUID("00000000-0000-0000-0000-000000000001")
OTHER_CLIENT_ID = UUID("00000000-0000-0000-0000-000000000002")
PROVIDER_USER_ID = UUID("00000000-0000-0000-0000-000000000003")
OTHER_PROVIDER_USER_ID = UUID("00000000-0000-0000-0000-000000000004")
ADMIN_ID = UUID("00000000-0000-0000-0000-000000000005")

PROFILE_ID = UUID("10000000-0000-0000-0000-000000000001")
OTHER_PROFILE_ID = UUID("10000000-0000-0000-0000-000000000002")

HOURLY_CATEGORY_ID = UUID("20000000-0000-0000-0000-000000000001")
FIXED_CATEGORY_ID = UUID("20000000-0000-0000-0000-000000000002")


# =============================================================================
# IN-MEMORY STORES
# =============================================================================


class InMemoryOrderStore:
    """OrderStore plus the creation/query methods of OrderRepository."""

    def __init__(self):
        self.orders: dict[UUID, Order] = {}

    def create(self, fields: dict[str, Any]) -> Order:
        order = Order.model_validate(fields)
        self.orders[order.id] = order
        return order

    def add(self, order: Order) -> Order:
        self.orders[order.id] = order
        return order

    def get(self, order_id: UUID) -> Order | None:
        return self.orders.get(order_id)

    def update(self, order_id: UUID, fields: dict[str, Any]) -> Order:
        return self._write(order_id, fields)

    def update_status(
        self, order_id: UUID, status: OrderStatus, metadata: dict | None = None, previous_status: OrderStatus | None = None
    ) -> Order:
        return self._write(order_id, status_fields(status, metadata, previous_status=previous_status))

    def _write(self, order_id: UUID, fields: dict[str, Any]) -> Order:
        current = self.orders.get(order_id)
        if current is None:
            raise OrderNotFoundError(order_id)
        data = current.model_dump()
        data.update(fields)
        data["updated_at"] = now_utc()
        updated = Order.model_validate(data)
        self.orders[order_id] = updated
        return updated

    def find_by_display_code(self, display_code: str) -> Order | None:
        return next((o for o in self.orders.values() if o.display_code == display_code.upper()), None)

    def list_for_client(self, client_id: UUID, limit: int = 50) -> list[Order]:
        return [o for o in self.orders.values() if o.client_id == client_id][:limit]

    def list_for_provider(self, provider_profile_id: UUID, limit: int = 50) -> list[Order]:
        return [o for o in self.orders.values() if o.provider_profile_id == provider_profile_id][:limit]

    def client_has_orders(self, client_id: UUID) -> bool:
        return any(o.client_id == client_id for o in self.orders.values())

    def latest_display_code(self) -> str | None:
        codes = sorted((o.display_code for o in self.orders.values()), key=lambda c: (len(c), c))
        return codes[-1] if codes else None

    def display_code_exists(self, display_code: str) -> bool:
        return any(o.display_code == display_code for o in self.orders.values())


class InMemoryLineItemStore:
    def __init__(self):
        self.items: dict[UUID, list[LineItem]] = {}
        self.replace_calls = 0

    def list_by_order(self, order_id: UUID) -> list[LineItem]:
        return list(self.items.get(order_id, []))

    def replace_all(self, order_id: UUID, items: list[LineItemCreate]) -> list[LineItem]:
        self.replace_calls += 1
        now = now_utc()
        self.items[order_id] = [
            LineItem(id=uuid4(), order_id=order_id, created_at=now, **item.model_dump())
            for item in items
        ]
        return self.list_by_order(order_id)


class InMemoryReceiptStore:
    def __init__(self):
        self.receipts: dict[UUID, Receipt] = {}
        self.create_calls = 0

    def create(self, data: ReceiptCreate) -> Receipt:
        self.create_calls += 1
        if data.order_id in self.receipts:
            raise ReceiptAlreadyExistsError(data.order_id)
        receipt = Receipt(id=uuid4(), created_at=now_utc(), **data.model_dump())
        self.receipts[data.order_id] = receipt
        return receipt

    def find_by_order(self, order_id: UUID) -> Receipt | None:
        return self.receipts.get(order_id)


class InMemoryProfileDirectory:
    def __init__(self, profiles: list[ProviderProfile]):
        self.profiles = {p.id: p for p in profiles}

    def find_by_id(self, profile_id: UUID) -> ProviderProfile | None:
        return self.profiles.get(profile_id)

    def find_by_user_id(self, user_id: UUID) -> ProviderProfile | None:
        return next((p for p in self.profiles.values() if p.user_id == user_id), None)


class InMemoryCategoryCatalog:
    def __init__(self, categories: list[Category]):
        self.categories = {c.id: c for c in categories}

    def get(self, category_id: UUID) -> Category | None:
        return self.categories.get(category_id)


class EventRecorder:
    """Subscribes to every order event type and keeps what it sees."""

    EVENT_TYPES = ("OrderCreated", "OrderStatusChanged", "OrderFinalized")

    def __init__(self, bus: EventBus):
        self.events = []
        for event_type in self.EVENT_TYPES:
            bus.subscribe(event_type, self.events.append)

    def of_type(self, name: str) -> list:
        return [e for e in self.events if type(e).__name__ == name]


# =============================================================================
# VAULT
# =============================================================================


@pytest.fixture(autouse=True)
def reset_vault_singleton():
    """Each test starts without a cached Vault client or secrets."""
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()
    yield
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()


# =============================================================================
# ACTORS
# =============================================================================


@pytest.fixture
def client_actor() -> Actor:
    return Actor(id=CLIENT_ID, role=Role.CLIENT)


@pytest.fixture
def other_client_actor() -> Actor:
    return Actor(id=OTHER_CLIENT_ID, role=Role.CLIENT)


@pytest.fixture
def provider_actor() -> Actor:
    return Actor(id=PROVIDER_USER_ID, role=Role.PROVIDER)


@pytest.fixture
def other_provider_actor() -> Actor:
    return Actor(id=OTHER_PROVIDER_USER_ID, role=Role.PROVIDER)


@pytest.fixture
def admin_actor() -> Actor:
    return Actor(id=ADMIN_ID, role=Role.ADMIN)


# =============================================================================
# COLLABORATORS
# =============================================================================


@pytest.fixture
def profile_id() -> UUID:
    return PROFILE_ID


@pytest.fixture
def other_profile_id() -> UUID:
    return OTHER_PROFILE_ID


@pytest.fixture
def hourly_category_id() -> UUID:
    return HOURLY_CATEGORY_ID


@pytest.fixture
def fixed_category_id() -> UUID:
    return FIXED_CATEGORY_ID


@pytest.fixture
def config() -> PricingConfig:
    return PricingConfig()


@pytest.fixture
def order_store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture
def line_item_store() -> InMemoryLineItemStore:
    return InMemoryLineItemStore()


@pytest.fixture
def receipt_store() -> InMemoryReceiptStore:
    return InMemoryReceiptStore()


@pytest.fixture
def profiles() -> InMemoryProfileDirectory:
    return InMemoryProfileDirectory([
        ProviderProfile(id=PROFILE_ID, user_id=PROVIDER_USER_ID, hourly_rate=10000),
        ProviderProfile(id=OTHER_PROFILE_ID, user_id=OTHER_PROVIDER_USER_ID, hourly_rate=20000),
    ])


@pytest.fixture
def categories() -> InMemoryCategoryCatalog:
    return InMemoryCategoryCatalog([
        Category(id=HOURLY_CATEGORY_ID, key="plumbing", name="Plumbing"),
        Category(id=FIXED_CATEGORY_ID, key="painting", name="Painting", pricing_mode=PricingMode.FIXED),
    ])


@pytest.fixture
def payment_gateway():
    """Payment collaborator with an AUTHORIZED payment for any order."""
    gateway = Mock()

    def find_by_order(order_id):
        return Payment(id=uuid4(), order_id=order_id, status=PaymentStatus.AUTHORIZED, amount_authorized=50000)

    gateway.find_by_order.side_effect = find_by_order
    gateway.capture.side_effect = lambda payment_id: Payment(
        id=payment_id, order_id=uuid4(), status=PaymentStatus.CAPTURED
    )
    return gateway


@pytest.fixture
def earnings_ledger():
    return Mock()


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def events(event_bus) -> EventRecorder:
    return EventRecorder(event_bus)


# =============================================================================
# SERVICES
# =============================================================================


@pytest.fixture
def authorizer(profiles) -> OrderAuthorizer:
    return OrderAuthorizer(profiles)


@pytest.fixture
def lifecycle(order_store, authorizer, payment_gateway, audit, event_bus, config):
    return OrderLifecycleService(order_store, authorizer, payment_gateway, audit, event_bus, config)


@pytest.fixture
def finalization(order_store, line_item_store, receipt_store, payment_gateway, earnings_ledger, audit, event_bus, config):
    return OrderFinalizationService(
        order_store, line_item_store, receipt_store, payment_gateway, earnings_ledger, audit, event_bus, config
    )


@pytest.fixture
def order_service(order_store, receipt_store, profiles, categories, audit, event_bus, config):
    return OrderService(order_store, receipt_store, profiles, categories, audit, event_bus, config)


# =============================================================================
# ORDER FACTORY
# =============================================================================


@pytest.fixture
def make_order(order_store):
    """
    Insert an order directly into the store.

    Defaults to an hourly order at 100.00/hour assigned to PROFILE_ID,
    owned by CLIENT_ID, in PENDING_CONFIRMATION.
    """
    counter = iter(range(1, 10_000))

    def _make(**overrides) -> Order:
        from core.display_code import generate_display_code

        now = now_utc()
        fields = {
            "id": uuid4(),
            "display_code": generate_display_code(next(counter)),
            "client_id": CLIENT_ID,
            "provider_profile_id": PROFILE_ID,
            "category_id": HOURLY_CATEGORY_ID,
            "address_text": "Av. 18 de Julio 1234, Montevideo",
            "scheduled_start_at": now + timedelta(days=1),
            "status": OrderStatus.PENDING_CONFIRMATION,
            "pricing_mode": PricingMode.HOURLY,
            "hourly_rate_snapshot": 10000,
            "estimated_hours": Decimal("2"),
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return order_store.add(Order.model_validate(fields))

    return _make
