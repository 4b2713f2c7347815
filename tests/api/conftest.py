"""API test fixtures: TestClient over the app wired to in-memory stores."""

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from core.models import Actor


# =============================================================================
# SERVICES DICT
# =============================================================================


@pytest.fixture
def services(order_service, lifecycle, finalization, authorizer, profiles, event_bus):
    return {
        "order": order_service,
        "lifecycle": lifecycle,
        "finalization": finalization,
        "authorizer": authorizer,
        "profiles": profiles,
        "event_bus": event_bus,
    }


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services):
    """FastAPI app with actor middleware, error handlers, and order routes."""
    return create_app(services)


@pytest.fixture
def client(app):
    """Client without actor headers; use headers_for() per request."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def headers_for():
    """Gateway headers asserting the given actor."""
    def _headers(actor: Actor) -> dict[str, str]:
        return {"X-Actor-Id": str(actor.id), "X-Actor-Role": actor.role.value}

    return _headers


@pytest.fixture
def as_client(client_actor, headers_for):
    return headers_for(client_actor)


@pytest.fixture
def as_provider(provider_actor, headers_for):
    return headers_for(provider_actor)


@pytest.fixture
def as_admin(admin_actor, headers_for):
    return headers_for(admin_actor)
