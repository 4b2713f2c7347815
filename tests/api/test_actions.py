"""Tests for POST /api/orders/{order_id}/actions unified mutation endpoint."""

from decimal import Decimal
from uuid import uuid4

import pytest

from core.models import OrderStatus, PricingMode


def _act(client, headers, order_id, action, data=None):
    return client.post(
        f"/api/orders/{order_id}/actions",
        json={"action": action, "data": data or {}},
        headers=headers,
    )


# =============================================================================
# AUTHENTICATION & VALIDATION
# =============================================================================


class TestActionsAuthentication:

    def test_unauthenticated_returns_401(self, client, make_order):
        response = client.post(f"/api/orders/{make_order().id}/actions", json={"action": "accept"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"


class TestActionsValidation:

    def test_missing_action_returns_422(self, client, as_provider, make_order):
        response = client.post(f"/api/orders/{make_order().id}/actions", json={"data": {}}, headers=as_provider)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_unknown_action_returns_400(self, client, as_provider, make_order):
        response = _act(client, as_provider, make_order().id, "teleport")

        assert response.status_code == 400
        assert "not allowed" in response.json()["error"]["message"]

    def test_invalid_order_id_returns_422(self, client, as_provider):
        response = _act(client, as_provider, "not-a-uuid", "accept")

        assert response.status_code == 422

    def test_unknown_order_returns_404(self, client, as_provider):
        response = _act(client, as_provider, uuid4(), "accept")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_non_numeric_hours_returns_400(self, client, as_provider, make_order):
        order = make_order(status=OrderStatus.IN_PROGRESS)

        response = _act(client, as_provider, order.id, "submit_hours", {"final_hours": "lots"})

        assert response.status_code == 400
        assert "final_hours" in response.json()["error"]["message"]

    @pytest.mark.parametrize("hours", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_hours_returns_400(self, client, as_provider, make_order, order_store, hours):
        order = make_order(status=OrderStatus.IN_PROGRESS)

        response = _act(client, as_provider, order.id, "submit_hours", {"final_hours": hours})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"
        assert order_store.get(order.id).status == OrderStatus.IN_PROGRESS

    @pytest.mark.parametrize("amount", [12.7, None, "50000", True])
    def test_non_integer_quote_returns_400(self, client, as_provider, make_order, order_store, amount):
        order = make_order(status=OrderStatus.ACCEPTED, pricing_mode=PricingMode.FIXED)

        response = _act(client, as_provider, order.id, "submit_quote", {"amount": amount})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"
        assert order_store.get(order.id).quoted_amount is None

    def test_missing_required_field_returns_400(self, client, as_provider, make_order):
        order = make_order(status=OrderStatus.IN_PROGRESS)

        response = _act(client, as_provider, order.id, "submit_hours", {})

        assert response.status_code == 400


# =============================================================================
# LIFECYCLE ACTIONS
# =============================================================================


class TestLifecycleActions:

    def test_accept(self, client, as_provider, make_order):
        response = _act(client, as_provider, make_order().id, "accept")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "accepted"
        assert body["meta"]["request_id"] == response.headers["X-Request-ID"]

    def test_wrong_party_returns_403(self, client, as_client, make_order):
        response = _act(client, as_client, make_order().id, "accept")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ACTION_NOT_ALLOWED"

    def test_invalid_transition_returns_409(self, client, as_provider, make_order):
        order = make_order(status=OrderStatus.PENDING_CONFIRMATION)

        response = _act(client, as_provider, order.id, "start")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    def test_submit_hours(self, client, as_provider, make_order):
        order = make_order(status=OrderStatus.IN_PROGRESS)

        response = _act(client, as_provider, order.id, "submit_hours", {
            "final_hours": "2.5",
            "photo_urls": ["https://cdn.example/a.jpg"],
        })

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "awaiting_approval"
        assert Decimal(data["final_hours_submitted"]) == Decimal("2.5")

    def test_submit_quote_and_accept(self, client, as_provider, as_client, make_order):
        order = make_order(status=OrderStatus.ACCEPTED, pricing_mode=PricingMode.FIXED)

        quoted = _act(client, as_provider, order.id, "submit_quote", {"amount": 50000, "message": "All in"})
        accepted = _act(client, as_client, order.id, "accept_quote")

        assert quoted.json()["data"]["quoted_amount"] == 50000
        assert accepted.json()["data"]["quote_accepted_at"] is not None

    def test_confirm_without_payment_returns_404(self, client, as_client, make_order, payment_gateway):
        payment_gateway.find_by_order.side_effect = lambda order_id: None
        order = make_order(status=OrderStatus.ACCEPTED)

        response = _act(client, as_client, order.id, "confirm")

        assert response.status_code == 404

    def test_dispute_requires_reason(self, client, as_client, make_order):
        order = make_order(status=OrderStatus.AWAITING_APPROVAL)

        response = _act(client, as_client, order.id, "dispute", {"reason": " "})

        assert response.status_code == 400

    def test_cancel_with_reason(self, client, as_client, make_order):
        response = _act(client, as_client, make_order().id, "cancel", {"reason": "Found someone closer"})

        data = response.json()["data"]
        assert data["status"] == "canceled"
        assert data["cancel_reason"] == "Found someone closer"


class TestApproveAction:

    def test_approve_finalizes_hourly_order(self, client, as_client, make_order, receipt_store):
        order = make_order(status=OrderStatus.AWAITING_APPROVAL, final_hours_submitted=Decimal("3"))

        response = _act(client, as_client, order.id, "approve")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "completed"
        assert data["total_amount"] == 40260
        assert data["approval_method"] == "client_accepted"
        assert receipt_store.find_by_order(order.id) is not None

    def test_approve_finalizes_fixed_order(self, client, as_client, make_order):
        order = make_order(
            status=OrderStatus.AWAITING_APPROVAL, pricing_mode=PricingMode.FIXED, quoted_amount=50000,
        )

        response = _act(client, as_client, order.id, "approve")

        assert response.json()["data"]["total_amount"] == 67100

    def test_approve_twice_returns_409(self, client, as_client, make_order):
        order = make_order(status=OrderStatus.AWAITING_APPROVAL, final_hours_submitted=Decimal("3"))
        _act(client, as_client, order.id, "approve")

        response = _act(client, as_client, order.id, "approve")

        assert response.status_code == 409

    def test_fixed_without_quote_returns_422(self, client, as_client, make_order):
        order = make_order(status=OrderStatus.AWAITING_APPROVAL, pricing_mode=PricingMode.FIXED)

        response = _act(client, as_client, order.id, "approve")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "ORDER_CANNOT_FINALIZE"


class TestForceStatusAction:

    def test_admin_forces_status(self, client, as_admin, make_order):
        order = make_order(status=OrderStatus.CANCELED)

        response = _act(client, as_admin, order.id, "force_status", {"status": "confirmed", "reason": "Support ticket"})

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "confirmed"

    def test_client_cannot_force_status(self, client, as_client, make_order):
        response = _act(client, as_client, make_order().id, "force_status", {"status": "paid"})

        assert response.status_code == 403

    @pytest.mark.parametrize("data", [{}, {"status": "teleported"}])
    def test_bad_status_returns_400(self, client, as_admin, make_order, data):
        response = _act(client, as_admin, make_order().id, "force_status", data)

        assert response.status_code == 400
