"""Tests for order action authorization guards."""

from unittest.mock import Mock
from uuid import uuid4

import pytest

from core.authorization import (
    REASON_CLIENT_ROLE,
    REASON_NOT_ASSIGNED,
    REASON_NOT_CLIENTS_ORDER,
    REASON_NOT_USERS_ORDER,
    REASON_PROFILE_NOT_FOUND,
    REASON_PROVIDER_ROLE,
    OrderAuthorizer,
)
from core.exceptions import UnauthorizedActionError
from core.models import Actor, Role


class TestProviderAction:

    def test_assigned_provider_passes(self, authorizer, provider_actor, make_order):
        authorizer.authorize_provider_action(provider_actor, make_order(), "accept order")

    def test_admin_passes(self, authorizer, admin_actor, make_order):
        authorizer.authorize_provider_action(admin_actor, make_order(), "accept order")

    def test_client_role_rejected(self, authorizer, client_actor, make_order):
        with pytest.raises(UnauthorizedActionError) as exc_info:
            authorizer.authorize_provider_action(client_actor, make_order(), "accept order")

        assert exc_info.value.reason == REASON_PROVIDER_ROLE
        assert str(exc_info.value) == f"Not authorized to accept order: {REASON_PROVIDER_ROLE}"

    def test_provider_without_profile_rejected(self, authorizer, make_order):
        stranger = Actor(id=uuid4(), role=Role.PROVIDER)

        with pytest.raises(UnauthorizedActionError) as exc_info:
            authorizer.authorize_provider_action(stranger, make_order(), "accept order")

        assert exc_info.value.reason == REASON_PROFILE_NOT_FOUND

    def test_unassigned_provider_rejected(self, authorizer, other_provider_actor, make_order):
        with pytest.raises(UnauthorizedActionError) as exc_info:
            authorizer.authorize_provider_action(other_provider_actor, make_order(), "accept order")

        assert exc_info.value.reason == REASON_NOT_ASSIGNED


class TestClientAction:

    def test_owner_passes(self, authorizer, client_actor, make_order):
        authorizer.authorize_client_action(client_actor, make_order(), "confirm order")

    def test_admin_passes(self, authorizer, admin_actor, make_order):
        authorizer.authorize_client_action(admin_actor, make_order(), "confirm order")

    def test_provider_role_rejected(self, authorizer, provider_actor, make_order):
        with pytest.raises(UnauthorizedActionError) as exc_info:
            authorizer.authorize_client_action(provider_actor, make_order(), "confirm order")

        assert exc_info.value.reason == REASON_CLIENT_ROLE

    def test_other_client_rejected(self, authorizer, other_client_actor, make_order):
        with pytest.raises(UnauthorizedActionError) as exc_info:
            authorizer.authorize_client_action(other_client_actor, make_order(), "confirm order")

        assert exc_info.value.reason == REASON_NOT_CLIENTS_ORDER


class TestCancellation:

    def test_client_owner_passes(self, authorizer, client_actor, make_order):
        authorizer.authorize_cancellation(client_actor, make_order())

    def test_assigned_provider_passes(self, authorizer, provider_actor, make_order):
        authorizer.authorize_cancellation(provider_actor, make_order())

    def test_admin_passes(self, authorizer, admin_actor, make_order):
        authorizer.authorize_cancellation(admin_actor, make_order())

    def test_other_client_rejected(self, authorizer, other_client_actor, make_order):
        with pytest.raises(UnauthorizedActionError) as exc_info:
            authorizer.authorize_cancellation(other_client_actor, make_order())

        assert exc_info.value.action == "cancel order"
        assert exc_info.value.reason == REASON_NOT_USERS_ORDER

    def test_unassigned_provider_rejected(self, authorizer, provider_actor, make_order, other_profile_id):
        order = make_order(provider_profile_id=other_profile_id)

        with pytest.raises(UnauthorizedActionError) as exc_info:
            authorizer.authorize_cancellation(provider_actor, order)

        assert exc_info.value.reason == REASON_NOT_USERS_ORDER

    def test_client_check_skips_profile_lookup(self, client_actor, make_order):
        profiles = Mock()
        OrderAuthorizer(profiles).authorize_cancellation(client_actor, make_order())

        profiles.find_by_user_id.assert_not_called()


class TestParticipant:
    """Read access: the order's client, its provider, or an admin."""

    @pytest.mark.parametrize("actor_fixture", ["client_actor", "provider_actor", "admin_actor"])
    def test_participants_pass(self, authorizer, make_order, request, actor_fixture):
        authorizer.authorize_participant(request.getfixturevalue(actor_fixture), make_order(), "view order")

    def test_stranger_rejected_with_action(self, authorizer, other_client_actor, make_order):
        with pytest.raises(UnauthorizedActionError) as exc_info:
            authorizer.authorize_participant(other_client_actor, make_order(), "view order")

        assert exc_info.value.action == "view order"
        assert exc_info.value.reason == REASON_NOT_USERS_ORDER

    def test_provider_without_profile_rejected(self, authorizer, make_order):
        with pytest.raises(UnauthorizedActionError):
            authorizer.authorize_participant(Actor(id=uuid4(), role=Role.PROVIDER), make_order(), "view order")
