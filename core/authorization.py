"""
Authorization guards for order actions.

Every guard is the same capability check: admins pass, the actor must hold
the required role, and an ownership predicate must accept the actor. The
predicate returns a failure reason or None. Reason strings are part of the
contract; callers and the API layer show them as-is.
"""

import logging
from typing import Callable

from core.exceptions import UnauthorizedActionError
from core.models import Actor, Order, Role
from core.ports import ProviderProfileDirectory

logger = logging.getLogger(__name__)

OwnershipCheck = Callable[[Actor, Order], str | None]

REASON_CLIENT_ROLE = "Only clients can perform this action"
REASON_PROVIDER_ROLE = "Only providers can perform this action"
REASON_PROFILE_NOT_FOUND = "Provider profile not found"
REASON_NOT_ASSIGNED = "Order is not assigned to this provider"
REASON_NOT_CLIENTS_ORDER = "Order does not belong to this client"
REASON_NOT_USERS_ORDER = "Order does not belong to this user"

_ROLE_REASONS = {
    Role.CLIENT: REASON_CLIENT_ROLE,
    Role.PROVIDER: REASON_PROVIDER_ROLE,
}


def authorize(
    actor: Actor,
    order: Order,
    action: str,
    role: Role,
    owns: OwnershipCheck
) -> None:
    """
    Generic capability check.

    Raises:
        UnauthorizedActionError: Wrong role, or ownership check failed
    """
    if actor.is_admin:
        return

    if actor.role != role:
        raise UnauthorizedActionError(action, _ROLE_REASONS[role])

    reason = owns(actor, order)
    if reason is not None:
        raise UnauthorizedActionError(action, reason)


def client_owns(actor: Actor, order: Order) -> str | None:
    if order.client_id != actor.id:
        return REASON_NOT_CLIENTS_ORDER
    return None


class OrderAuthorizer:
    """Guards for client-scoped, provider-scoped and cancellation actions."""

    def __init__(self, profiles: ProviderProfileDirectory):
        self.profiles = profiles

    def provider_owns(self, actor: Actor, order: Order) -> str | None:
        """Actor's provider profile must be the one assigned to the order."""
        profile = self.profiles.find_by_user_id(actor.id)
        if profile is None:
            return REASON_PROFILE_NOT_FOUND
        if order.provider_profile_id != profile.id:
            return REASON_NOT_ASSIGNED
        return None

    def authorize_provider_action(self, actor: Actor, order: Order, action: str) -> None:
        authorize(actor, order, action, Role.PROVIDER, self.provider_owns)

    def authorize_client_action(self, actor: Actor, order: Order, action: str) -> None:
        authorize(actor, order, action, Role.CLIENT, client_owns)

    def authorize_cancellation(self, actor: Actor, order: Order) -> None:
        """Either party may cancel."""
        self.authorize_participant(actor, order, "cancel order")

    def authorize_participant(self, actor: Actor, order: Order, action: str) -> None:
        """
        The order's client or its assigned provider.

        The client check runs first; the profile lookup only happens for
        provider actors who are not the client.
        """
        if actor.is_admin:
            return

        if client_owns(actor, order) is None:
            return

        if actor.role == Role.PROVIDER and self.provider_owns(actor, order) is None:
            return

        logger.info(
            "Denied %s for actor %s (%s) on order %s",
            action, actor.id, actor.role.value, order.id,
        )
        raise UnauthorizedActionError(action, REASON_NOT_USERS_ORDER)
