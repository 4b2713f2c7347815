"""
Order lifecycle state machine.

The allowed transitions are data: a total mapping from every status to the
set of statuses it may move to. Anything not in the table fails, including
same-status transitions. The "arrived" marker is not a status and never
appears here.
"""

from core.exceptions import InvalidTransitionError
from core.models import OrderStatus

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.DRAFT: frozenset({OrderStatus.PENDING_CONFIRMATION}),
    OrderStatus.PENDING_CONFIRMATION: frozenset({
        OrderStatus.ACCEPTED,
        OrderStatus.CANCELED,
    }),
    OrderStatus.ACCEPTED: frozenset({
        OrderStatus.CONFIRMED,
        OrderStatus.CANCELED,
    }),
    OrderStatus.CONFIRMED: frozenset({
        OrderStatus.IN_PROGRESS,
        OrderStatus.CANCELED,
    }),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.AWAITING_APPROVAL}),
    OrderStatus.AWAITING_APPROVAL: frozenset({
        OrderStatus.COMPLETED,
        OrderStatus.DISPUTED,
    }),
    OrderStatus.COMPLETED: frozenset({OrderStatus.PAID}),
    OrderStatus.DISPUTED: frozenset({
        OrderStatus.COMPLETED,
        OrderStatus.CANCELED,
    }),
    OrderStatus.PAID: frozenset(),
    OrderStatus.CANCELED: frozenset(),
}

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    status for status, successors in ALLOWED_TRANSITIONS.items() if not successors
)

_missing = set(OrderStatus) - set(ALLOWED_TRANSITIONS)
if _missing:
    raise RuntimeError(f"Transition table has no entry for: {sorted(s.value for s in _missing)}")


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Return True if current -> target is allowed."""
    return target in ALLOWED_TRANSITIONS[current]


def assert_transition(current: OrderStatus, target: OrderStatus) -> None:
    """
    Fail unless current -> target is allowed.

    Raises:
        InvalidTransitionError: Carrying both statuses
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)


def is_terminal(status: OrderStatus) -> bool:
    """Return True if no transition leaves this status."""
    return status in TERMINAL_STATUSES
