"""Typed exceptions for order lifecycle and finalization failures."""

from uuid import UUID


class OrderError(Exception):
    """Base class for order domain errors."""


# =============================================================================
# NOT FOUND
# =============================================================================


class NotFoundError(OrderError):
    """A required record does not exist."""


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: UUID | str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class PaymentNotFoundError(NotFoundError):
    def __init__(self, order_id: UUID | str):
        self.order_id = order_id
        super().__init__(
            f"Payment not found for order {order_id}. "
            "Payment must be authorized before confirming order."
        )


class ProviderProfileNotFoundError(NotFoundError):
    def __init__(self, profile_id: UUID | str):
        self.profile_id = profile_id
        super().__init__(f"Provider profile {profile_id} not found")


class CategoryNotFoundError(NotFoundError):
    def __init__(self, category_id: UUID | str):
        self.category_id = category_id
        super().__init__(f"Category {category_id} not found")


# =============================================================================
# STATE MACHINE / AUTHORIZATION
# =============================================================================


class InvalidTransitionError(OrderError):
    """Transition not present in the order state machine."""

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid order status transition: {_value(current)} -> {_value(target)}"
        )


class UnauthorizedActionError(OrderError):
    """Actor may not perform this action on this order."""

    def __init__(self, action: str, reason: str):
        self.action = action
        self.reason = reason
        super().__init__(f"Not authorized to {action}: {reason}")


# =============================================================================
# VALIDATION
# =============================================================================


class OrderValidationError(OrderError):
    """
    Input or precondition failed.

    Non-positive hours or amounts, missing required fields, too many photos,
    wrong pricing mode for the action.
    """


class PaymentNotAuthorizedError(OrderValidationError):
    """Payment exists but is not in the AUTHORIZED state."""

    def __init__(self, order_id: UUID | str, status):
        self.order_id = order_id
        self.status = status
        super().__init__(
            f"Payment for order {order_id} must be AUTHORIZED before confirming. "
            f"Current payment status: {_value(status)}"
        )


# =============================================================================
# FINALIZATION
# =============================================================================


class AlreadyFinalizedError(OrderError):
    def __init__(self, order_id: UUID | str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} is already finalized")


class CannotFinalizeError(OrderError):
    """Order is missing what finalization needs (quote, consistent totals)."""


class ReceiptAlreadyExistsError(OrderError):
    """Raised by receipt persistence when the order already has one."""

    def __init__(self, order_id: UUID | str):
        self.order_id = order_id
        super().__init__(f"Receipt already exists for order {order_id}")


class DependencyError(OrderError):
    """
    A best-effort downstream step failed.

    Never propagated to callers. Carried in the best-effort outcome and logged.
    """

    def __init__(self, step: str, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"{step} failed: {cause}")


def _value(status) -> str:
    return getattr(status, "value", str(status))
