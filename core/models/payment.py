"""Payment snapshot as reported by the payment collaborator."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class PaymentStatus(str, Enum):
    CREATED = "created"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    FAILED = "failed"
    CANCELED = "canceled"
    REFUNDED = "refunded"


class Payment(BaseModel):
    """Payment record for an order. Amounts in minor units."""

    id: UUID
    order_id: UUID
    status: PaymentStatus
    amount_authorized: int | None = None
    amount_captured: int | None = None
    currency: str = "UYU"

    model_config = {"from_attributes": True}

    @property
    def is_authorized(self) -> bool:
        return self.status == PaymentStatus.AUTHORIZED
