"""Receipt domain models.

A receipt is the immutable financial snapshot of a finalized order. At most
one exists per order; its existence marks finalization as done.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from core.models.line_item import LineItemType


class ReceiptLine(BaseModel):
    """One line as displayed on the receipt."""

    type: LineItemType
    description: str
    amount: int


class ReceiptCreate(BaseModel):
    """Data captured at finalization."""

    order_id: UUID
    lines: list[ReceiptLine]
    labor_amount: int
    platform_fee_amount: int
    platform_fee_rate: Decimal
    tax_amount: int
    tax_rate: Decimal
    subtotal_amount: int
    total_amount: int
    currency: str
    approved_hours: Decimal | None = None
    finalized_at: datetime


class Receipt(ReceiptCreate):
    """Full receipt entity as stored."""

    id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}
