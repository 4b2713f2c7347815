"""Cost breakdown returned for estimates and finalized receipts."""

from decimal import Decimal

from pydantic import BaseModel


class CostLine(BaseModel):
    type: str
    description: str
    amount: int


class CostBreakdown(BaseModel):
    """
    Priced breakdown of an order. All amounts in minor units.

    kind is "estimate" before finalization and "receipt" after.
    """

    kind: str = "estimate"
    labor_amount: int
    platform_fee_amount: int
    platform_fee_rate: Decimal
    tax_amount: int
    tax_rate: Decimal
    subtotal_amount: int
    total_amount: int
    currency: str
    lines: list[CostLine]
