"""Order line item domain models.

Every finalized order carries exactly three line items: labor, platform fee
and tax. Amounts are minor units. Line items are replaced wholesale on each
finalization, never patched.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class LineItemType(str, Enum):
    """Priced component of an order total."""

    LABOR = "labor"
    PLATFORM_FEE = "platform_fee"
    TAX = "tax"


class TaxBehavior(str, Enum):
    """Whether an item contributes to the taxable base."""

    TAXABLE = "taxable"
    NON_TAXABLE = "non_taxable"  # Tax itself, to avoid tax-on-tax


class LineItemCreate(BaseModel):
    """A computed line item ready to be persisted."""

    type: LineItemType
    description: str = Field(..., max_length=500)
    quantity: Decimal = Field(Decimal("1"), gt=0)
    unit_amount: int
    amount: int = Field(..., ge=0)
    currency: str = "UYU"
    tax_behavior: TaxBehavior = TaxBehavior.TAXABLE
    tax_rate: Decimal | None = None


class LineItem(BaseModel):
    """Full line item entity as stored."""

    id: UUID
    order_id: UUID
    type: LineItemType
    description: str
    quantity: Decimal
    unit_amount: int
    amount: int
    currency: str
    tax_behavior: TaxBehavior
    tax_rate: Decimal | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
