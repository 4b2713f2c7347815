"""Pricing and tax configuration."""

from decimal import Decimal

from pydantic import BaseModel, Field


class PricingConfig(BaseModel):
    """
    Pricing configuration for finalization and estimates.

    Rates are fractions (0.10 = 10%). Changing them never affects orders that
    already have a receipt: receipts snapshot the rates they were priced with.
    """

    platform_fee_rate: Decimal = Field(
        default=Decimal("0.10"),
        description="Platform fee charged on top of labor",
        ge=0,
        le=1,
    )
    tax_rate: Decimal = Field(
        default=Decimal("0.22"),
        description="Tax applied to labor + platform fee",
        ge=0,
        le=1,
    )
    tax_scheme: str = Field(
        default="iva",
        description="Tax scheme recorded on finalized orders",
    )
    tax_region: str = Field(
        default="UY",
        description="Tax region recorded on finalized orders",
    )
    tax_included: bool = Field(
        default=False,
        description="Whether prices already include tax",
    )
    currency: str = Field(
        default="UYU",
        description="Currency for new orders",
        min_length=3,
        max_length=3,
    )
    max_work_proof_photos: int = Field(
        default=10,
        description="Max photos a provider can attach when submitting work",
        ge=0,
        le=50,
    )
