"""Order (marketplace job) domain models.

All amounts are stored in minor units (integer) to avoid floating point issues.
UYU 100.00 = 10000. Hours are Decimal; rates are Decimal fractions (0.10 = 10%).
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class OrderStatus(str, Enum):
    """Order lifecycle status."""

    DRAFT = "draft"
    PENDING_CONFIRMATION = "pending_confirmation"
    ACCEPTED = "accepted"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    AWAITING_APPROVAL = "awaiting_approval"
    COMPLETED = "completed"
    DISPUTED = "disputed"
    PAID = "paid"
    CANCELED = "canceled"


class PricingMode(str, Enum):
    """How labor is priced. Decided once at creation from the category."""

    HOURLY = "hourly"  # Approved hours x hourly rate snapshot
    FIXED = "fixed"    # Provider quote accepted by the client


class ApprovalMethod(str, Enum):
    """How the worked hours (or fixed completion) were approved."""

    CLIENT_ACCEPTED = "client_accepted"
    AUTO_ACCEPTED = "auto_accepted"
    ADMIN_ADJUSTED = "admin_adjusted"


class DisputeStatus(str, Enum):
    """Dispute sub-state. Only reachable from AWAITING_APPROVAL."""

    NONE = "none"
    OPENED = "opened"
    RESOLVED = "resolved"


class OrderCreate(BaseModel):
    """Data a client submits to request a service."""

    provider_profile_id: UUID
    category_id: UUID
    subcategory_id: UUID | None = None
    title: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=2000)
    address_text: str = Field(..., min_length=1, max_length=500)
    address_lat: float | None = Field(None, ge=-90, le=90)
    address_lng: float | None = Field(None, ge=-180, le=180)
    scheduled_start_at: datetime
    scheduled_end_at: datetime | None = None
    estimated_hours: Decimal | None = Field(None, gt=0)

    @model_validator(mode="after")
    def validate_window(self) -> "OrderCreate":
        """Ensure the requested window is not inverted."""
        if self.scheduled_end_at is not None and self.scheduled_end_at <= self.scheduled_start_at:
            raise ValueError("scheduled_end_at must be after scheduled_start_at")
        return self


class Order(BaseModel):
    """Full order entity as stored."""

    id: UUID
    display_code: str
    client_id: UUID
    provider_profile_id: UUID | None
    category_id: UUID
    subcategory_id: UUID | None = None
    category_snapshot: dict[str, Any] | None = None

    title: str | None = None
    description: str | None = None
    address_text: str
    address_lat: float | None = None
    address_lng: float | None = None
    scheduled_start_at: datetime
    scheduled_end_at: datetime | None = None

    status: OrderStatus
    accepted_at: datetime | None = None
    confirmed_at: datetime | None = None
    started_at: datetime | None = None
    arrived_at: datetime | None = None
    submitted_at: datetime | None = None
    completed_at: datetime | None = None
    paid_at: datetime | None = None
    canceled_at: datetime | None = None
    cancel_reason: str | None = None

    pricing_mode: PricingMode
    hourly_rate_snapshot: int
    currency: str = "UYU"

    # Hourly mode
    estimated_hours: Decimal | None = None
    final_hours_submitted: Decimal | None = None
    approved_hours: Decimal | None = None
    approval_method: ApprovalMethod | None = None

    # Fixed mode
    quoted_amount: int | None = None
    quoted_at: datetime | None = None
    quote_message: str | None = None
    quote_accepted_at: datetime | None = None

    # Totals (null until finalized)
    subtotal_amount: int | None = None
    platform_fee_amount: int | None = None
    tax_amount: int | None = None
    total_amount: int | None = None
    tax_scheme: str | None = None
    tax_rate: Decimal | None = None
    tax_region: str | None = None
    tax_included: bool = False
    totals_calculated_at: datetime | None = None

    dispute_status: DisputeStatus = DisputeStatus.NONE
    dispute_reason: str | None = None
    dispute_opened_by: UUID | None = None

    is_first_order: bool = False
    work_proof_photo_urls: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def is_fixed_price(self) -> bool:
        """Whether labor comes from an accepted quote rather than hours."""
        return self.pricing_mode == PricingMode.FIXED

    @property
    def is_finalized(self) -> bool:
        """Whether totals have been locked in."""
        return self.status in (OrderStatus.COMPLETED, OrderStatus.PAID)
