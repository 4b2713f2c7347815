"""Provider profiles and categories, as supplied by their directories."""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from core.models.order import PricingMode


class ProviderProfileStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class ProviderProfile(BaseModel):
    """Provider profile. hourly_rate is in minor units."""

    id: UUID
    user_id: UUID
    hourly_rate: int = Field(..., ge=0)
    status: ProviderProfileStatus = ProviderProfileStatus.ACTIVE

    model_config = {"from_attributes": True}


class Category(BaseModel):
    """Service category. Its pricing mode is copied onto orders at creation."""

    id: UUID
    key: str
    name: str
    pricing_mode: PricingMode = PricingMode.HOURLY
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"from_attributes": True}

    def snapshot(self) -> dict[str, Any]:
        """Denormalized copy stored on the order so later catalog edits don't leak in."""
        return {
            **self.metadata,
            "id": str(self.id),
            "key": self.key,
            "name": self.name,
            "pricing_mode": self.pricing_mode.value,
        }
