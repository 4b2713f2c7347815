"""Core domain models."""

from core.models.order import (
    Order, OrderCreate, OrderStatus, PricingMode, ApprovalMethod, DisputeStatus,
)
from core.models.line_item import LineItem, LineItemCreate, LineItemType, TaxBehavior
from core.models.receipt import Receipt, ReceiptCreate, ReceiptLine
from core.models.actor import Actor, Role, SYSTEM_ACTOR
from core.models.catalog import ProviderProfile, ProviderProfileStatus, Category
from core.models.payment import Payment, PaymentStatus
from core.models.estimate import CostBreakdown, CostLine

__all__ = [
    # Order
    "Order", "OrderCreate", "OrderStatus", "PricingMode", "ApprovalMethod", "DisputeStatus",
    # LineItem
    "LineItem", "LineItemCreate", "LineItemType", "TaxBehavior",
    # Receipt
    "Receipt", "ReceiptCreate", "ReceiptLine",
    # Actor
    "Actor", "Role", "SYSTEM_ACTOR",
    # Catalog
    "ProviderProfile", "ProviderProfileStatus", "Category",
    # Payment
    "Payment", "PaymentStatus",
    # Estimate
    "CostBreakdown", "CostLine",
]
