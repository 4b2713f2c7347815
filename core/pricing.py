"""
Order pricing.

Pure functions for labor, platform fee, tax and totals, plus the line items and
cost breakdowns built from them.

IMPORTANT: All amounts are integer MINOR UNITS (cents). The order of operations
is fixed and each of labor, platform fee and tax is rounded half away from zero
before the next step uses it. Rounding once at the end gives different numbers
and would make historical receipts irreproducible.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from core.exceptions import OrderValidationError
from core.models import (
    CostBreakdown, CostLine, LineItemCreate, LineItemType, Order, PricingMode, TaxBehavior,
)

DEFAULT_PLATFORM_FEE_RATE = Decimal("0.10")
DEFAULT_TAX_RATE = Decimal("0.22")

FIXED_LABOR_DESCRIPTION = "Labor (fixed quote)"
QUOTE_PENDING_DESCRIPTION = "Quote pending"


@dataclass(frozen=True)
class Totals:
    """Result of one pricing pass. All amounts in minor units."""

    labor_amount: int
    platform_fee_amount: int
    taxable_base: int
    tax_amount: int
    subtotal_amount: int
    total_amount: int


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Exact Decimal for a numeric input. Floats go through str to keep 1.333 as 1.333."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def positive_hours(value: Decimal | int | float | str | None, label: str = "Hours") -> Decimal:
    """
    Hours as a finite, strictly positive Decimal.

    Raises:
        OrderValidationError: Missing, not a number, NaN/Infinity, or <= 0
    """
    if value is None or isinstance(value, bool):
        raise OrderValidationError(f"{label} must be greater than 0")
    try:
        hours = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise OrderValidationError(f"{label} must be a number") from e
    if not hours.is_finite() or hours <= 0:
        raise OrderValidationError(f"{label} must be greater than 0")
    return hours


def round_minor_units(value: Decimal | int | float | str) -> int:
    """Round to the nearest minor unit, half away from zero."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_labor_amount(hours: Decimal | float, hourly_rate: int) -> int:
    """Labor = round(hours x hourly rate)."""
    return round_minor_units(to_decimal(hours) * hourly_rate)


def calculate_platform_fee(
    labor_amount: int,
    platform_fee_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE
) -> int:
    """Platform fee = round(labor x rate)."""
    return round_minor_units(labor_amount * to_decimal(platform_fee_rate))


def calculate_tax(taxable_base: int, tax_rate: Decimal = DEFAULT_TAX_RATE) -> int:
    """Tax = round(taxable base x rate)."""
    return round_minor_units(taxable_base * to_decimal(tax_rate))


def calculate_totals(
    labor_amount: int,
    platform_fee_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE,
    tax_rate: Decimal = DEFAULT_TAX_RATE
) -> Totals:
    """
    Run the pricing steps from an already-rounded labor amount.

    Args:
        labor_amount: Labor in minor units
        platform_fee_rate: Fraction, e.g. 0.10
        tax_rate: Fraction, e.g. 0.22

    Returns:
        Totals with subtotal = labor + fee and total = subtotal + tax
    """
    platform_fee_amount = calculate_platform_fee(labor_amount, platform_fee_rate)
    taxable_base = labor_amount + platform_fee_amount
    tax_amount = calculate_tax(taxable_base, tax_rate)
    subtotal_amount = labor_amount + platform_fee_amount

    return Totals(
        labor_amount=labor_amount,
        platform_fee_amount=platform_fee_amount,
        taxable_base=taxable_base,
        tax_amount=tax_amount,
        subtotal_amount=subtotal_amount,
        total_amount=subtotal_amount + tax_amount,
    )


def summarize_line_items(items: Iterable, tax_rate: Decimal = DEFAULT_TAX_RATE) -> Totals:
    """
    Recompute totals from persisted line items.

    Subtotal is every non-tax item; tax is recomputed from the taxable items
    rather than read off the tax line, so a stale tax line shows up as a
    mismatch.
    """
    items = list(items)
    labor_amount = sum(i.amount for i in items if i.type == LineItemType.LABOR)
    platform_fee_amount = sum(i.amount for i in items if i.type == LineItemType.PLATFORM_FEE)
    subtotal_amount = sum(i.amount for i in items if i.type != LineItemType.TAX)
    taxable_base = sum(i.amount for i in items if i.tax_behavior == TaxBehavior.TAXABLE)
    tax_amount = calculate_tax(taxable_base, tax_rate)

    return Totals(
        labor_amount=labor_amount,
        platform_fee_amount=platform_fee_amount,
        taxable_base=taxable_base,
        tax_amount=tax_amount,
        subtotal_amount=subtotal_amount,
        total_amount=subtotal_amount + tax_amount,
    )


# =============================================================================
# DESCRIPTIONS
# =============================================================================


def _format_number(value: Decimal) -> str:
    """3.000 -> '3', 1.3330 -> '1.333', 100.00 -> '100'."""
    return format(to_decimal(value).normalize(), "f")


def _format_percent(rate: Decimal) -> str:
    return _format_number(to_decimal(rate) * 100)


def hourly_labor_description(hours: Decimal, hourly_rate: int) -> str:
    rate_major = Decimal(hourly_rate) / 100
    return f"Labor ({_format_number(hours)} hours × {_format_number(rate_major)}/hour)"


def platform_fee_description(platform_fee_rate: Decimal) -> str:
    return f"Platform fee ({_format_percent(platform_fee_rate)}%)"


def tax_description(tax_rate: Decimal) -> str:
    return f"Tax ({_format_percent(tax_rate)}%)"


# =============================================================================
# LINE ITEMS
# =============================================================================


def build_line_items(
    order: Order,
    approved_hours: Decimal | None = None,
    platform_fee_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE,
    tax_rate: Decimal = DEFAULT_TAX_RATE
) -> list[LineItemCreate]:
    """
    Build the labor, platform fee and tax line items for finalization.

    Hourly orders price approved_hours against the order's rate snapshot.
    Fixed orders price the quoted amount and ignore the rate snapshot.

    Raises:
        OrderValidationError: Missing or non-positive hours (hourly) or quote (fixed)
    """
    if order.pricing_mode == PricingMode.FIXED:
        if not order.quoted_amount or order.quoted_amount <= 0:
            raise OrderValidationError(f"Order {order.id} has no quoted amount to price")
        labor_amount = order.quoted_amount
        labor_item = LineItemCreate(
            type=LineItemType.LABOR,
            description=FIXED_LABOR_DESCRIPTION,
            quantity=Decimal("1"),
            unit_amount=labor_amount,
            amount=labor_amount,
            currency=order.currency,
            tax_behavior=TaxBehavior.TAXABLE,
        )
    else:
        if approved_hours is None or to_decimal(approved_hours) <= 0:
            raise OrderValidationError(f"Order {order.id} requires positive approved hours")
        hours = to_decimal(approved_hours)
        labor_amount = calculate_labor_amount(hours, order.hourly_rate_snapshot)
        labor_item = LineItemCreate(
            type=LineItemType.LABOR,
            description=hourly_labor_description(hours, order.hourly_rate_snapshot),
            quantity=hours,
            unit_amount=order.hourly_rate_snapshot,
            amount=labor_amount,
            currency=order.currency,
            tax_behavior=TaxBehavior.TAXABLE,
        )

    totals = calculate_totals(labor_amount, platform_fee_rate, tax_rate)

    return [
        labor_item,
        LineItemCreate(
            type=LineItemType.PLATFORM_FEE,
            description=platform_fee_description(platform_fee_rate),
            unit_amount=totals.platform_fee_amount,
            amount=totals.platform_fee_amount,
            currency=order.currency,
            tax_behavior=TaxBehavior.TAXABLE,
        ),
        LineItemCreate(
            type=LineItemType.TAX,
            description=tax_description(tax_rate),
            unit_amount=totals.tax_amount,
            amount=totals.tax_amount,
            currency=order.currency,
            tax_behavior=TaxBehavior.NON_TAXABLE,
            tax_rate=to_decimal(tax_rate),
        ),
    ]


# =============================================================================
# COST BREAKDOWNS
# =============================================================================


def _breakdown(
    labor_description: str,
    labor_amount: int,
    currency: str,
    platform_fee_rate: Decimal,
    tax_rate: Decimal
) -> CostBreakdown:
    totals = calculate_totals(labor_amount, platform_fee_rate, tax_rate)
    return CostBreakdown(
        labor_amount=totals.labor_amount,
        platform_fee_amount=totals.platform_fee_amount,
        platform_fee_rate=to_decimal(platform_fee_rate),
        tax_amount=totals.tax_amount,
        tax_rate=to_decimal(tax_rate),
        subtotal_amount=totals.subtotal_amount,
        total_amount=totals.total_amount,
        currency=currency,
        lines=[
            CostLine(type=LineItemType.LABOR.value, description=labor_description,
                     amount=totals.labor_amount),
            CostLine(type=LineItemType.PLATFORM_FEE.value,
                     description=platform_fee_description(platform_fee_rate),
                     amount=totals.platform_fee_amount),
            CostLine(type=LineItemType.TAX.value, description=tax_description(tax_rate),
                     amount=totals.tax_amount),
        ],
    )


def estimate_from_quoted_amount(
    quoted_amount: int,
    currency: str = "UYU",
    platform_fee_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE,
    tax_rate: Decimal = DEFAULT_TAX_RATE
) -> CostBreakdown:
    """Cost breakdown for a fixed-price quote. Matches build_line_items for the same quote."""
    return _breakdown(
        FIXED_LABOR_DESCRIPTION,
        round_minor_units(quoted_amount),
        currency,
        platform_fee_rate,
        tax_rate,
    )


def estimate_from_hours(
    hours: Decimal | float,
    hourly_rate: int,
    currency: str = "UYU",
    platform_fee_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE,
    tax_rate: Decimal = DEFAULT_TAX_RATE
) -> CostBreakdown:
    """Cost breakdown for an hourly estimate before the order is finalized."""
    hours = to_decimal(hours)
    return _breakdown(
        hourly_labor_description(hours, hourly_rate),
        calculate_labor_amount(hours, hourly_rate),
        currency,
        platform_fee_rate,
        tax_rate,
    )


def quote_pending_breakdown(currency: str = "UYU", tax_rate: Decimal = DEFAULT_TAX_RATE) -> CostBreakdown:
    """Zero breakdown for a fixed-price order whose provider hasn't quoted yet."""
    return CostBreakdown(
        labor_amount=0,
        platform_fee_amount=0,
        platform_fee_rate=Decimal("0"),
        tax_amount=0,
        tax_rate=to_decimal(tax_rate),
        subtotal_amount=0,
        total_amount=0,
        currency=currency,
        lines=[CostLine(type=LineItemType.LABOR.value, description=QUOTE_PENDING_DESCRIPTION, amount=0)],
    )
