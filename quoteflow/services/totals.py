"""
Quote Totals Calculator

Computes line totals, subtotal, discount, VAT and grand total:
- Each item's total_price is recomputed as quantity * unit_price
- Discount is a percentage of the subtotal or a fixed amount
- VAT applies to the discounted amount, only when enabled

No rounding happens here; values are rounded for display by the renderer.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from quoteflow.exceptions import ValidationError

PERCENTAGE = "percentage"
FIXED = "fixed"


@dataclass(frozen=True)
class QuoteTotals:
    """Result of a totals pass."""

    items: tuple
    subtotal: float
    discount_amount: float
    after_discount: float
    vat_amount: float
    total: float


def _as_dict(item: Any) -> dict:
    if isinstance(item, Mapping):
        return dict(item)
    return item.model_dump()


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def price_item(item: Any) -> dict:
    """Return a copy of the item with total_price recomputed."""
    data = _as_dict(item)
    quantity = data.get("quantity", 1)
    unit_price = data.get("unit_price", 0)
    if quantity is None or quantity < 1:
        raise ValidationError(f"Item '{data.get('name')}' has invalid quantity {quantity}")
    if unit_price is None or unit_price < 0:
        raise ValidationError(f"Item '{data.get('name')}' has negative unit price {unit_price}")
    data["quantity"] = quantity
    data["unit_price"] = unit_price
    data["total_price"] = quantity * unit_price
    return data


def discount_amount(subtotal: float, discount: float, discount_type: str) -> float:
    """Amount taken off the subtotal. Not capped at the subtotal."""
    discount_type = _enum_value(discount_type)
    if discount_type not in (PERCENTAGE, FIXED):
        raise ValidationError(f"Invalid discount type '{discount_type}'")
    if discount is not None and discount < 0:
        raise ValidationError("Discount must be >= 0")
    if not discount:
        return 0.0
    if discount_type == PERCENTAGE:
        return subtotal * (discount / 100)
    return float(discount)


def compute_totals(
    items: Iterable[Any],
    discount: float = 0,
    discount_type: str = FIXED,
    include_vat: bool = True,
    vat_rate: float = 17.0,
) -> QuoteTotals:
    """
    Compute quote totals from line items and pricing flags.

    Items may be dicts or QuoteLineItem models; they are never mutated.
    Any caller-supplied total_price is discarded.
    """
    priced = tuple(price_item(item) for item in items)
    subtotal = sum((item["total_price"] for item in priced), 0.0)

    discount_value = discount_amount(subtotal, discount, discount_type)
    after_discount = subtotal - discount_value

    if include_vat:
        if vat_rate is None or vat_rate < 0:
            raise ValidationError("VAT rate must be >= 0")
        vat_amount = after_discount * (vat_rate / 100)
    else:
        vat_amount = 0.0

    return QuoteTotals(
        items=priced,
        subtotal=subtotal,
        discount_amount=discount_value,
        after_discount=after_discount,
        vat_amount=vat_amount,
        total=after_discount + vat_amount,
    )
