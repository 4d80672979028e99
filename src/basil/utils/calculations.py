# src/basil/utils/calculations.py
"""
PRICING RECALCULATION
- Bulk update: recompute every dependent price when MRP, a margin or the tax rate changes
- Single product form: derive the fields to update when one form field changes

Wire names are the backend's camelCase names. None means "not set" and is
kept apart from 0; arithmetic treats an unset value as 0.
"""

import math
import re
import logging
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

Number = Union[float, int]

BULK_FIELDS = ("mrp", "marginPercentage", "purchaseMarginPercentage", "taxPercentage")

FIELD_ALIASES: Dict[str, str] = {
    "mrp": "mrp",
    "marginPercentage": "marginPercentage",
    "margin_percentage": "marginPercentage",
    "purchaseMarginPercentage": "purchaseMarginPercentage",
    "purchase_margin_percentage": "purchaseMarginPercentage",
    "taxPercentage": "taxPercentage",
    "tax_percentage": "taxPercentage",
}

CHANGE_TYPES = ("increase", "decrease", "set")

PRICING_FIELDS = (
    "mrp",
    "costPrice",
    "costPriceBase",
    "costGST",
    "sellingPrice",
    "sellingPriceBase",
    "sellingGST",
    "marginPercentage",
    "purchaseMarginPercentage",
    "taxPercentage",
)


def round2(value: Number) -> float:
    """
    Round half up to 2 decimals (never banker's rounding).
    Values too large to scale, and NaN, come back unchanged.
    """
    scaled = value * 100
    if not math.isfinite(scaled):
        return value
    return math.floor(scaled + 0.5) / 100


class Percentage(float):
    """A margin strictly between 0 and 100."""

    @classmethod
    def try_from(cls, value: Optional[Number]) -> Optional["Percentage"]:
        if value is None:
            return None
        if 0 < value < 100:
            return cls(value)
        return None


class ProductPricing(BaseModel):
    """Pricing snapshot of one product."""

    model_config = ConfigDict(populate_by_name=True)

    mrp: Optional[float] = None
    tax_percentage: Optional[float] = Field(None, alias="taxPercentage")
    margin_percentage: Optional[float] = Field(None, alias="marginPercentage")
    purchase_margin_percentage: Optional[float] = Field(None, alias="purchaseMarginPercentage")
    cost_price: Optional[float] = Field(None, alias="costPrice")
    cost_price_base: Optional[float] = Field(None, alias="costPriceBase")
    cost_gst: Optional[float] = Field(None, alias="costGST")
    selling_price: Optional[float] = Field(None, alias="sellingPrice")
    selling_price_base: Optional[float] = Field(None, alias="sellingPriceBase")
    selling_gst: Optional[float] = Field(None, alias="sellingGST")

    def to_wire(self) -> Dict[str, float]:
        """camelCase dict without the unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class BulkUpdateFields(ProductPricing):
    """Recalculated fields; None means leave the stored value alone."""


def normalize_bulk_field(field: str) -> str:
    try:
        return FIELD_ALIASES[field]
    except KeyError:
        raise ValueError(f"Unsupported bulk update field: {field}") from None


def _as_pricing(product: Union[ProductPricing, Mapping[str, Any]]) -> ProductPricing:
    if isinstance(product, ProductPricing):
        return product
    return ProductPricing.model_validate(dict(product))


def _split_rounded(price: float, rate: float) -> Tuple[float, float]:
    """Split a tax-inclusive price into (base, tax), each rounded."""
    if rate > 0:
        base = round2(price / (1 + rate))
        return base, round2(price - base)
    return price, 0.0


def _positive(value: float) -> Optional[float]:
    return value if value > 0 else None


def calculate_bulk_update_fields(product: Union[ProductPricing, Mapping[str, Any]],
                                 field: str, new_value: Number) -> BulkUpdateFields:
    """
    Recalculate all dependent pricing fields after one field changes.

    A tax change keeps the tax-exclusive bases fixed and moves the inclusive
    prices. Any other change derives the inclusive prices from MRP and the
    margins, then splits them into base and tax.

    Args:
        product: Current pricing (model or camelCase dict)
        field: mrp, marginPercentage, purchaseMarginPercentage or taxPercentage
        new_value: New value for the field

    Returns:
        BulkUpdateFields with every value <= 0 left unset
    """
    pricing = _as_pricing(product)
    field = normalize_bulk_field(field)
    value = round2(float(new_value))

    mrp = pricing.mrp or 0.0
    tax = pricing.tax_percentage or 0.0
    margin = pricing.margin_percentage or 0.0
    purchase_margin = pricing.purchase_margin_percentage or 0.0
    current_cost = pricing.cost_price or 0.0
    current_selling = pricing.selling_price or 0.0

    if field == "mrp":
        mrp = value
    elif field == "taxPercentage":
        tax = value
    elif field == "marginPercentage":
        margin = value
    else:
        purchase_margin = value

    rate = tax / 100

    cost_price = cost_base = cost_gst = 0.0
    selling_price = selling_base = selling_gst = 0.0

    if field == "taxPercentage":
        # Bases stay, tax and inclusive prices move
        cost_base = pricing.cost_price_base or 0.0
        selling_base = pricing.selling_price_base or 0.0

        if cost_base > 0:
            cost_gst = round2(cost_base * tax / 100)
            cost_price = round2(cost_base + cost_gst)
        if selling_base > 0:
            selling_gst = round2(selling_base * tax / 100)
            selling_price = round2(selling_base + selling_gst)

        if mrp > 0 and cost_price > 0:
            derived = Percentage.try_from(round2((1 - cost_price / mrp) * 100))
            if derived is not None:
                purchase_margin = float(derived)
        if mrp > 0 and selling_price > 0:
            derived = Percentage.try_from(round2((1 - selling_price / mrp) * 100))
            if derived is not None:
                margin = float(derived)
    else:
        if mrp > 0 and Percentage.try_from(purchase_margin) is not None:
            cost_price = round2(mrp * (1 - purchase_margin / 100))
        elif current_cost > 0:
            cost_price = current_cost
        if cost_price > 0:
            cost_base, cost_gst = _split_rounded(cost_price, rate)

        if mrp > 0 and Percentage.try_from(margin) is not None:
            selling_price = round2(mrp * (1 - margin / 100))
        elif mrp > 0:
            selling_price = mrp
        elif current_selling > 0:
            selling_price = current_selling
        if selling_price > 0:
            selling_base, selling_gst = _split_rounded(selling_price, rate)

        # Fill in margins that were never set
        if mrp > 0 and cost_price > 0 and purchase_margin == 0:
            derived = Percentage.try_from(round2((1 - cost_price / mrp) * 100))
            if derived is not None:
                purchase_margin = float(derived)
        if mrp > 0 and selling_price > 0 and margin == 0:
            derived = Percentage.try_from(round2((1 - selling_price / mrp) * 100))
            if derived is not None:
                margin = float(derived)

    return BulkUpdateFields(
        mrp=_positive(mrp),
        cost_price=_positive(cost_price),
        cost_price_base=_positive(cost_base),
        cost_gst=_positive(cost_gst),
        selling_price=_positive(selling_price),
        selling_price_base=_positive(selling_base),
        selling_gst=_positive(selling_gst),
        margin_percentage=_positive(margin),
        purchase_margin_percentage=_positive(purchase_margin),
        tax_percentage=_positive(tax),
    )


def calculate_new_value(current: Optional[Number], change_type: str, value: Number) -> Optional[float]:
    """
    Apply a bulk change to one stored value.
    Returns None when the product has no value to change.
    """
    if change_type not in CHANGE_TYPES:
        raise ValueError(f"Unsupported change type: {change_type}")

    if current is None:
        return float(value) if change_type == "set" else None

    if change_type == "increase":
        return current * (1 + value / 100)
    if change_type == "decrease":
        return current * (1 - value / 100)
    return float(value)


def calculate_prices_from_mrp(mrp: Number, margin_percentage: Number,
                              purchase_margin_percentage: Number, tax_percentage: Number) -> Dict[str, float]:
    """Cost and selling triads from MRP and the two margins."""
    rate = tax_percentage / 100

    selling_price = mrp * (1 - margin_percentage / 100)
    selling_base = selling_price / (1 + rate)
    cost_price = mrp * (1 - purchase_margin_percentage / 100)
    cost_base = cost_price / (1 + rate)

    return {
        "costPrice": round2(cost_price),
        "costPriceBase": round2(cost_base),
        "costGST": round2(cost_price - cost_base),
        "sellingPrice": round2(selling_price),
        "sellingPriceBase": round2(selling_base),
        "sellingGST": round2(selling_price - selling_base),
    }


def calculate_mrp_from_cost_price(cost_price: Number, purchase_margin_percentage: Number) -> float:
    """MRP = cost / (1 - margin); a margin of 100 or more falls back to cost."""
    rate = purchase_margin_percentage / 100
    if rate >= 1:
        return round2(cost_price)
    return round2(cost_price / (1 - rate))


# --- single product form -------------------------------------------------

_NUMBER_PREFIX = re.compile(r"\s*([-+]?(?:\d+\.?\d*|\.\d+))")


def parse_amount(value: Any) -> Optional[float]:
    """Leading number of a form value, None when there is none."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else float(value)
    match = _NUMBER_PREFIX.match(str(value))
    return float(match.group(1)) if match else None


def clean_amount_text(raw: Any) -> str:
    """Keep digits and the first decimal point."""
    text = re.sub(r"[^0-9.]", "", str(raw if raw is not None else ""))
    return re.sub(r"(\..*)\.", r"\1", text)


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    return str(value).strip() != ""


def _split(price: float, rate: float) -> Tuple[float, float]:
    if rate > 0:
        base = price / (1 + rate)
        return base, price - base
    return price, 0.0


def _from_base(base: float, rate: float) -> Tuple[float, float]:
    if rate > 0:
        price = base * (1 + rate)
        return price, price - base
    return base, 0.0


def _triad(prefix: str, amount: float, rate: float, as_base: bool = False) -> Dict[str, float]:
    """Price, base and tax for one side; amount is the base when as_base."""
    if as_base:
        base = amount
        price, tax = _from_base(amount, rate)
    else:
        price = amount
        base, tax = _split(amount, rate)
    return {
        f"{prefix}Price": round2(price),
        f"{prefix}PriceBase": round2(base),
        f"{prefix}GST": round2(tax),
    }


def _without(values: Dict[str, float], key: str) -> Dict[str, float]:
    return {k: v for k, v in values.items() if k != key}


def calculate_derived_fields(field: str, value: Any, current: Mapping[str, Any],
                             default_tax_percentage: Number = 0,
                             edit_cost_price_as_base: bool = False,
                             edit_selling_price_as_base: bool = False) -> Dict[str, float]:
    """
    Fields to update on the product form after `field` changed to `value`.

    Args:
        field: Form field that changed (camelCase)
        value: New raw value as typed
        current: Current form values (strings or numbers)
        default_tax_percentage: Store default used when the form has no tax
        edit_cost_price_as_base: Cost is entered tax-exclusive
        edit_selling_price_as_base: Selling price is entered tax-exclusive

    Returns:
        camelCase updates; empty when nothing should change
    """
    if field == "taxPercentage":
        tax = parse_amount(value) or default_tax_percentage or 0
    else:
        tax = parse_amount(current.get("taxPercentage")) or default_tax_percentage or 0
    rate = tax / 100
    updates: Dict[str, float] = {}

    if field == "costPrice" and _is_filled(value):
        cost_price = parse_amount(value)
        if cost_price is None:
            return updates
        updates.update(_without(_triad("cost", cost_price, rate), "costPrice"))
        mrp = parse_amount(current.get("mrp")) if _is_filled(current.get("mrp")) else None
        if mrp is not None and mrp > 0 and cost_price > 0:
            updates["purchaseMarginPercentage"] = round2((1 - cost_price / mrp) * 100)

    elif field == "costPriceBase" and _is_filled(value) and rate > 0:
        cost_base = parse_amount(value)
        if cost_base is not None:
            updates.update(_without(_triad("cost", cost_base, rate, as_base=True), "costPriceBase"))

    elif field == "sellingPrice" and _is_filled(value):
        selling_price = parse_amount(value)
        if selling_price is None:
            return updates
        updates.update(_without(_triad("selling", selling_price, rate), "sellingPrice"))
        mrp = parse_amount(current.get("mrp")) if _is_filled(current.get("mrp")) else None
        if mrp is not None and mrp > 0 and selling_price > 0:
            updates["marginPercentage"] = round2((1 - selling_price / mrp) * 100)

    elif field == "sellingPriceBase" and _is_filled(value):
        selling_base = parse_amount(value)
        if selling_base is not None:
            updates.update(_without(_triad("selling", selling_base, rate, as_base=True), "sellingPriceBase"))

    elif field == "mrp" and _is_filled(value):
        cleaned = clean_amount_text(value)
        # "10." is still being typed
        if cleaned.endswith("."):
            return {}
        mrp = parse_amount(cleaned)
        margin = parse_amount(current.get("marginPercentage")) or 0
        purchase_margin = parse_amount(current.get("purchaseMarginPercentage")) or 0
        if mrp is None or mrp <= 0:
            return updates

        cost_amount = mrp * (1 - purchase_margin / 100) if purchase_margin > 0 else mrp
        updates.update(_triad("cost", cost_amount, rate, edit_cost_price_as_base))
        if margin > 0:
            updates.update(_triad("selling", mrp * (1 - margin / 100), rate))
        else:
            updates.update(_triad("selling", mrp, rate, edit_selling_price_as_base))

    elif field == "purchaseMarginPercentage" and _is_filled(current.get("mrp")):
        cleaned = clean_amount_text(value)
        if cleaned.endswith("."):
            return {}
        purchase_margin = parse_amount(cleaned) or 0
        mrp = parse_amount(current.get("mrp"))
        margin = parse_amount(current.get("marginPercentage")) or 0
        if mrp is None or mrp <= 0 or not 0 <= purchase_margin < 100:
            return updates

        updates.update(_triad("cost", mrp * (1 - purchase_margin / 100), rate, edit_cost_price_as_base))
        if margin > 0:
            updates.update(_triad("selling", mrp * (1 - margin / 100), rate))

    elif field == "marginPercentage" and _is_filled(current.get("mrp")):
        cleaned = clean_amount_text(value)
        if cleaned.endswith("."):
            return {}
        margin = parse_amount(cleaned) or 0
        mrp = parse_amount(current.get("mrp"))
        purchase_margin = parse_amount(current.get("purchaseMarginPercentage")) or 0
        if mrp is None or mrp <= 0 or not 0 <= margin < 100:
            return updates

        if margin == 0:
            updates.update(_triad("selling", mrp, rate, edit_selling_price_as_base))
        else:
            updates.update(_triad("selling", mrp * (1 - margin / 100), rate))
            if purchase_margin > 0:
                updates.update(_triad("cost", mrp * (1 - purchase_margin / 100), rate))

    elif field == "taxPercentage" and rate > 0:
        cost_price = parse_amount(current.get("costPrice")) if _is_filled(current.get("costPrice")) else None
        if cost_price is not None:
            updates.update(_without(_triad("cost", cost_price, rate), "costPrice"))

        selling_base = parse_amount(current.get("sellingPriceBase"))
        selling_price = parse_amount(current.get("sellingPrice")) if _is_filled(current.get("sellingPrice")) else None
        if edit_selling_price_as_base and _is_filled(current.get("sellingPriceBase")):
            if selling_base is not None:
                updates.update(_without(_triad("selling", selling_base, rate, as_base=True), "sellingPriceBase"))
        elif selling_price is not None:
            updates.update(_without(_triad("selling", selling_price, rate), "sellingPrice"))

        mrp = parse_amount(current.get("mrp")) if _is_filled(current.get("mrp")) else None
        margin = parse_amount(current.get("marginPercentage")) or 0
        purchase_margin = parse_amount(current.get("purchaseMarginPercentage")) or 0
        if mrp is not None and mrp > 0 and (margin > 0 or purchase_margin > 0):
            cost_amount = mrp * (1 - purchase_margin / 100) if purchase_margin > 0 else mrp
            selling_amount = mrp * (1 - margin / 100) if margin > 0 else mrp
            updates.update(_triad("cost", cost_amount, rate))
            updates.update(_triad("selling", selling_amount, rate))

    if updates:
        logger.debug(f"Derived {sorted(updates)} from {field}")
    return updates
