# src/basil/utils/tax.py
"""
COUNTRY-SPECIFIC TAX FIELDS
India: GST (CGST + SGST inside a state, IGST across states)
Netherlands / Germany: VAT with a fixed set of rates
"""

import re
from typing import Any, Dict, List

from basil.utils.calculations import round2
from basil.utils.validators import validate_vat_id

GST_MODES = ("INTRA", "INTER")
VAT_MODES = ("normal", "reverse_charge", "intra_eu_b2b", "export")

VAT_RATES: Dict[str, List[float]] = {
    "NL": [0, 9, 21],
    "DE": [0, 7, 19],
}

DEFAULT_VAT_RATES: Dict[str, float] = {
    "NL": 21,
    "DE": 19,
}

# Customers elsewhere in the EU: country prefix + 2-12 characters
EU_VAT_ID_PATTERN = re.compile(r"^[A-Z]{2}[0-9A-Z+*]{2,12}$")


def derive_tax_fields(country: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Pick the tax fields an order or invoice carries for a country.

    Args:
        country: IN, NL or DE
        data: Submitted values (camelCase)

    Returns:
        Only the fields that apply to the country
    """
    if country == "IN":
        gst_mode = (data.get("gstMode") or "INTRA").upper()
        if gst_mode not in GST_MODES:
            raise ValueError(f"GST mode must be one of: {', '.join(GST_MODES)}")
        return {
            "gstMode": gst_mode,
            "hsnCode": (data.get("hsnCode") or "").strip(),
            "placeOfSupply": (data.get("placeOfSupply") or "").strip(),
        }

    if country in VAT_RATES:
        vat_rate = data.get("vatRate")
        if vat_rate is None:
            vat_rate = DEFAULT_VAT_RATES[country]
        if vat_rate not in VAT_RATES[country]:
            allowed = ", ".join(str(rate) for rate in VAT_RATES[country])
            raise ValueError(f"VAT rate for {country} must be one of: {allowed}")

        vat_mode = data.get("vatMode") or "normal"
        if vat_mode not in VAT_MODES:
            raise ValueError(f"VAT mode must be one of: {', '.join(VAT_MODES)}")

        fields: Dict[str, Any] = {"vatRate": vat_rate, "vatMode": vat_mode}
        if vat_mode == "intra_eu_b2b":
            customer_vat_id = (data.get("customerVatId") or "").strip().upper()
            if not customer_vat_id:
                raise ValueError("Customer VAT ID is required for intra-EU B2B supplies")
            prefix = customer_vat_id[:2]
            if prefix in VAT_RATES:
                valid = validate_vat_id(customer_vat_id, prefix)
            else:
                valid = bool(EU_VAT_ID_PATTERN.match(customer_vat_id))
            if not valid:
                raise ValueError("Invalid customer VAT ID")
            fields["customerVatId"] = customer_vat_id
        return fields

    raise ValueError(f"Unsupported country: {country}")


def split_gst(amount: float, rate: float, mode: str = "INTRA") -> Dict[str, float]:
    """Tax on a base amount, split into CGST/SGST or IGST."""
    if mode not in GST_MODES:
        raise ValueError(f"GST mode must be one of: {', '.join(GST_MODES)}")

    total = round2(amount * rate / 100)
    if mode == "INTER":
        return {"cgst": 0.0, "sgst": 0.0, "igst": total, "totalTax": total}

    cgst = round2(total / 2)
    return {"cgst": cgst, "sgst": round2(total - cgst), "igst": 0.0, "totalTax": total}


def vat_amount(amount: float, rate: float, mode: str = "normal") -> float:
    """VAT on a net amount; zero-rated outside normal supplies."""
    if mode != "normal":
        return 0.0
    return round2(amount * rate / 100)
