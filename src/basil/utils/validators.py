# src/basil/utils/validators.py
"""
Validators for tax identifiers and bulk update requests.

Identifier checks return results; request validators raise ValueError.
"""

import re
import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import requests

from basil.utils.calculations import CHANGE_TYPES, normalize_bulk_field
from basil.utils.indian_states import IndianState, get_state_by_gst_code

logger = logging.getLogger(__name__)

GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")
NL_VAT_PATTERN = re.compile(r"^NL\d{9}B\d{2}$")
DE_VAT_PATTERN = re.compile(r"^DE\d{9}$")
VAT_ID_PARTS = re.compile(r"^([A-Z]{2})(.+)$")

VIES_URL = "https://ec.europa.eu/taxation_customs/vies/rest-api/ms/{country}/vat/{number}"
VIES_TIMEOUT = 10


def validate_gstin_format(gstin: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate an Indian GSTIN (e.g. 27ABCDE1234F1Z5).

    Returns:
        (valid, error message or None)
    """
    if not gstin or not isinstance(gstin, str):
        return False, "GSTIN is required"

    value = gstin.strip().upper()
    if len(value) != 15:
        return False, "GSTIN must be exactly 15 characters"

    if not GSTIN_PATTERN.match(value):
        return False, "Invalid GSTIN format. Format: 27ABCDE1234F1Z5 (15 characters)"

    state_code = int(value[:2])
    if state_code < 1 or state_code > 38:
        return False, "Invalid state code in GSTIN"

    return True, None


def format_gstin(gstin: Optional[str]) -> str:
    if not gstin:
        return ""
    return re.sub(r"\s+", "", gstin.strip().upper())


def state_for_gstin(gstin: Optional[str]) -> Optional[IndianState]:
    """State registered in the GSTIN's first two digits."""
    value = format_gstin(gstin)
    if len(value) < 2:
        return None
    return get_state_by_gst_code(value[:2])


def _vat_text(vat_id: Any) -> Optional[str]:
    if not vat_id or not isinstance(vat_id, str):
        return None
    return vat_id.strip().upper()


def validate_nl_vat_id(vat_id: Any) -> bool:
    """Dutch VAT ID: NL + 9 digits + B + 2 digits."""
    value = _vat_text(vat_id)
    return bool(value and NL_VAT_PATTERN.match(value))


def validate_de_vat_id(vat_id: Any) -> bool:
    """German VAT ID: DE + 9 digits."""
    value = _vat_text(vat_id)
    return bool(value and DE_VAT_PATTERN.match(value))


def validate_vat_id(vat_id: Any, country: str) -> bool:
    if country == "NL":
        return validate_nl_vat_id(vat_id)
    if country == "DE":
        return validate_de_vat_id(vat_id)
    return False


def validate_kvk_number(kvk_number: Any) -> bool:
    """Dutch Chamber of Commerce number, 8 digits."""
    if not kvk_number or not isinstance(kvk_number, str):
        return False
    return len(re.sub(r"\D", "", kvk_number)) == 8


def format_vat_id(vat_id: Optional[str]) -> str:
    if not vat_id:
        return ""
    return vat_id.strip().upper()


def validate_vat_id_via_vies(vat_id: Any, session: Optional[requests.Session] = None) -> Dict[str, Any]:
    """
    Check an EU VAT ID against the VIES REST service.

    Network problems are not raised; they come back as an invalid result.
    """
    value = _vat_text(vat_id)
    if not value:
        return {"valid": False, "error": "VAT ID is required"}

    match = VAT_ID_PARTS.match(value)
    if not match:
        return {"valid": False, "error": "Invalid VAT ID format"}

    country_code, number = match.groups()
    url = VIES_URL.format(country=country_code, number=quote(number, safe=""))
    http = session or requests

    try:
        response = http.get(url, headers={"Accept": "application/json"}, timeout=VIES_TIMEOUT)
        if not response.ok:
            logger.warning(f"VIES returned {response.status_code} for {country_code}")
            return {"valid": False, "error": "VIES service unavailable"}
        data = response.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"VIES validation failed: {e}")
        return {"valid": False, "error": "Validation service unavailable"}

    if data.get("valid") is True:
        result: Dict[str, Any] = {"valid": True}
        if data.get("name"):
            result["name"] = data["name"]
        if data.get("address"):
            result["address"] = data["address"]
        return result

    return {"valid": False, "error": data.get("error") or "Invalid VAT ID"}


def validate_bulk_update_config(data: Any) -> Dict[str, Any]:
    """
    Validate a bulk update request.

    Returns:
        Normalized config: field, changeType, value, categoryIds
    """
    if not isinstance(data, dict):
        raise ValueError("Bulk update config must be an object")

    field = normalize_bulk_field(data.get("field") or "")

    change_type = data.get("changeType")
    if change_type not in CHANGE_TYPES:
        raise ValueError(f"Change type must be one of: {', '.join(CHANGE_TYPES)}")

    value = data.get("value")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("Value must be a number")
    if value < 0:
        raise ValueError("Value must be non-negative")
    if change_type != "set" and value > 100:
        raise ValueError("Percentage cannot exceed 100")

    category_ids = data.get("categoryIds")
    if category_ids is None:
        category_ids = []
    if not isinstance(category_ids, list):
        raise ValueError("categoryIds must be a list")

    return {
        "field": field,
        "changeType": change_type,
        "value": float(value),
        "categoryIds": [str(category_id) for category_id in category_ids],
    }
