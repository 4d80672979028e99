# src/basil/api/tax.py
"""
TAX IDENTIFIER AND TAX FIELD API ENDPOINTS
"""

from fastapi import APIRouter, HTTPException, Header, Body
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Any, Optional
import logging

from basil.core.region import DEFAULT_COUNTRY, normalize_country
from basil.utils.indian_states import INDIAN_STATES
from basil.utils.tax import derive_tax_fields
from basil.utils.validators import (
    format_gstin,
    format_vat_id,
    state_for_gstin,
    validate_gstin_format,
    validate_vat_id,
    validate_vat_id_via_vies,
)

router = APIRouter(prefix="/tax", tags=["tax"])
logger = logging.getLogger(__name__)


class GstinRequest(BaseModel):
    gstin: Optional[str] = None


class VatIdRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vat_id: Optional[str] = Field(None, alias="vatId")
    country: Optional[str] = Field(None, pattern="^(NL|DE|nl|de)$")
    online: bool = False


@router.post("/gstin/validate")
async def validate_gstin(request: GstinRequest):
    """
    Validate an Indian GSTIN and look up its state.
    """
    valid, error = validate_gstin_format(request.gstin)
    gstin = format_gstin(request.gstin)

    result: Dict[str, Any] = {
        "success": True,
        "valid": valid,
        "gstin": gstin
    }
    if error:
        result["error"] = error
    if valid:
        state = state_for_gstin(gstin)
        if state:
            result["state"] = {"code": state.code, "name": state.name, "gstCode": state.gst_code}
    return result


@router.post("/vat/validate")
async def validate_vat(request: VatIdRequest, x_country: Optional[str] = Header(None)):
    """
    Validate a Dutch or German VAT ID, optionally against VIES.
    """
    try:
        country = normalize_country(request.country) or normalize_country(x_country)
        if country not in ("NL", "DE"):
            raise ValueError("VAT validation is available for NL and DE")

        vat_id = format_vat_id(request.vat_id)
        result: Dict[str, Any] = {
            "success": True,
            "vatId": vat_id,
            "country": country,
            "valid": validate_vat_id(vat_id, country)
        }
        if not result["valid"]:
            result["error"] = "Invalid VAT ID format"
            return result

        if request.online:
            vies = validate_vat_id_via_vies(vat_id)
            result.update(vies)
            result["checkedOnline"] = True
        return result

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to validate VAT ID: {e}")
        raise HTTPException(status_code=500, detail="Failed to validate VAT ID")


@router.post("/fields")
async def tax_fields(data: Dict[str, Any] = Body(...), x_country: Optional[str] = Header(None)):
    """
    Tax fields an order carries for the shop's country.
    """
    try:
        country = normalize_country(data.get("country")) or normalize_country(x_country) or DEFAULT_COUNTRY
        return {
            "success": True,
            "country": country,
            "fields": derive_tax_fields(country, data)
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to derive tax fields: {e}")
        raise HTTPException(status_code=500, detail="Failed to derive tax fields")


@router.get("/states")
async def get_states():
    """Indian states with their GST codes."""
    states = [{"code": s.code, "name": s.name, "gstCode": s.gst_code} for s in INDIAN_STATES]
    return {
        "success": True,
        "states": states,
        "count": len(states)
    }
