# src/basil/api/pricing.py
"""
PRICING CALCULATION API ENDPOINTS
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Any, Optional, Union
import logging

from basil.utils.calculations import (
    ProductPricing,
    calculate_bulk_update_fields,
    calculate_derived_fields,
    calculate_mrp_from_cost_price,
)

router = APIRouter(prefix="/pricing", tags=["pricing"])
logger = logging.getLogger(__name__)


class BulkFieldsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product: ProductPricing
    field: str = Field(..., pattern="^(mrp|marginPercentage|purchaseMarginPercentage|taxPercentage)$")
    new_value: float = Field(..., alias="newValue")


class DerivedFieldsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field: str
    value: Optional[Union[str, float]] = None
    current: Dict[str, Any] = Field(default_factory=dict)
    default_tax_percentage: float = Field(0, alias="defaultTaxPercentage", ge=0, le=100)
    edit_cost_price_as_base: bool = Field(False, alias="editCostPriceAsBase")
    edit_selling_price_as_base: bool = Field(False, alias="editSellingPriceAsBase")


class MrpFromCostRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cost_price: float = Field(..., alias="costPrice", ge=0)
    purchase_margin_percentage: float = Field(0, alias="purchaseMarginPercentage", ge=0)


@router.post("/bulk-fields")
async def bulk_fields(request: BulkFieldsRequest):
    """
    Recalculate every pricing field of one product after a bulk change.
    """
    try:
        fields = calculate_bulk_update_fields(request.product, request.field, request.new_value)
        return {
            "success": True,
            "fields": fields.to_wire()
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to calculate bulk update fields: {e}")
        raise HTTPException(status_code=500, detail="Failed to calculate fields")


@router.post("/derived-fields")
async def derived_fields(request: DerivedFieldsRequest):
    """
    Form fields to update after one product form field changed.
    """
    try:
        updates = calculate_derived_fields(
            request.field,
            request.value,
            request.current,
            default_tax_percentage=request.default_tax_percentage,
            edit_cost_price_as_base=request.edit_cost_price_as_base,
            edit_selling_price_as_base=request.edit_selling_price_as_base,
        )
        return {
            "success": True,
            "updates": updates
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to derive form fields from {request.field}: {e}")
        raise HTTPException(status_code=500, detail="Failed to derive fields")


@router.post("/mrp-from-cost")
async def mrp_from_cost(request: MrpFromCostRequest):
    """MRP that gives the requested purchase margin on a cost price."""
    return {
        "success": True,
        "mrp": calculate_mrp_from_cost_price(request.cost_price, request.purchase_margin_percentage)
    }
