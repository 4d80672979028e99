# src/basil/api/inventory.py
"""
INVENTORY BULK UPDATE API ENDPOINTS
"""

from fastapi import APIRouter, HTTPException, Depends, Header
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Dict, Any, Optional
import logging

from basil.core.api_client import ApiClient, ApiError
from basil.core.auth import bearer_token, token_subject
from basil.core.region import DEFAULT_COUNTRY, normalize_country
from basil.repositories.inventory_repo import InventoryRepository
from basil.services.inventory_service import get_inventory_service

router = APIRouter(prefix="/inventory", tags=["inventory"])
logger = logging.getLogger(__name__)


class BulkUpdateConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field: str
    change_type: str = Field(..., alias="changeType")
    value: float
    category_ids: List[str] = Field(default_factory=list, alias="categoryIds")

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class PreviewRequest(BaseModel):
    products: List[Dict[str, Any]]
    config: BulkUpdateConfig


class CommitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    store_id: str = Field(..., alias="storeId", min_length=1)
    config: BulkUpdateConfig


def get_inventory_repository_for_caller(
    token: Optional[str] = Depends(bearer_token),
    x_country: Optional[str] = Header(None),
) -> InventoryRepository:
    """Repository that talks to the backend with the caller's credentials."""
    country = normalize_country(x_country) or DEFAULT_COUNTRY
    return InventoryRepository(ApiClient(country=country, token=token))


@router.post("/bulk-update/preview")
async def preview_bulk_update(request: PreviewRequest):
    """
    Preview the fields a bulk update would write for the given products.
    """
    try:
        service = get_inventory_service()
        rows = service.preview_bulk_update(request.products, request.config.as_dict())

        return {
            "success": True,
            "rows": rows,
            "count": len(rows)
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to preview bulk update: {e}")
        raise HTTPException(status_code=500, detail="Failed to preview bulk update")


@router.post("/bulk-update")
async def commit_bulk_update(
    request: CommitRequest,
    repo: InventoryRepository = Depends(get_inventory_repository_for_caller),
    token: Optional[str] = Depends(bearer_token),
):
    """
    Recalculate and save a bulk update for every affected product of a store.
    """
    try:
        service = get_inventory_service()
        result = service.commit_bulk_update(
            request.store_id,
            request.config.as_dict(),
            repo=repo,
            user=token_subject(token),
        )

        return {
            "success": True,
            "message": f"Updated {result['updatedCount']} products",
            "updatedCount": result["updatedCount"]
        }

    except ApiError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to commit bulk update: {e}")
        raise HTTPException(status_code=500, detail="Failed to update products")
