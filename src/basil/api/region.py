# src/basil/api/region.py
"""
REGION AND API ROUTING ENDPOINTS
"""

from fastapi import APIRouter, Header, Query
from typing import Optional
import logging

from basil.core.api_client import ApiClient, detect_stack, normalize_endpoint
from basil.core.region import detect_country, region_info

router = APIRouter(prefix="/region", tags=["region"])
logger = logging.getLogger(__name__)


@router.get("")
async def get_region(
    host: Optional[str] = Query(None, description="Hostname the UI was served from"),
    preferred: Optional[str] = Query(None, description="Stored country preference"),
    timezone: Optional[str] = Query(None, description="Browser time zone, e.g. Europe/Berlin"),
    x_country: Optional[str] = Header(None),
):
    """
    Detect the country and return its region settings.
    """
    country = detect_country(host, preferred or x_country, timezone)
    return {
        "success": True,
        **region_info(country)
    }


@router.get("/route")
async def get_route(
    endpoint: str = Query(..., min_length=1),
    x_country: Optional[str] = Header(None),
):
    """Which backend stack and base URL serve an endpoint."""
    country = detect_country(preferred=x_country)
    normalized = normalize_endpoint(endpoint)
    client = ApiClient(country=country)
    return {
        "success": True,
        "country": country,
        "endpoint": normalized,
        "stack": detect_stack(normalized),
        "baseUrl": client.get_base_url(normalized)
    }
