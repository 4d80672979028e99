# src/basil/repositories/inventory_repo.py
"""
INVENTORY REPOSITORY - Data Access Layer
Products live in the shopkeeper inventory-billing stack; this wraps its REST API.
"""

from typing import List, Dict, Any, Iterator, Optional
import logging

from basil.core.api_client import ApiClient, ApiError

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


class InventoryRepository:
    """Repository for store inventory operations"""

    def __init__(self, client: Optional[ApiClient] = None):
        self.client = client or ApiClient()

    def get_inventory(self, store_id: str, limit: Optional[int] = None, last_key: Optional[str] = None,
                      search: Optional[str] = None) -> Dict[str, Any]:
        """
        Get one page of a store's products.

        Returns:
            {"data": [...], "pagination": {...}}
        """
        params = {
            "limit": limit,
            "lastKey": last_key,
            "search": search.strip() if search else None,
            "storeId": store_id,
        }
        try:
            response = self.client.get("/shopkeeper/inventory", params=params)
        except Exception as e:
            logger.error(f"Failed to get inventory for store {store_id}: {e}")
            raise

        page = response.get("data")
        if page is None:
            raise ApiError(response.get("error") or "Failed to get inventory", code="UPSTREAM_ERROR")
        return page

    def iter_inventory(self, store_id: str, page_size: int = PAGE_SIZE) -> Iterator[Dict[str, Any]]:
        """Yield every product of a store, following the pagination cursor."""
        last_key = None
        while True:
            page = self.get_inventory(store_id, limit=page_size, last_key=last_key)
            products = page.get("data") or []
            if not products:
                return

            yield from products

            pagination = page.get("pagination")
            if not pagination or not pagination.get("hasMore"):
                return
            last_key = pagination.get("lastKey")
            if not last_key:
                return

    def get_all_products(self, store_id: str) -> List[Dict[str, Any]]:
        products = list(self.iter_inventory(store_id))
        logger.debug(f"Loaded {len(products)} products for store {store_id}")
        return products

    def update_product(self, product_id: str, updates: Dict[str, Any], store_id: Optional[str] = None):
        """Update one product's fields."""
        data = dict(updates)
        if store_id:
            data["storeId"] = store_id
        try:
            self.client.put(f"/shopkeeper/inventory/{product_id}", data)
        except Exception as e:
            logger.error(f"Failed to update product {product_id}: {e}")
            raise

    def bulk_update_products(self, store_id: str, category_ids: List[str],
                             updates: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Send precalculated field values for many products at once.

        Args:
            store_id: Store the products belong to
            category_ids: Categories the update was scoped to
            updates: [{"productId": ..., "updates": {...}}]
        """
        try:
            response = self.client.post(
                "/shopkeeper/inventory/bulk-update",
                {"categoryIds": category_ids, "updates": updates},
                params={"storeId": store_id},
            )
        except Exception as e:
            logger.error(f"Failed to bulk update products for store {store_id}: {e}")
            raise

        result = response.get("data")
        if not result:
            raise ApiError(response.get("error") or "Failed to bulk update products", code="UPSTREAM_ERROR")
        return result


# Singleton instance
_inventory_repo_instance = None


def get_inventory_repository() -> InventoryRepository:
    """Get singleton inventory repository instance."""
    global _inventory_repo_instance
    if _inventory_repo_instance is None:
        _inventory_repo_instance = InventoryRepository()
    return _inventory_repo_instance
