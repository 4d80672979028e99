# src/basil/services/inventory_service.py
"""
INVENTORY SERVICE - Business Logic Layer
Bulk price updates: preview the recalculated fields, then commit them.
"""

from typing import List, Dict, Any, Optional
import logging

from basil.core.logger import audit_log
from basil.repositories.inventory_repo import InventoryRepository, get_inventory_repository
from basil.utils.calculations import PRICING_FIELDS, calculate_bulk_update_fields, calculate_new_value
from basil.utils.validators import validate_bulk_update_config

logger = logging.getLogger(__name__)


class InventoryService:
    """Service for inventory business logic"""

    def __init__(self, repo: Optional[InventoryRepository] = None):
        self._repo = repo

    @property
    def repo(self) -> InventoryRepository:
        if self._repo is None:
            self._repo = get_inventory_repository()
        return self._repo

    def affected_products(self, products: List[Dict[str, Any]], config: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Products in the selected categories that have a value to change."""
        category_ids = config["categoryIds"]
        field = config["field"]

        selected = products
        if category_ids:
            selected = [p for p in products if p.get("categoryId") and p["categoryId"] in category_ids]

        return [p for p in selected if p.get(field) is not None or config["changeType"] == "set"]

    def preview_bulk_update(self, products: List[Dict[str, Any]], config: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Calculate what a bulk update would write, without writing it.

        Args:
            products: Store products (camelCase, as the API returns them)
            config: field, changeType, value, categoryIds

        Returns:
            One row per affected product with the old value, the new value and
            every recalculated field
        """
        try:
            config = validate_bulk_update_config(config)
            field = config["field"]

            rows = []
            for product in self.affected_products(products, config):
                old_value = product.get(field)
                new_value = calculate_new_value(old_value, config["changeType"], config["value"])
                if new_value is None:
                    continue

                fields = calculate_bulk_update_fields(product, field, new_value)
                rows.append({
                    "productId": product.get("id") or product.get("productId"),
                    "name": product.get("name"),
                    "field": field,
                    "oldValue": old_value,
                    "newValue": new_value,
                    "current": {key: product.get(key) for key in PRICING_FIELDS if product.get(key) is not None},
                    "updates": fields.to_wire(),
                })

            logger.info(f"Bulk update preview: {len(rows)} of {len(products)} products affected ({field})")
            return rows

        except Exception as e:
            logger.error(f"Service: Failed to preview bulk update: {e}")
            raise

    def commit_bulk_update(self, store_id: str, config: Dict[str, Any],
                           repo: Optional[InventoryRepository] = None,
                           user: Optional[str] = None) -> Dict[str, Any]:
        """
        Recalculate and save a bulk update for a store.

        Args:
            store_id: Store to update
            config: field, changeType, value, categoryIds
            repo: Repository bound to the caller's credentials
            user: Caller identity for the audit trail
        """
        repo = repo or self.repo
        try:
            if not store_id:
                raise ValueError("No store selected")
            config = validate_bulk_update_config(config)

            products = repo.get_all_products(store_id)
            rows = self.preview_bulk_update(products, config)
            if not rows:
                raise ValueError("No products to update")

            updates = [{"productId": row["productId"], "updates": row["updates"]} for row in rows]
            result = repo.bulk_update_products(store_id, config["categoryIds"], updates)
            updated_count = result.get("updatedCount", len(updates))

            audit_log(
                user=user,
                action="bulk_update_products",
                details={
                    "field": config["field"],
                    "changeType": config["changeType"],
                    "value": config["value"],
                    "categoryIds": config["categoryIds"],
                    "productCount": len(updates),
                    "updatedCount": updated_count,
                },
                store_id=store_id,
            )

            return {"updatedCount": updated_count, "previewed": len(rows)}

        except Exception as e:
            logger.error(f"Service: Failed to commit bulk update: {e}")
            raise


# Singleton instance
_inventory_service_instance = None


def get_inventory_service() -> InventoryService:
    """Get singleton inventory service instance."""
    global _inventory_service_instance
    if _inventory_service_instance is None:
        _inventory_service_instance = InventoryService()
    return _inventory_service_instance
