"""Product repository."""

from typing import Any, Dict, Optional

from framework.repository.base import BaseRepository
from framework.response import ResultEnvelope


class ProductRepository(BaseRepository):
    """Products over either backend."""

    entity_name = "Product"
    entity_plural = "products"
    collection_name = "products"
    counter_key = "products"

    filter_aliases = {
        **BaseRepository.filter_aliases,
        "vendor": "vendor_id",
        "vendorId": "vendor_id",
    }
    search_fields = ("name",)
    relations = {"vendor": ("vendor_id", ("full_name", "email"))}

    async def get_all_products(self, filters: Optional[Dict[str, Any]] = None, page: int = 1, limit: int = 20) -> ResultEnvelope:
        return await self.get_all(filters, page, limit)

    async def get_product_by_id(self, id: Any) -> ResultEnvelope:
        return await self.get_by_id(id)

    async def get_products_by_category(self, category: str, page: int = 1, limit: int = 20) -> ResultEnvelope:
        return await self.get_all({"category": category}, page, limit)

    async def create_product(self, product_data: Dict[str, Any]) -> ResultEnvelope:
        return await self.create(product_data)

    async def update_product(self, id: Any, updates: Dict[str, Any]) -> ResultEnvelope:
        return await self.update(id, updates)

    async def delete_product(self, id: Any) -> ResultEnvelope:
        return await self.delete(id)
