"""Order repository."""

from typing import Any, Dict, Optional

from framework.repository.aggregates import AggregateGateway
from framework.repository.base import BaseRepository
from framework.repository.filters import FilterDescription
from framework.response import ResultEnvelope
from .models import OrderStatus


class OrderRepository(BaseRepository):
    """Orders over either backend; created orders also feed the revenue counter."""

    entity_name = "Order"
    entity_plural = "orders"
    collection_name = "orders"
    counter_key = "orders"

    filter_aliases = {
        **BaseRepository.filter_aliases,
        "customer": "customer_id",
        "customerId": "customer_id",
        "paymentStatus": "payment_status",
    }
    wildcard_filters = ("status", "payment_status", "paymentStatus")
    search_fields = ("order_number",)
    relations = {"customer": ("customer_id", ("full_name", "email"))}

    def build_filters(self, filters: Optional[Dict[str, Any]]) -> FilterDescription:
        """Adds `dateFrom` / `dateTo` as an inclusive created_at range."""
        filters = dict(filters or {})
        date_from = filters.pop("dateFrom", None)
        date_to = filters.pop("dateTo", None)
        description = dict(super().build_filters(filters))
        if date_from or date_to:
            description["created_at"] = {"gte": date_from, "lte": date_to}
        return description

    def _record_created(self, record: Dict[str, Any]) -> None:
        super()._record_created(record)
        amount = record.get("total_amount")
        if self.counters is not None and isinstance(amount, (int, float)):
            self.counters.update_progress("revenue", amount)

    async def get_all_orders(self, filters: Optional[Dict[str, Any]] = None, page: int = 1, limit: int = 20) -> ResultEnvelope:
        return await self.get_all(filters, page, limit)

    async def get_order_by_id(self, id: Any) -> ResultEnvelope:
        return await self.get_by_id(id)

    async def get_orders_by_status(self, status: str, page: int = 1, limit: int = 20) -> ResultEnvelope:
        return await self.get_all({"status": status}, page, limit)

    async def get_recent_orders(self, limit: int = 10) -> ResultEnvelope:
        result = await self.get_all(None, 1, limit)
        if not result.success:
            return result
        return ResultEnvelope.ok(result.data["orders"])

    async def create_order(self, order_data: Dict[str, Any]) -> ResultEnvelope:
        return await self.create(order_data)

    async def update_order(self, id: Any, updates: Dict[str, Any]) -> ResultEnvelope:
        return await self.update(id, updates)

    async def update_order_status(self, id: Any, status: str) -> ResultEnvelope:
        try:
            status = OrderStatus(status).value
        except ValueError:
            return ResultEnvelope.fail(error=f"Invalid order status: {status}")
        return await self.update(id, {"status": status})

    async def delete_order(self, id: Any) -> ResultEnvelope:
        return await self.delete(id)

    async def get_order_analytics(self, gateway: Optional[AggregateGateway] = None) -> ResultEnvelope:
        """Order count per status and total revenue."""
        if gateway is None:
            if self.counters is None:
                return ResultEnvelope.fail(error="No counter store available for aggregates")
            gateway = AggregateGateway(self.counters)
        by_status = {}
        for status in OrderStatus:
            # The counter store has no per-status breakdown
            by_status[status.value] = await gateway.count(
                "orders", self.handle, {"status": status.value}, fallback=0
            )
        return ResultEnvelope.ok({
            "total_orders": await gateway.count("orders", self.handle),
            "by_status": by_status,
            "total_revenue": await gateway.sum("orders", self.handle, "total_amount"),
        })
