"""Admin dashboard figures built on the aggregate gateway."""

from datetime import datetime, timezone
from typing import Dict, Optional, Union

from framework.logging.logger import get_logger
from framework.repository.aggregates import AggregateGateway
from framework.repository.dialect import ModelHandle
from framework.repository.filters import Constraint, Op

logger = get_logger("dashboard")

Number = Union[int, float]


class DashboardService:
    """Totals for users, vendors, products, orders and revenue.

    Each figure falls back to the degraded counters independently, so the
    overview always has a number for every key.
    """

    def __init__(
        self,
        gateway: AggregateGateway,
        users: ModelHandle,
        products: ModelHandle,
        orders: ModelHandle,
    ):
        self.gateway = gateway
        self.users = users
        self.products = products
        self.orders = orders

    @staticmethod
    def _since(moment: datetime) -> Dict[str, Constraint]:
        return {"created_at": Constraint(Op.GTE, moment)}

    async def get_overview(self, now: Optional[datetime] = None) -> Dict[str, Number]:
        now = now or datetime.now(timezone.utc)
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        start_of_month = start_of_day.replace(day=1)

        overview = {
            "total_users": await self.gateway.count("users", self.users),
            "total_vendors": await self.gateway.count("vendors", self.users, {"role": "vendor"}),
            "new_users_today": await self.gateway.count("users", self.users, self._since(start_of_day)),
            "new_users_this_month": await self.gateway.count("users", self.users, self._since(start_of_month)),
            "total_products": await self.gateway.count("products", self.products),
            "new_products_today": await self.gateway.count("products", self.products, self._since(start_of_day)),
            "total_orders": await self.gateway.count("orders", self.orders),
            "orders_today": await self.gateway.count("orders", self.orders, self._since(start_of_day)),
            "orders_this_month": await self.gateway.count("orders", self.orders, self._since(start_of_month)),
            "revenue": await self.gateway.sum("orders", self.orders, "total_amount"),
            "revenue_today": await self.gateway.sum("orders", self.orders, "total_amount", self._since(start_of_day)),
            "revenue_this_month": await self.gateway.sum("orders", self.orders, "total_amount", self._since(start_of_month)),
        }
        logger.debug(f"Dashboard overview computed: {overview}")
        return overview
