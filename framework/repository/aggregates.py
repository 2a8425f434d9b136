"""
Aggregate gateway: count and sum over whichever backend is live, never failing.
"""

from typing import Optional, Union

from framework.logging.logger import get_logger
from .base import BACKEND_ERRORS
from .counters import CounterStore
from .dialect import ModelHandle
from .filters import FilterDescription
from .stores import RecordStore, build_store

logger = get_logger("aggregate_gateway")

Number = Union[int, float]

# Field names that denote an order's total monetary amount
REVENUE_FIELDS = frozenset({"total", "total_amount", "totalAmount"})


class AggregateGateway:
    """Scalar aggregates for reporting callers.

    Relational handle first, then document handle, then the counter store. A
    backend error is logged and answered exactly like an unavailable backend.
    """

    def __init__(self, counters: CounterStore):
        self.counters = counters

    def _store_for(self, handle: Optional[ModelHandle]) -> Optional[RecordStore]:
        if not self.counters.is_db_available():
            return None
        return build_store(handle)

    def _log_failure(self, operation: str, entity_key: str, exc: Exception) -> None:
        message = f"[aggregate] {operation} {entity_key} failed: {exc}"
        if isinstance(exc, BACKEND_ERRORS):
            logger.error(message)
        else:
            logger.opt(exception=True).error(message)

    async def count(
        self,
        entity_key: str,
        handle: Optional[ModelHandle],
        filters: Optional[FilterDescription] = None,
        fallback: Optional[int] = None,
    ) -> int:
        """Count matches; without a backend answer, `fallback` or the entity counter (filters ignored)."""
        store = self._store_for(handle)
        if store is not None:
            try:
                return int(await store.count(filters))
            except Exception as exc:
                self._log_failure("count", entity_key, exc)
        if fallback is not None:
            return fallback
        return int(self.counters.get(entity_key) or 0)

    async def sum(
        self,
        entity_key: str,
        handle: Optional[ModelHandle],
        field: str,
        filters: Optional[FilterDescription] = None,
    ) -> Number:
        store = self._store_for(handle)
        if store is not None:
            try:
                return await store.sum(field, filters) or 0
            except Exception as exc:
                self._log_failure("sum", entity_key, exc)
        if field in REVENUE_FIELDS:
            return self.counters.get("revenue") or 0
        return 0
