"""
Degraded-mode counter store: approximate totals served when no backend is reachable.
"""

import threading
from typing import Dict, Union

from framework.logging.logger import get_logger

logger = get_logger("counter_store")

Number = Union[int, float]

TRACKED_KEYS = ("users", "vendors", "products", "orders", "revenue")


class CounterStore:
    """In-memory counters plus the switch that says whether a real backend may be used.

    Counters start at zero, are never persisted and only move through
    update_progress(). One instance is owned by the DatabaseManager and injected
    into repositories and the aggregate gateway.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._values: Dict[str, Number] = {key: 0 for key in TRACKED_KEYS}
        self._db_available = False

    def enable_db(self) -> None:
        self._db_available = True
        logger.info("Database access enabled")

    def disable_db(self) -> None:
        self._db_available = False
        logger.info("Database access disabled, serving degraded counters")

    def is_db_available(self) -> bool:
        return self._db_available

    def update_progress(self, key: str, delta: Number = 1) -> None:
        """Increment a tracked counter; unknown keys are ignored."""
        with self._lock:
            if key not in self._values:
                return
            self._values[key] += delta

    def get(self, key: str) -> Number:
        with self._lock:
            return self._values.get(key, 0)

    def snapshot(self) -> Dict[str, Number]:
        with self._lock:
            return dict(self._values)

    def reset(self) -> None:
        with self._lock:
            for key in self._values:
                self._values[key] = 0
