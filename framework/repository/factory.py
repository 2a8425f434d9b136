"""
Repository factory: one repository instance per entity per process.
"""

import threading
from typing import Dict, Optional, Type, TypeVar

from framework.logging.logger import get_logger
from .base import BaseRepository
from .counters import CounterStore
from .dialect import ModelHandle

logger = get_logger("repository_factory")

R = TypeVar("R", bound=BaseRepository)


class RepositoryFactory:
    """Caches repositories by class; the first call binds the handle for good."""

    _cache: Dict[str, BaseRepository] = {}
    _lock = threading.Lock()

    @classmethod
    def get_repository(
        cls,
        repo_class: Type[R],
        handle: Optional[ModelHandle] = None,
        counters: Optional[CounterStore] = None,
        related: Optional[Dict[str, ModelHandle]] = None,
    ) -> R:
        cache_key = repo_class.__name__
        with cls._lock:
            if cache_key not in cls._cache:
                cls._cache[cache_key] = repo_class(handle, counters, related)
                logger.info(f"Created {cache_key} ({cls._cache[cache_key].dialect.value})")
            return cls._cache[cache_key]

    @classmethod
    def clear_cache(cls) -> None:
        """Drop cached repositories (used by tests and reconnects)."""
        with cls._lock:
            cls._cache.clear()
