"""
Repository pattern: one CRUD/search/pagination surface over a relational or a document backend.
"""

from .aggregates import AggregateGateway
from .base import BaseRepository, IRepository
from .counters import CounterStore
from .dialect import Dialect, DocumentHandle, ModelHandle, SQLHandle, resolve_dialect
from .factory import RepositoryFactory
from .filters import Constraint, Op, translate
from .unit_of_work import UnitOfWork

__all__ = [
    "AggregateGateway",
    "BaseRepository",
    "IRepository",
    "CounterStore",
    "Dialect",
    "DocumentHandle",
    "ModelHandle",
    "SQLHandle",
    "resolve_dialect",
    "RepositoryFactory",
    "Constraint",
    "Op",
    "translate",
    "UnitOfWork",
]
