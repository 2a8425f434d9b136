"""
Backend handles and dialect resolution.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Type

from sqlalchemy import Date, DateTime, TypeDecorator
from sqlmodel import SQLModel


def is_date_type(column_type: Any) -> bool:
    """True for Date/DateTime columns, including TypeDecorators over them (sqlmodel's UTCDateTime)."""
    while isinstance(column_type, TypeDecorator):
        column_type = column_type.impl_instance
    if isinstance(column_type, (DateTime, Date)):
        return True
    try:
        return issubclass(column_type.python_type, (datetime, date))
    except NotImplementedError:
        return False


class Dialect(str, Enum):
    """Which backend API a repository talks to."""
    RELATIONAL = "relational"
    DOCUMENT = "document"
    NONE = "none"


@dataclass(frozen=True)
class SQLHandle:
    """A SQLModel table model plus the session factory of a live engine."""
    model: Type[SQLModel]
    session_factory: Callable[[], Any]

    @property
    def columns(self) -> Dict[str, Any]:
        """Column allow-list, read from the mapped table."""
        return {column.key: column for column in self.model.__table__.columns}

    @property
    def date_columns(self) -> frozenset:
        return frozenset(
            name for name, column in self.columns.items()
            if is_date_type(column.type)
        )


@dataclass(frozen=True)
class DocumentHandle:
    """A motor collection (or anything exposing the same async collection API)."""
    collection: Any


@dataclass(frozen=True)
class ModelHandle:
    """Optional relational and document handles for one entity.

    Both, either or neither may be set.
    """
    relational: Optional[SQLHandle] = None
    document: Optional[DocumentHandle] = None

    @property
    def is_empty(self) -> bool:
        return self.relational is None and self.document is None


def resolve_dialect(handle: Optional[ModelHandle]) -> Dialect:
    """Pick the dialect for a handle; relational wins when both are present."""
    if handle is None or handle.is_empty:
        return Dialect.NONE
    if handle.relational is not None:
        return Dialect.RELATIONAL
    return Dialect.DOCUMENT
