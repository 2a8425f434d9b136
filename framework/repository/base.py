"""
Repository abstract base class and dual-backend generic implementation.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pymongo.errors import PyMongoError
from sqlalchemy.exc import SQLAlchemyError

from framework.config import settings
from framework.logging.logger import get_logger
from framework.response import Pagination, ResultEnvelope
from .counters import CounterStore
from .dialect import ModelHandle, resolve_dialect
from .filters import Constraint, FilterDescription, Op
from .stores import RecordStore, build_store

logger = get_logger("repository")

BACKEND_ERRORS = (SQLAlchemyError, PyMongoError)


class IRepository(ABC):
    """Repository interface; every method answers with a ResultEnvelope."""

    @abstractmethod
    async def get_all(self, filters: Optional[Dict[str, Any]] = None, page: int = 1, limit: int = 20) -> ResultEnvelope:
        """Get one page of entities, newest first."""
        pass

    @abstractmethod
    async def get_by_id(self, id: Any) -> ResultEnvelope:
        """Get entity by ID."""
        pass

    @abstractmethod
    async def create(self, record: Dict[str, Any]) -> ResultEnvelope:
        """Create entity."""
        pass

    @abstractmethod
    async def update(self, id: Any, changes: Dict[str, Any]) -> ResultEnvelope:
        """Apply a partial update."""
        pass

    @abstractmethod
    async def delete(self, id: Any) -> ResultEnvelope:
        """Delete entity."""
        pass


class BaseRepository(IRepository):
    """Generic repository over whichever backend the handle carries.

    The dialect is resolved once in __init__ and never re-probed. Subclasses set the
    entity metadata below and add entity-specific finders.
    """

    entity_name: str = "Record"
    entity_plural: str = "records"
    collection_name: str = "records"
    counter_key: Optional[str] = None

    # Semantic filter names accepted from callers, mapped to stored field names
    filter_aliases: Dict[str, str] = {"createdAt": "created_at", "updatedAt": "updated_at"}
    # Filters where the value "all" means no constraint
    wildcard_filters: Tuple[str, ...] = ("status", "category", "role")
    search_fields: Tuple[str, ...] = ()
    date_fields: Tuple[str, ...] = ("created_at", "updated_at")
    # Never returned on reads
    hidden_fields: Tuple[str, ...] = ()
    # Always stripped from updates
    credential_fields: FrozenSet[str] = frozenset({"password", "hashed_password"})
    # Summaries of related records attached on reads: name -> (foreign key, summary fields)
    relations: Dict[str, Tuple[str, Tuple[str, ...]]] = {}

    def __init__(
        self,
        handle: Optional[ModelHandle] = None,
        counters: Optional[CounterStore] = None,
        related: Optional[Dict[str, ModelHandle]] = None,
    ):
        self.handle = handle or ModelHandle()
        self.counters = counters
        self.dialect = resolve_dialect(self.handle)
        self._store = build_store(self.handle, self.date_fields)
        self._related: Dict[str, RecordStore] = {}
        for name, related_handle in (related or {}).items():
            store = build_store(related_handle)
            if name in self.relations and store is not None:
                self._related[name] = store
        logger.info(f"[{self.entity_name}] repository bound to {self.dialect.value} backend")

    @property
    def store(self) -> Optional[RecordStore]:
        """The bound store, or None while no backend may be used."""
        if self._store is None:
            return None
        if self.counters is not None and not self.counters.is_db_available():
            return None
        return self._store

    def build_filters(self, filters: Optional[Dict[str, Any]]) -> FilterDescription:
        """Turn caller-facing semantic filters into a filter description."""
        description = {}
        for key, value in (filters or {}).items():
            if key == "search":
                text = value.strip() if isinstance(value, str) else ""
                if text and self.search_fields:
                    description["search"] = Constraint(
                        Op.OR,
                        [{field: Constraint(Op.CONTAINS, text)} for field in self.search_fields],
                    )
                continue
            if key in self.wildcard_filters and value == "all":
                continue
            description[self.filter_aliases.get(key, key)] = value
        return description

    @staticmethod
    def page_args(page: Any = None, limit: Any = None) -> Tuple[int, int]:
        """Coerce page/limit to integers >= 1, falling back to configured defaults."""
        try:
            page = int(page) if page is not None else settings.DEFAULT_PAGE
        except (TypeError, ValueError):
            page = settings.DEFAULT_PAGE
        try:
            limit = int(limit) if limit is not None else settings.DEFAULT_PAGE_LIMIT
        except (TypeError, ValueError):
            limit = settings.DEFAULT_PAGE_LIMIT
        return max(page, 1), limit if limit >= 1 else settings.DEFAULT_PAGE_LIMIT

    def _page_payload(self, records, page: int, limit: int, total: int) -> Dict[str, Any]:
        pagination = Pagination.build(page, limit, total)
        return {self.entity_plural: records, "pagination": pagination.model_dump()}

    def _failure(self, operation: str, exc: Exception, message: Optional[str] = None, data: Any = None) -> ResultEnvelope:
        if isinstance(exc, BACKEND_ERRORS):
            logger.error(f"[{self.entity_name}] {operation} failed: {exc}")
        else:
            logger.opt(exception=True).error(f"[{self.entity_name}] {operation} failed: {exc}")
        return ResultEnvelope.fail(error=str(exc), message=message, data=data)

    async def _attach_related(self, records: List[Dict[str, Any]]) -> None:
        for name, store in self._related.items():
            foreign_key, fields = self.relations[name]
            ids = {record.get(foreign_key) for record in records} - {None, ""}
            summaries = await store.find_by_ids(ids, fields) if ids else {}
            for record in records:
                key = record.get(foreign_key)
                record[name] = summaries.get(str(key)) if key is not None else None

    def _record_created(self, record: Dict[str, Any]) -> None:
        if self.counters is not None and self.counter_key:
            self.counters.update_progress(self.counter_key)

    async def get_all(self, filters=None, page=None, limit=None) -> ResultEnvelope:
        page, limit = self.page_args(page, limit)
        store = self.store
        if store is None:
            return ResultEnvelope.ok(self._page_payload([], page, limit, 0))
        try:
            records, total = await store.find_page(
                self.build_filters(filters), (page - 1) * limit, limit, self.hidden_fields
            )
            await self._attach_related(records)
        except Exception as exc:
            return self._failure("get_all", exc, message=f"Failed to fetch {self.entity_plural}")
        return ResultEnvelope.ok(self._page_payload(records, page, limit, total))

    async def get_by_id(self, id) -> ResultEnvelope:
        store = self.store
        if store is None:
            return ResultEnvelope.fail()
        try:
            record = await store.get(id, self.hidden_fields)
            if record is not None:
                await self._attach_related([record])
        except Exception as exc:
            return self._failure("get_by_id", exc)
        return ResultEnvelope(success=record is not None, data=record)

    async def find_one(self, filters: Dict[str, Any], include_hidden: bool = False) -> ResultEnvelope:
        """Single-record read by semantic filters."""
        store = self.store
        if store is None:
            return ResultEnvelope.fail()
        hidden = () if include_hidden else self.hidden_fields
        try:
            record = await store.find_one(self.build_filters(filters), hidden)
        except Exception as exc:
            return self._failure("find_one", exc)
        return ResultEnvelope(success=record is not None, data=record)

    async def create(self, record) -> ResultEnvelope:
        store = self.store
        if store is None:
            return ResultEnvelope.fail()
        try:
            created = await store.insert(dict(record or {}), self.hidden_fields)
        except Exception as exc:
            return self._failure("create", exc, message=f"Failed to create {self.entity_name.lower()}")
        self._record_created(created)
        return ResultEnvelope.ok(created)

    async def update(self, id, changes) -> ResultEnvelope:
        store = self.store
        if store is None:
            return ResultEnvelope.fail()
        try:
            safe_changes = {
                key: value for key, value in (changes or {}).items()
                if key not in self.credential_fields
            }
            updated = await store.patch(id, safe_changes, self.hidden_fields)
        except Exception as exc:
            return self._failure("update", exc, message=f"Failed to update {self.entity_name.lower()}")
        return ResultEnvelope(success=updated is not None, data=updated)

    async def delete(self, id) -> ResultEnvelope:
        store = self.store
        if store is None:
            return ResultEnvelope.fail()
        try:
            deleted = await store.remove(id)
        except Exception as exc:
            return self._failure("delete", exc, message=f"Failed to delete {self.entity_name.lower()}")
        if not deleted:
            return ResultEnvelope.fail(message=f"{self.entity_name} not found")
        return ResultEnvelope.ok({"id": id})

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> ResultEnvelope:
        store = self.store
        if store is None:
            return ResultEnvelope.ok(0)
        try:
            total = await store.count(self.build_filters(filters))
        except Exception as exc:
            return self._failure("count", exc)
        return ResultEnvelope.ok(total)
