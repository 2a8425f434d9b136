"""
Record stores: one concrete strategy per dialect behind a common async interface.

Stores speak plain dicts and filter descriptions; they raise whatever the driver
raises and leave error handling to the repository or aggregate gateway.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument
from sqlmodel import func, select

from .dialect import Dialect, DocumentHandle, ModelHandle, SQLHandle, resolve_dialect
from .filters import FilterDescription, to_document_filter, to_relational_clauses
from .unit_of_work import UnitOfWork

Record = Dict[str, Any]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RecordStore(ABC):
    """Dialect-specific CRUD and aggregate primitives."""

    dialect: Dialect

    @abstractmethod
    async def find_page(
        self, filters: FilterDescription, offset: int, limit: int, hidden: Iterable[str] = ()
    ) -> Tuple[List[Record], int]:
        """Return one page (newest first) and the total match count."""

    @abstractmethod
    async def find_one(self, filters: FilterDescription, hidden: Iterable[str] = ()) -> Optional[Record]:
        pass

    @abstractmethod
    async def get(self, id: Any, hidden: Iterable[str] = ()) -> Optional[Record]:
        pass

    @abstractmethod
    async def find_by_ids(self, ids: Iterable[Any], fields: Iterable[str]) -> Dict[str, Record]:
        """Summaries (id plus `fields`) of the given records, keyed by str(id)."""

    @abstractmethod
    async def insert(self, record: Record, hidden: Iterable[str] = ()) -> Record:
        pass

    @abstractmethod
    async def patch(self, id: Any, changes: Record, hidden: Iterable[str] = ()) -> Optional[Record]:
        pass

    @abstractmethod
    async def remove(self, id: Any) -> bool:
        pass

    @abstractmethod
    async def count(self, filters: Optional[FilterDescription] = None) -> int:
        pass

    @abstractmethod
    async def sum(self, field: str, filters: Optional[FilterDescription] = None) -> float:
        pass


class SQLRecordStore(RecordStore):
    """Relational strategy over a SQLModel table."""

    dialect = Dialect.RELATIONAL

    def __init__(self, handle: SQLHandle):
        self.handle = handle
        self.model = handle.model
        self.columns = handle.columns
        self.date_fields = handle.date_columns
        self.primary_keys = [column.key for column in self.model.__table__.primary_key.columns]

    def where(self, filters: Optional[FilterDescription]) -> list:
        return to_relational_clauses(filters, self.columns, self.date_fields)

    def _filtered(self, statement, filters):
        clauses = self.where(filters)
        if clauses:
            statement = statement.where(*clauses)
        return statement

    def _ordering(self) -> list:
        order = []
        if "created_at" in self.columns:
            order.append(self.columns["created_at"].desc())
        order.extend(self.columns[key].desc() for key in self.primary_keys)
        return order

    def _serialize(self, instance, hidden: Iterable[str] = ()) -> Record:
        data = instance.model_dump()
        for field in hidden:
            data.pop(field, None)
        return data

    async def find_page(self, filters, offset, limit, hidden=()):
        statement = self._filtered(select(self.model), filters)
        statement = statement.order_by(*self._ordering()).offset(offset).limit(limit)
        count_statement = self._filtered(select(func.count()).select_from(self.model), filters)

        async with self.handle.session_factory() as session:
            rows = (await session.exec(statement)).all()
            total = (await session.exec(count_statement)).one()
        return [self._serialize(row, hidden) for row in rows], int(total or 0)

    async def find_one(self, filters, hidden=()):
        statement = self._filtered(select(self.model), filters)
        statement = statement.order_by(*self._ordering()).limit(1)
        async with self.handle.session_factory() as session:
            instance = (await session.exec(statement)).first()
        return self._serialize(instance, hidden) if instance is not None else None

    async def get(self, id, hidden=()):
        async with self.handle.session_factory() as session:
            instance = await session.get(self.model, id)
        return self._serialize(instance, hidden) if instance is not None else None

    async def find_by_ids(self, ids, fields):
        ids = list(ids)
        if not ids or len(self.primary_keys) != 1:
            return {}
        key = self.primary_keys[0]
        statement = select(self.model).where(self.columns[key].in_(ids))
        async with self.handle.session_factory() as session:
            rows = (await session.exec(statement)).all()
        found = {}
        for row in rows:
            data = row.model_dump()
            found[str(data[key])] = {"id": data[key], **{field: data.get(field) for field in fields}}
        return found

    async def insert(self, record, hidden=()):
        payload = {key: value for key, value in record.items() if key in self.columns}
        async with UnitOfWork(self.handle.session_factory) as uow:
            instance = self.model.model_validate(payload)
            uow.session.add(instance)
            await uow.flush()
            await uow.session.refresh(instance)
            created = self._serialize(instance, hidden)
        return created

    async def patch(self, id, changes, hidden=()):
        changes = {
            key: value for key, value in changes.items()
            if key in self.columns and key not in self.primary_keys
        }
        if not changes:
            return await self.get(id, hidden)

        if "updated_at" in self.columns and "updated_at" not in changes:
            changes["updated_at"] = _now()

        async with UnitOfWork(self.handle.session_factory) as uow:
            instance = await uow.session.get(self.model, id)
            if instance is None:
                return None
            for key, value in changes.items():
                setattr(instance, key, value)
            uow.session.add(instance)
            await uow.flush()
            await uow.session.refresh(instance)
            updated = self._serialize(instance, hidden)
        return updated

    async def remove(self, id):
        async with UnitOfWork(self.handle.session_factory) as uow:
            instance = await uow.session.get(self.model, id)
            if instance is None:
                return False
            await uow.session.delete(instance)
        return True

    async def count(self, filters=None):
        statement = self._filtered(select(func.count()).select_from(self.model), filters)
        async with self.handle.session_factory() as session:
            total = (await session.exec(statement)).one()
        return int(total or 0)

    async def sum(self, field, filters=None):
        column = self.columns.get(field)
        if column is None:
            return 0
        statement = self._filtered(select(func.sum(column)), filters)
        async with self.handle.session_factory() as session:
            total = (await session.exec(statement)).one()
        return total or 0


class DocumentRecordStore(RecordStore):
    """Document strategy over a motor collection."""

    dialect = Dialect.DOCUMENT

    def __init__(self, handle: DocumentHandle, date_fields: Optional[Iterable[str]] = None):
        self.handle = handle
        self.collection = handle.collection
        self.date_fields = tuple(date_fields) if date_fields is not None else None

    def where(self, filters: Optional[FilterDescription]) -> Dict[str, Any]:
        return to_document_filter(filters, self.date_fields)

    @staticmethod
    def object_id(id: Any) -> Any:
        if isinstance(id, str) and ObjectId.is_valid(id):
            return ObjectId(id)
        return id

    @staticmethod
    def _projection(hidden: Iterable[str]) -> Optional[Dict[str, int]]:
        projection = {field: 0 for field in hidden}
        return projection or None

    @staticmethod
    def _serialize(document: Optional[Record]) -> Optional[Record]:
        if document is None:
            return None
        mapped = dict(document)
        if "_id" in mapped:
            object_id = mapped.pop("_id")
            mapped.setdefault("id", str(object_id))
        return mapped

    async def find_page(self, filters, offset, limit, hidden=()):
        query = self.where(filters)
        cursor = self.collection.find(
            query,
            self._projection(hidden),
            sort=[("created_at", -1), ("_id", -1)],
            skip=offset,
            limit=limit,
        )
        documents = await cursor.to_list(length=limit)
        total = await self.collection.count_documents(query)
        return [self._serialize(document) for document in documents], int(total)

    async def find_one(self, filters, hidden=()):
        document = await self.collection.find_one(self.where(filters), self._projection(hidden))
        return self._serialize(document)

    async def get(self, id, hidden=()):
        document = await self.collection.find_one({"_id": self.object_id(id)}, self._projection(hidden))
        return self._serialize(document)

    async def find_by_ids(self, ids, fields):
        object_ids = [self.object_id(id) for id in ids]
        if not object_ids:
            return {}
        fields = list(fields)
        cursor = self.collection.find(
            {"_id": {"$in": object_ids}},
            {field: 1 for field in fields} or None,
        )
        found = {}
        for document in await cursor.to_list(length=len(object_ids)):
            summary = self._serialize(document)
            found[summary["id"]] = {"id": summary["id"], **{field: summary.get(field) for field in fields}}
        return found

    async def insert(self, record, hidden=()):
        document = {key: value for key, value in record.items() if key not in ("id", "_id")}
        now = _now()
        document.setdefault("created_at", now)
        document.setdefault("updated_at", now)
        result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        created = self._serialize(document)
        for field in hidden:
            created.pop(field, None)
        return created

    async def patch(self, id, changes, hidden=()):
        changes = {key: value for key, value in changes.items() if key not in ("id", "_id")}
        if not changes:
            return await self.get(id, hidden)
        changes.setdefault("updated_at", _now())
        document = await self.collection.find_one_and_update(
            {"_id": self.object_id(id)},
            {"$set": changes},
            projection=self._projection(hidden),
            return_document=ReturnDocument.AFTER,
        )
        return self._serialize(document)

    async def remove(self, id):
        result = await self.collection.delete_one({"_id": self.object_id(id)})
        return result.deleted_count > 0

    async def count(self, filters=None):
        return int(await self.collection.count_documents(self.where(filters)))

    async def sum(self, field, filters=None):
        pipeline = [
            {"$match": self.where(filters)},
            {"$group": {"_id": None, "total": {"$sum": f"${field}"}}},
        ]
        results = await self.collection.aggregate(pipeline).to_list(length=1)
        if not results:
            return 0
        return results[0].get("total") or 0


def build_store(handle: Optional[ModelHandle], date_fields: Optional[Iterable[str]] = None) -> Optional[RecordStore]:
    """The store for a handle's dialect, or None when it carries no backend."""
    dialect = resolve_dialect(handle)
    if dialect is Dialect.RELATIONAL:
        return SQLRecordStore(handle.relational)
    if dialect is Dialect.DOCUMENT:
        return DocumentRecordStore(handle.document, date_fields)
    return None
