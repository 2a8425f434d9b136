"""
Predicate translation: one backend-agnostic filter description, two native dialects.

A filter description maps field names to constraints. A constraint is a literal
(equality, or membership for a list), a ``Constraint(op, value)`` or a mapping of
operator names to values such as ``{"gte": start, "lte": end}``. An ``or`` constraint
carries a list of nested filter descriptions; its field name is only a label. A
mapping with no operator keys is an embedded-object literal: the document dialect
matches it as is, the relational dialect compares JSON paths.

Translation never raises. Unknown operators, unknown columns, empty values and
unparseable dates are dropped, and a clause left with nothing in it disappears.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import JSON, and_, false, or_

from framework.logging.logger import get_logger
from .dialect import Dialect, SQLHandle

logger = get_logger("predicate_translator")

FilterDescription = Mapping[str, Any]


class Op(str, Enum):
    GTE = "gte"
    LTE = "lte"
    GT = "gt"
    LT = "lt"
    NE = "ne"
    IN = "in"
    OR = "or"
    CONTAINS = "contains"

    @classmethod
    def parse(cls, value: Any) -> Optional["Op"]:
        if isinstance(value, Op):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower().lstrip("$"))
            except ValueError:
                return None
        return None


@dataclass(frozen=True)
class Constraint:
    op: Op
    value: Any


DOCUMENT_OPERATORS = {
    Op.GTE: "$gte",
    Op.LTE: "$lte",
    Op.GT: "$gt",
    Op.LT: "$lt",
    Op.NE: "$ne",
    Op.IN: "$in",
    Op.OR: "$or",
}

_DROP = object()


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def coerce_date(value: Any) -> Optional[datetime]:
    """Parse a date candidate; None when it is not a valid date.

    Native datetimes pass through, numbers are epoch milliseconds and strings are
    ISO-8601. Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def looks_like_date_field(name: str) -> bool:
    return name.endswith("At") or name.endswith("_at") or "date" in name.lower()


def _is_operator_key(key: Any) -> bool:
    if isinstance(key, Op):
        return True
    return isinstance(key, str) and (key.startswith("$") or Op.parse(key) is not None)


def _constraints(value: Any) -> Optional[Dict[Op, Any]]:
    """Normalize a constraint into {Op: value}; None means a plain literal.

    A mapping with no operator keys is a nested literal (an embedded object), not
    an empty constraint.
    """
    if isinstance(value, Constraint):
        return {value.op: value.value}
    if isinstance(value, Mapping):
        if not any(_is_operator_key(key) for key in value):
            return None
        ops = {}
        for key, operand in value.items():
            op = Op.parse(key)
            if op is not None:
                ops[op] = operand
        return ops
    if isinstance(value, (list, tuple, set, frozenset)):
        if value and all(isinstance(item, Constraint) for item in value):
            return {item.op: item.value for item in value}
        return {Op.IN: list(value)}
    return None


def _prune_nested(value: Mapping) -> Any:
    """Drop empty members of an embedded object, recursively; _DROP if nothing is left."""
    pruned = {}
    for key, item in value.items():
        if isinstance(item, Mapping):
            item = _prune_nested(item)
        elif _is_empty(item):
            item = _DROP
        if item is not _DROP:
            pruned[key] = item
    return pruned or _DROP


def _clean_literal(value: Any, is_date: bool) -> Any:
    if _is_empty(value):
        return _DROP
    if isinstance(value, Mapping):
        return _prune_nested(value)
    if is_date:
        coerced = coerce_date(value)
        return _DROP if coerced is None else coerced
    return value


def _clean_ops(ops: Dict[Op, Any], is_date: bool) -> Dict[Op, Any]:
    cleaned = {}
    for op, operand in ops.items():
        if op is Op.OR:
            continue
        if op is Op.IN:
            items = operand if isinstance(operand, (list, tuple, set, frozenset)) else [operand]
            kept = []
            for item in items:
                item = _clean_literal(item, is_date)
                if item is not _DROP:
                    kept.append(item)
            if kept:
                cleaned[op] = kept
            continue
        if _is_empty(operand) or isinstance(operand, Mapping):
            continue
        if op is Op.CONTAINS:
            if not is_date:
                cleaned[op] = str(operand)
            continue
        if is_date:
            operand = coerce_date(operand)
            if operand is None:
                continue
        cleaned[op] = operand
    return cleaned


def _or_branches(ops: Dict[Op, Any]) -> List[FilterDescription]:
    branches = ops.get(Op.OR)
    if not isinstance(branches, (list, tuple)):
        return []
    return [branch for branch in branches if isinstance(branch, Mapping)]


def _as_mapping(filters: Any) -> FilterDescription:
    if filters is None:
        return {}
    if not isinstance(filters, Mapping):
        logger.warning(f"Ignoring filter of type {type(filters).__name__}")
        return {}
    return filters


def to_document_filter(
    filters: Optional[FilterDescription],
    date_fields: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Translate a filter description into a MongoDB query document."""
    filters = _as_mapping(filters)
    date_fields = set(date_fields) if date_fields is not None else None
    query: Dict[str, Any] = {}
    or_groups = []

    for field, value in filters.items():
        if not isinstance(field, str) or field.startswith("$"):
            continue
        is_date = field in date_fields if date_fields is not None else looks_like_date_field(field)
        ops = _constraints(value)

        if ops is None:
            literal = _clean_literal(value, is_date)
            if literal is not _DROP:
                query[field] = literal
            continue

        if Op.OR in ops:
            group = []
            for branch in _or_branches(ops):
                translated = to_document_filter(branch, date_fields)
                if translated:
                    group.append(translated)
            if group:
                or_groups.append(group)

        cleaned = _clean_ops(ops, is_date)
        if not cleaned:
            continue
        clause = {}
        for op, operand in cleaned.items():
            if op is Op.CONTAINS:
                clause["$regex"] = re.escape(operand)
                clause["$options"] = "i"
            else:
                clause[DOCUMENT_OPERATORS[op]] = operand
        query[field] = clause

    if len(or_groups) == 1:
        query["$or"] = or_groups[0]
    elif or_groups:
        query["$and"] = [{"$or": group} for group in or_groups]
    return query


def _column_clause(column, op: Op, operand: Any):
    if op is Op.GTE:
        return column >= operand
    if op is Op.LTE:
        return column <= operand
    if op is Op.GT:
        return column > operand
    if op is Op.LT:
        return column < operand
    if op is Op.NE:
        return column != operand
    if op is Op.IN:
        return column.in_(operand)
    if op is Op.CONTAINS:
        return column.icontains(operand, autoescape=True)
    return None


def _json_equals(element, value: Any):
    if isinstance(value, bool):
        return element.as_boolean() == value
    if isinstance(value, int):
        return element.as_integer() == value
    if isinstance(value, float):
        return element.as_float() == value
    if isinstance(value, str):
        return element.as_string() == value
    return None


def _nested_clauses(column, value: Mapping, path: Tuple[str, ...] = ()) -> List[Any]:
    """Path equality for an embedded object; on a non-JSON column it matches nothing."""
    if not isinstance(column.type, JSON):
        logger.warning(f"Embedded object filter on non-JSON column {column.key}")
        return [false()]
    clauses = []
    for key, item in value.items():
        item_path = path + (str(key),)
        if isinstance(item, Mapping):
            clauses.extend(_nested_clauses(column, item, item_path))
            continue
        element = column[item_path[0]] if len(item_path) == 1 else column[item_path]
        clause = _json_equals(element, item)
        clauses.append(clause if clause is not None else false())
    return clauses


def to_relational_clauses(
    filters: Optional[FilterDescription],
    columns: Mapping[str, Any],
    date_fields: Iterable[str] = (),
) -> List[Any]:
    """Translate a filter description into SQLAlchemy where-clauses.

    ``columns`` is the allow-list; fields that are not columns are dropped.
    """
    filters = _as_mapping(filters)
    date_fields = set(date_fields)
    clauses = []

    for field, value in filters.items():
        ops = _constraints(value)

        if ops is not None and Op.OR in ops:
            branches = []
            for branch in _or_branches(ops):
                branch_clauses = to_relational_clauses(branch, columns, date_fields)
                if branch_clauses:
                    branches.append(and_(*branch_clauses))
            if branches:
                clauses.append(or_(*branches))

        column = columns.get(field) if isinstance(field, str) else None
        if column is None:
            continue
        is_date = field in date_fields

        if ops is None:
            literal = _clean_literal(value, is_date)
            if literal is _DROP:
                continue
            if isinstance(literal, Mapping):
                clauses.extend(_nested_clauses(column, literal))
            else:
                clauses.append(column == literal)
            continue

        for op, operand in _clean_ops(ops, is_date).items():
            clause = _column_clause(column, op, operand)
            if clause is not None:
                clauses.append(clause)
    return clauses


def translate(
    filters: Optional[FilterDescription],
    dialect: Dialect,
    table: Optional[SQLHandle] = None,
    date_fields: Optional[Iterable[str]] = None,
    allowed: Optional[Iterable[str]] = None,
):
    """Translate for one dialect.

    Relational output is a list of where-clauses built against ``table``; ``allowed``
    narrows its column allow-list further. Document output is a query dict.
    Dialect.NONE, or a relational dialect with no table, yields an empty filter.
    """
    if dialect is Dialect.DOCUMENT:
        return to_document_filter(filters, date_fields)
    if dialect is Dialect.RELATIONAL:
        if table is None:
            return []
        columns = table.columns
        if allowed is not None:
            allowed = set(allowed)
            columns = {name: column for name, column in columns.items() if name in allowed}
        return to_relational_clauses(filters, columns, table.date_columns)
    return {}
