"""Dynamic filter/search/sort/paginate engine shared by every entity listing.

``apply_query`` accepts either an in-memory iterable of records or a SQLAlchemy
``Query``/``Select``. In-memory input is evaluated eagerly and returned as a
list; SQL input is composed into a new statement that the caller executes once.
"""

from __future__ import annotations

import logging
import operator as op
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence

from sqlalchemy import and_, false, or_
from sqlalchemy.orm import Query
from sqlalchemy.sql import Select

from app.core.errors import (
    InvalidPagingError,
    InvalidSortOrderError,
    QueryCancelledError,
    UnsupportedOperatorError,
)
from app.schemas.query import FilterCriterion, FilterOperator
from app.services.query_fields import (
    FieldAccessor,
    FieldKind,
    RecordFields,
    as_aware,
    is_date_only_literal,
    is_null_literal,
    record_fields,
)

_LOG = logging.getLogger("app.query")

SORT_ORDERS = {"asc", "desc"}
_LIKE_ESCAPE = "\\"
# Largest OFFSET/LIMIT a 64-bit SQL integer can bind.
_MAX_SQL_INT = 2**63 - 1

_EQUALITY = {FilterOperator.EQUAL, FilterOperator.NOT_EQUAL}
_ORDERING = {
    FilterOperator.GREATER_THAN,
    FilterOperator.GREATER_THAN_OR_EQUAL,
    FilterOperator.LESS_THAN,
    FilterOperator.LESS_THAN_OR_EQUAL,
}
_TEXT_MATCH = {FilterOperator.CONTAINS, FilterOperator.STARTS_WITH, FilterOperator.ENDS_WITH}

_ORDERED_KINDS = frozenset({FieldKind.TEXT, FieldKind.NUMBER, FieldKind.DATE, FieldKind.DATETIME})
SUPPORTED_KINDS: dict[FilterOperator, frozenset[FieldKind]] = {
    **{operator: frozenset(FieldKind) for operator in _EQUALITY},
    **{operator: _ORDERED_KINDS for operator in _ORDERING},
    **{operator: frozenset({FieldKind.TEXT}) for operator in _TEXT_MATCH},
}

_COMPARE: dict[FilterOperator, Callable[[Any, Any], bool]] = {
    FilterOperator.GREATER_THAN: op.gt,
    FilterOperator.GREATER_THAN_OR_EQUAL: op.ge,
    FilterOperator.LESS_THAN: op.lt,
    FilterOperator.LESS_THAN_OR_EQUAL: op.le,
    FilterOperator.CONTAINS: lambda value, target: target in value,
    FilterOperator.STARTS_WITH: lambda value, target: value.startswith(target),
    FilterOperator.ENDS_WITH: lambda value, target: value.endswith(target),
}


class CancellationSignal(Protocol):
    def is_set(self) -> bool: ...


def _normalized(value: Any) -> Any:
    if isinstance(value, datetime):
        return as_aware(value)
    return value


@dataclass(frozen=True)
class Condition:
    """One resolved filter criterion: field, operator and converted value."""

    field: FieldAccessor
    operator: FilterOperator
    value: Any = None
    is_null: bool = False
    day_range: bool = False

    def matches(self, record: Any) -> bool:
        actual = _normalized(self.field.get(record))
        if self.operator in _EQUALITY:
            equal = self._equals(actual)
            return equal if self.operator is FilterOperator.EQUAL else not equal
        if actual is None:
            return False
        return _COMPARE[self.operator](actual, self.value)

    def _equals(self, actual: Any) -> bool:
        if self.is_null:
            return actual is None or (self.field.kind is FieldKind.TEXT and actual == "")
        if actual is None:
            return False
        if self.day_range:
            return self.value <= actual < self.value + timedelta(days=1)
        return actual == self.value

    def clause(self, column: Any):
        if self.operator in _EQUALITY:
            equal = self._equals_clause(column)
            if self.operator is FilterOperator.EQUAL:
                return equal
            if self.is_null:
                return ~equal
            return or_(~equal, column.is_(None))
        if self.operator is FilterOperator.CONTAINS:
            return column.contains(self.value, autoescape=True)
        if self.operator is FilterOperator.STARTS_WITH:
            return column.startswith(self.value, autoescape=True)
        if self.operator is FilterOperator.ENDS_WITH:
            return column.endswith(self.value, autoescape=True)
        return _COMPARE[self.operator](column, self.value)

    def _equals_clause(self, column: Any):
        if self.is_null:
            if self.field.kind is FieldKind.TEXT:
                return or_(column.is_(None), column == "")
            return column.is_(None)
        if self.day_range:
            return and_(column >= self.value, column < self.value + timedelta(days=1))
        return column == self.value


def build_condition(fields: RecordFields, criterion: FilterCriterion) -> Condition:
    accessor = fields.resolve(criterion.property_name)
    operator = FilterOperator(criterion.operator)
    if accessor.kind not in SUPPORTED_KINDS[operator]:
        raise UnsupportedOperatorError(operator.value, accessor.name, accessor.kind.value)
    raw = criterion.value
    if operator in _EQUALITY:
        if is_null_literal(raw):
            return Condition(accessor, operator, is_null=True)
        day_range = accessor.kind is FieldKind.DATETIME and is_date_only_literal(raw)
        return Condition(accessor, operator, accessor.coerce(raw), day_range=day_range)
    if raw is None:
        raise UnsupportedOperatorError(operator.value, accessor.name, "null")
    return Condition(accessor, operator, accessor.coerce(raw))


def validate_paging(page_number: int, page_size: int) -> None:
    if page_size < 1:
        raise InvalidPagingError("Page size invalid")
    if page_number < 1:
        raise InvalidPagingError("Page number invalid")


def normalize_sort_order(sort_order: Optional[str]) -> str:
    value = "asc" if sort_order is None else str(sort_order).strip().lower()
    if value not in SORT_ORDERS:
        raise InvalidSortOrderError(str(sort_order))
    return value


def escape_like(term: str) -> str:
    return (
        term.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def _check_cancel(cancel: Optional[CancellationSignal]) -> None:
    if cancel is not None and cancel.is_set():
        raise QueryCancelledError("Query cancelled")


@dataclass(frozen=True)
class QueryPlan:
    fields: RecordFields
    conditions: tuple[Condition, ...]
    search_term: str
    sort: Optional[FieldAccessor]
    descending: bool
    offset: int
    limit: int


def plan_query(
    model: type,
    filters: Optional[Sequence[FilterCriterion]] = None,
    search_term: Optional[str] = None,
    page_number: int = 1,
    page_size: int = 10,
    sort_field: Optional[str] = None,
    sort_order: Optional[str] = "asc",
) -> QueryPlan:
    """Validate every input up front so that no work starts on a bad request."""
    validate_paging(page_number, page_size)
    order = normalize_sort_order(sort_order)
    fields = record_fields(model)
    conditions = tuple(build_condition(fields, criterion) for criterion in (filters or []))
    sort = fields.resolve(sort_field) if str(sort_field or "").strip() else None
    return QueryPlan(
        fields=fields,
        conditions=conditions,
        search_term=str(search_term or "").strip(),
        sort=sort,
        descending=order == "desc",
        offset=(page_number - 1) * page_size,
        limit=page_size,
    )


def _search_matches(plan: QueryPlan, record: Any) -> bool:
    text_fields = plan.fields.text_fields
    if not text_fields:
        return True
    needle = plan.search_term.casefold()
    for accessor in text_fields:
        value = accessor.get(record)
        if value is not None and needle in value.casefold():
            return True
    return False


def _sort_key(accessor: FieldAccessor) -> Callable[[Any], tuple]:
    def key(record: Any) -> tuple:
        value = _normalized(accessor.get(record))
        # Nulls first ascending; reverse=True puts them last descending.
        return (0,) if value is None else (1, value)

    return key


def _apply_in_memory(
    records: Iterable[Any], plan: QueryPlan, cancel: Optional[CancellationSignal]
) -> list[Any]:
    selected = []
    for record in records:
        _check_cancel(cancel)
        if not all(condition.matches(record) for condition in plan.conditions):
            continue
        if plan.search_term and not _search_matches(plan, record):
            continue
        selected.append(record)
    _check_cancel(cancel)
    if plan.sort is not None:
        # sorted() is stable, including with reverse=True.
        selected = sorted(selected, key=_sort_key(plan.sort), reverse=plan.descending)
    return selected[plan.offset : plan.offset + plan.limit]


def _column(model: type, accessor: FieldAccessor, collation: Optional[str]):
    column = getattr(model, accessor.name)
    if collation and accessor.kind is FieldKind.TEXT:
        return column.collate(collation)
    return column


def _apply_sql(statement, model: type, plan: QueryPlan, collation: Optional[str]):
    for condition in plan.conditions:
        statement = statement.where(condition.clause(_column(model, condition.field, collation)))
    text_fields = plan.fields.text_fields
    if plan.search_term and text_fields:
        pattern = f"%{escape_like(plan.search_term)}%"
        statement = statement.where(
            or_(*[getattr(model, accessor.name).ilike(pattern, escape=_LIKE_ESCAPE) for accessor in text_fields])
        )
    if plan.sort is not None:
        column = _column(model, plan.sort, collation)
        ordering = column.desc().nulls_last() if plan.descending else column.asc().nulls_first()
        tie_breakers = [getattr(model, name).asc() for name in plan.fields.primary_key if name != plan.sort.name]
        statement = statement.order_by(ordering, *tie_breakers)
    if plan.offset > _MAX_SQL_INT:
        return statement.where(false()).limit(0)
    return statement.offset(plan.offset).limit(min(plan.limit, _MAX_SQL_INT))


def apply_query(
    collection: Any,
    model: type,
    filters: Optional[Sequence[FilterCriterion]] = None,
    search_term: Optional[str] = None,
    page_number: int = 1,
    page_size: int = 10,
    sort_field: Optional[str] = None,
    sort_order: Optional[str] = "asc",
    *,
    collation: Optional[str] = None,
    cancel: Optional[CancellationSignal] = None,
):
    """Filter, search, sort and paginate ``collection`` of ``model`` records.

    Filters are combined with AND; a non-empty search term further requires a
    case-insensitive match in at least one text field. Pagination is applied
    last. Raises a ``QueryError`` subclass on invalid input before doing any
    work, and ``QueryCancelledError`` once ``cancel`` is set.
    """
    _check_cancel(cancel)
    plan = plan_query(model, filters, search_term, page_number, page_size, sort_field, sort_order)
    _LOG.debug(
        "query %s filters=%d search=%s sort=%s desc=%s offset=%d limit=%d",
        plan.fields.record_type,
        len(plan.conditions),
        bool(plan.search_term),
        plan.sort.name if plan.sort else None,
        plan.descending,
        plan.offset,
        plan.limit,
    )
    if isinstance(collection, (Query, Select)):
        return _apply_sql(collection, model, plan, collation)
    return _apply_in_memory(collection, plan, cancel)


