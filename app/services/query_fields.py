import dataclasses
import math
import types
import typing
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from functools import lru_cache
from typing import Any

from sqlalchemy.inspection import inspect as sa_inspect

from app.core.errors import InvalidFilterValueError, UnknownFieldError


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    UUID = "uuid"


NULL_LITERALS = {"", "null"}
_TRUE_LITERALS = {"1", "true", "yes", "y"}
_FALSE_LITERALS = {"0", "false", "no", "n"}


def normalize_identifier(name: str) -> str:
    """``IsDeleted``, ``isDeleted`` and ``is-deleted`` all become ``is_deleted``.

    A run of capitals is one word: ``ID`` is ``id`` and ``PatientID`` is ``patient_id``.
    """
    raw = (name or "").strip().replace("-", "_")
    if not raw:
        return ""
    chars: list[str] = []
    for index, ch in enumerate(raw):
        prev = raw[index - 1] if index > 0 else ""
        nxt = raw[index + 1] if index + 1 < len(raw) else ""
        if ch.isupper() and (prev.islower() or prev.isdigit() or (prev.isupper() and nxt.islower())):
            chars.append("_")
        chars.append(ch.lower())
    return "".join(chars)


def _bad_filter_value(field_name: str, kind: str) -> InvalidFilterValueError:
    return InvalidFilterValueError(field_name, kind)


def _coerce_bool_value(field_name: str, value):
    if isinstance(value, bool):
        return value
    text = str(value or "").strip().lower()
    if text in _TRUE_LITERALS:
        return True
    if text in _FALSE_LITERALS:
        return False
    raise _bad_filter_value(field_name, "boolean")


def _coerce_number_value(field_name: str, value, python_type):
    number = _parse_number(field_name, value, python_type)
    # NaN and infinities compare inconsistently or not at all.
    finite = number.is_finite() if isinstance(number, Decimal) else math.isfinite(number)
    if not finite:
        raise _bad_filter_value(field_name, "number")
    return number


def _parse_number(field_name: str, value, python_type):
    if python_type in {int, float} and isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return python_type(value)
        except (ValueError, OverflowError):
            raise _bad_filter_value(field_name, "number")
    if python_type is Decimal and isinstance(value, Decimal):
        return value
    text = str(value if value is not None else "").strip()
    if not text:
        raise _bad_filter_value(field_name, "number")
    normalized = text.replace(",", ".")
    try:
        if python_type is int:
            return int(normalized)
        if python_type is float:
            return float(normalized)
        if python_type is Decimal:
            return Decimal(normalized)
        return python_type(normalized)
    except (ValueError, TypeError, InvalidOperation):
        raise _bad_filter_value(field_name, "number")


def _coerce_date_value(field_name: str, value):
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    text = str(value or "").strip()
    if not text:
        raise _bad_filter_value(field_name, "date")
    try:
        # Either YYYY-MM-DD or a full ISO datetime whose date part is used.
        if "T" in text or " " in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    except ValueError:
        raise _bad_filter_value(field_name, "date")


def _coerce_datetime_value(field_name: str, value):
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            raise _bad_filter_value(field_name, "datetime")
        try:
            if is_date_only_literal(text):
                # Date-only value for a timestamp field -> start of the day.
                parsed = datetime.combine(date.fromisoformat(text), datetime.min.time())
            else:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise _bad_filter_value(field_name, "datetime")
    return as_aware(parsed)


def _coerce_uuid_value(field_name: str, value):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value or "").strip())
    except ValueError:
        raise _bad_filter_value(field_name, "uuid")


def as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_date_only_literal(raw_value) -> bool:
    if isinstance(raw_value, date) and not isinstance(raw_value, datetime):
        return True
    if not isinstance(raw_value, str):
        return False
    text = raw_value.strip()
    if not text or "T" in text or " " in text:
        return False
    try:
        date.fromisoformat(text)
        return True
    except ValueError:
        return False


def is_null_literal(raw_value) -> bool:
    if raw_value is None:
        return True
    return isinstance(raw_value, str) and raw_value.strip().lower() in NULL_LITERALS


def _kind_for_python_type(python_type) -> FieldKind | None:
    # bool before int and datetime before date: both are subclasses.
    if python_type is bool:
        return FieldKind.BOOLEAN
    if python_type in {int, float, Decimal}:
        return FieldKind.NUMBER
    if python_type is datetime:
        return FieldKind.DATETIME
    if python_type is date:
        return FieldKind.DATE
    if python_type is uuid.UUID:
        return FieldKind.UUID
    if python_type is str:
        return FieldKind.TEXT
    return None


@dataclass(frozen=True)
class FieldAccessor:
    name: str
    kind: FieldKind
    python_type: type

    def get(self, record: Any) -> Any:
        if isinstance(record, Mapping):
            return record.get(self.name)
        return getattr(record, self.name)

    def coerce(self, value: Any) -> Any:
        """Convert a textual value to this field's type or raise ``InvalidFilterValueError``."""
        if self.kind is FieldKind.TEXT:
            return value if isinstance(value, str) else str(value)
        if self.kind is FieldKind.BOOLEAN:
            return _coerce_bool_value(self.name, value)
        if self.kind is FieldKind.NUMBER:
            return _coerce_number_value(self.name, value, self.python_type)
        if self.kind is FieldKind.DATE:
            return _coerce_date_value(self.name, value)
        if self.kind is FieldKind.DATETIME:
            return _coerce_datetime_value(self.name, value)
        return _coerce_uuid_value(self.name, value)


@dataclass(frozen=True)
class RecordFields:
    record_type: str
    fields: dict[str, FieldAccessor]
    primary_key: tuple[str, ...] = ()

    def resolve(self, name: str | None) -> FieldAccessor:
        raw = str(name or "").strip()
        accessor = self.fields.get(raw) or self.fields.get(normalize_identifier(raw))
        if accessor is None:
            raise UnknownFieldError(raw, self.record_type)
        return accessor

    @property
    def text_fields(self) -> list[FieldAccessor]:
        return [accessor for accessor in self.fields.values() if accessor.kind is FieldKind.TEXT]


def _column_python_type(column):
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def _unwrap_optional(hint):
    if typing.get_origin(hint) in {typing.Union, types.UnionType}:
        args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _mapped_fields(model: type) -> RecordFields | None:
    mapper = sa_inspect(model, raiseerr=False)
    if mapper is None:
        return None
    fields: dict[str, FieldAccessor] = {}
    for column_attr in mapper.column_attrs:
        column = column_attr.columns[0]
        kind = _kind_for_python_type(_column_python_type(column))
        if kind is None:
            continue
        fields[column_attr.key] = FieldAccessor(column_attr.key, kind, _column_python_type(column))
    primary_key = tuple(mapper.get_property_by_column(column).key for column in mapper.primary_key)
    return RecordFields(model.__name__, fields, primary_key)


def _dataclass_fields(model: type) -> RecordFields:
    hints = typing.get_type_hints(model)
    fields: dict[str, FieldAccessor] = {}
    for item in dataclasses.fields(model):
        python_type = _unwrap_optional(hints.get(item.name, item.type))
        kind = _kind_for_python_type(python_type)
        if kind is None:
            continue
        fields[item.name] = FieldAccessor(item.name, kind, python_type)
    return RecordFields(model.__name__, fields)


@lru_cache(maxsize=None)
def record_fields(model: type) -> RecordFields:
    """Name -> accessor map for a mapped class or dataclass, built once per type."""
    mapped = _mapped_fields(model)
    if mapped is not None:
        return mapped
    if dataclasses.is_dataclass(model):
        return _dataclass_fields(model)
    raise TypeError(f"{model!r} is neither a mapped class nor a dataclass")
