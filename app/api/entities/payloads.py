from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import jsonpatch
import jsonpointer
from fastapi import HTTPException
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import Session

from app.core.errors import InvalidFilterValueError
from app.services.query_fields import FieldKind, normalize_identifier, record_fields

from .access import SYSTEM_FIELDS


def _serialize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _serialize_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize_value(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    return value


def _row_to_dict(row: Any) -> dict[str, Any]:
    mapper = sa_inspect(type(row))
    return {column.key: _serialize_value(getattr(row, column.key)) for column in mapper.column_attrs}


def _columns_map(model: type) -> dict[str, Any]:
    mapper = sa_inspect(model)
    return {column_attr.key: column_attr.columns[0] for column_attr in mapper.column_attrs}


def _has_tenant(model: type) -> bool:
    return "tenant_id" in _columns_map(model)


def _integrity_error(detail: str = "Data constraint violation") -> HTTPException:
    return HTTPException(status_code=400, detail=detail)


def _normalize_payload_keys(payload: dict[str, Any], columns: dict[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in payload.items():
        name = key if key in columns else normalize_identifier(key)
        normalized[name] = value
    return normalized


def _coerce_payload_value(model: type, key: str, value: Any) -> Any:
    if value is None or not isinstance(value, str):
        return value
    accessor = record_fields(model).fields.get(key)
    if accessor is None or accessor.kind is FieldKind.TEXT:
        return value
    try:
        return accessor.coerce(value)
    except InvalidFilterValueError:
        raise HTTPException(status_code=400, detail=f'Invalid value for field "{key}"')


def _mutable_columns(model: type) -> dict[str, Any]:
    return {name: column for name, column in _columns_map(model).items() if name not in SYSTEM_FIELDS}


def _sanitize_payload(model: type, payload: Any, *, is_update: bool) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    mutable_columns = _mutable_columns(model)
    data = _normalize_payload_keys(payload, _columns_map(model))
    data = {key: value for key, value in data.items() if key not in SYSTEM_FIELDS}

    unknown_fields = sorted(set(data.keys()) - set(mutable_columns.keys()))
    if unknown_fields:
        raise HTTPException(status_code=400, detail="Unknown fields: " + ", ".join(unknown_fields))

    cleaned: dict[str, Any] = {}
    for key, value in data.items():
        column = mutable_columns[key]
        if value is None and not column.nullable:
            raise HTTPException(status_code=400, detail=f'Field "{key}" cannot be null')
        cleaned[key] = _coerce_payload_value(model, key, value)

    if is_update:
        if not cleaned:
            raise HTTPException(status_code=400, detail="No fields to update")
        return cleaned

    required_missing: list[str] = []
    for name, column in mutable_columns.items():
        if column.nullable:
            continue
        if column.default is not None or column.server_default is not None:
            continue
        if name not in cleaned:
            required_missing.append(name)
    if required_missing:
        raise HTTPException(status_code=400, detail="Missing required fields: " + ", ".join(sorted(required_missing)))

    return cleaned


def _column_reset_value(column: Any) -> Any:
    default = column.default
    if default is not None and getattr(default, "is_scalar", False):
        return default.arg
    return None


def _replacement_payload(model: type, payload: Any) -> dict[str, Any]:
    """Full replacement for PUT: omitted columns fall back to their default or null."""
    cleaned = _sanitize_payload(model, payload, is_update=False)
    for name, column in _mutable_columns(model).items():
        if name not in cleaned:
            cleaned[name] = _column_reset_value(column)
    return cleaned


def _normalize_patch_path(path: Any, current: dict[str, Any]) -> str:
    if not isinstance(path, str):
        raise HTTPException(status_code=400, detail="Invalid patch document: path must be a string")
    if not path.startswith("/"):
        return path
    head, sep, rest = path[1:].partition("/")
    if head not in current:
        head = normalize_identifier(head)
    return "/" + head + sep + rest


def _patched_payload(model: type, row: Any, document: Any) -> dict[str, Any]:
    """Apply an RFC 6902 patch document to ``row`` and return the sanitized column values."""
    if document is None:
        raise HTTPException(status_code=400, detail="Patch document is missing")
    if not isinstance(document, list) or not all(isinstance(item, dict) for item in document):
        raise HTTPException(status_code=400, detail="Patch document must be a JSON array of operations")

    current = _row_to_dict(row)
    operations = []
    for item in document:
        operation = dict(item)
        for key in ("path", "from"):
            if key in operation:
                operation[key] = _normalize_patch_path(operation[key], current)
        operations.append(operation)
    try:
        patched = jsonpatch.apply_patch(current, operations)
    except (jsonpatch.JsonPatchException, jsonpointer.JsonPointerException) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid patch document: {exc}")
    if not isinstance(patched, dict):
        raise HTTPException(status_code=400, detail="Patch must produce a JSON object")

    for name in sorted(SYSTEM_FIELDS):
        if patched.get(name) != current.get(name):
            raise HTTPException(status_code=400, detail=f'Field "{name}" cannot be changed')
    # A removed property is reset to null.
    data = {name: patched.get(name) for name in _mutable_columns(model)}
    data.update({key: value for key, value in patched.items() if key not in current})
    return _sanitize_payload(model, data, is_update=True)


def _payload_id(payload: Any) -> Any:
    if not isinstance(payload, dict):
        return None
    for key, value in payload.items():
        if normalize_identifier(key) == "id":
            return value
    return None


def _pk_value(model: type, row_id: Any) -> Any:
    pk = sa_inspect(model).primary_key
    if len(pk) != 1:
        raise HTTPException(status_code=400, detail="Only single-column primary keys are supported")
    try:
        python_type = pk[0].type.python_type
    except NotImplementedError:
        python_type = str
    if python_type is uuid.UUID:
        if isinstance(row_id, uuid.UUID):
            return row_id
        try:
            return uuid.UUID(str(row_id))
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid identifier")
    return row_id


def _load_row_or_404(db: Session, model: type, row_id: Any, tenant_id: uuid.UUID):
    entity = db.get(model, _pk_value(model, row_id))
    if entity is None:
        raise HTTPException(status_code=404, detail="No data found")
    if _has_tenant(model) and getattr(entity, "tenant_id", None) != tenant_id:
        raise HTTPException(status_code=404, detail="No data found")
    return entity
