from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidPagingError
from app.schemas.query import parse_filters
from app.services.query_engine import apply_query, validate_paging

from .access import _require_entity_action, _resolve_entity_model
from .payloads import (
    _has_tenant,
    _integrity_error,
    _load_row_or_404,
    _patched_payload,
    _payload_id,
    _pk_value,
    _replacement_payload,
    _row_to_dict,
    _sanitize_payload,
)

_LOG = logging.getLogger("app.entities")


def list_rows_service(
    entity_name: str,
    db: Session,
    user: dict,
    tenant_id: uuid.UUID,
    *,
    filters: Optional[str] = None,
    search_term: Optional[str] = None,
    page_number: int = 1,
    page_size: int = 10,
    sort_field: Optional[str] = None,
    sort_order: Optional[str] = "asc",
) -> list[dict[str, Any]]:
    normalized, model = _resolve_entity_model(entity_name)
    _require_entity_action(user, normalized, "read")
    # Paging is rejected here so the engine is never invoked on it.
    try:
        validate_paging(page_number, page_size)
    except InvalidPagingError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    try:
        criteria = parse_filters(filters)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid filters format")

    base_query = db.query(model)
    if _has_tenant(model):
        base_query = base_query.filter(model.tenant_id == tenant_id)
    query = apply_query(
        base_query,
        model,
        criteria,
        search_term,
        page_number,
        page_size,
        sort_field,
        sort_order,
        collation=settings.query_text_collation,
    )
    return [_row_to_dict(row) for row in query.all()]


def get_row_service(entity_name: str, row_id: str, db: Session, user: dict, tenant_id: uuid.UUID) -> dict[str, Any]:
    normalized, model = _resolve_entity_model(entity_name)
    _require_entity_action(user, normalized, "read")
    row = _load_row_or_404(db, model, row_id, tenant_id)
    return _row_to_dict(row)


def create_row_service(
    entity_name: str, payload: dict[str, Any], db: Session, user: dict, tenant_id: uuid.UUID
) -> dict[str, Any]:
    normalized, model = _resolve_entity_model(entity_name)
    _require_entity_action(user, normalized, "create")
    clean_payload = _sanitize_payload(model, payload, is_update=False)
    if _has_tenant(model):
        clean_payload["tenant_id"] = tenant_id
    row = model(**clean_payload)

    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except IntegrityError:
        db.rollback()
        raise _integrity_error()

    _LOG.info("created entity=%s id=%s tenant=%s", normalized, row.id, tenant_id)
    return {"id": str(row.id)}


def _save_changes(db: Session, row: Any, changes: dict[str, Any]) -> None:
    for key, value in changes.items():
        setattr(row, key, value)
    try:
        db.add(row)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _integrity_error()


def update_row_service(
    entity_name: str, row_id: str, payload: dict[str, Any], db: Session, user: dict, tenant_id: uuid.UUID
) -> dict[str, Any]:
    normalized, model = _resolve_entity_model(entity_name)
    _require_entity_action(user, normalized, "update")
    pk = _pk_value(model, row_id)
    try:
        body_pk = _pk_value(model, _payload_id(payload))
    except HTTPException:
        body_pk = None
    if body_pk != pk:
        raise HTTPException(status_code=400, detail="Mismatched Id")
    row = _load_row_or_404(db, model, pk, tenant_id)
    _save_changes(db, row, _replacement_payload(model, payload))
    _LOG.info("updated entity=%s id=%s tenant=%s", normalized, pk, tenant_id)
    return {"status": True}


def patch_row_service(
    entity_name: str, row_id: str, document: Any, db: Session, user: dict, tenant_id: uuid.UUID
) -> dict[str, Any]:
    normalized, model = _resolve_entity_model(entity_name)
    _require_entity_action(user, normalized, "update")
    row = _load_row_or_404(db, model, row_id, tenant_id)
    _save_changes(db, row, _patched_payload(model, row, document))
    _LOG.info("patched entity=%s id=%s tenant=%s", normalized, row_id, tenant_id)
    return {"status": True}


def delete_row_service(entity_name: str, row_id: str, db: Session, user: dict, tenant_id: uuid.UUID) -> dict[str, Any]:
    normalized, model = _resolve_entity_model(entity_name)
    _require_entity_action(user, normalized, "delete")
    row = _load_row_or_404(db, model, row_id, tenant_id)

    try:
        db.delete(row)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _integrity_error("Cannot delete a row referenced by related data")

    _LOG.info("deleted entity=%s id=%s tenant=%s", normalized, row_id, tenant_id)
    return {"status": True}
