from __future__ import annotations

import uuid
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_tenant, get_current_user
from app.db.session import get_db

from .service import (
    create_row_service,
    delete_row_service,
    get_row_service,
    list_rows_service,
    patch_row_service,
    update_row_service,
)

router = APIRouter()


@router.post("/{entity_name}")
def create_row(
    entity_name: str,
    payload: dict[str, Any],
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
    tenant_id: uuid.UUID = Depends(get_current_tenant),
):
    return create_row_service(entity_name, payload, db, user, tenant_id)


@router.get("/{entity_name}")
def list_rows(
    entity_name: str,
    filters: Optional[str] = Query(default=None),
    search_term: Optional[str] = Query(default=None, alias="searchTerm"),
    page_number: int = Query(default=1, alias="pageNumber"),
    page_size: int = Query(default=settings.DEFAULT_PAGE_SIZE, alias="pageSize"),
    sort_field: Optional[str] = Query(default=None, alias="sortField"),
    sort_order: str = Query(default="asc", alias="sortOrder"),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
    tenant_id: uuid.UUID = Depends(get_current_tenant),
):
    return list_rows_service(
        entity_name,
        db,
        user,
        tenant_id,
        filters=filters,
        search_term=search_term,
        page_number=page_number,
        page_size=page_size,
        sort_field=sort_field,
        sort_order=sort_order,
    )


@router.get("/{entity_name}/{row_id}")
def get_row(
    entity_name: str,
    row_id: str,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
    tenant_id: uuid.UUID = Depends(get_current_tenant),
):
    return get_row_service(entity_name, row_id, db, user, tenant_id)


@router.put("/{entity_name}/{row_id}")
def update_row(
    entity_name: str,
    row_id: str,
    payload: dict[str, Any],
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
    tenant_id: uuid.UUID = Depends(get_current_tenant),
):
    return update_row_service(entity_name, row_id, payload, db, user, tenant_id)


@router.patch("/{entity_name}/{row_id}")
def patch_row(
    entity_name: str,
    row_id: str,
    document: Any = Body(default=None),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
    tenant_id: uuid.UUID = Depends(get_current_tenant),
):
    return patch_row_service(entity_name, row_id, document, db, user, tenant_id)


@router.delete("/{entity_name}/{row_id}")
def delete_row(
    entity_name: str,
    row_id: str,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
    tenant_id: uuid.UUID = Depends(get_current_tenant),
):
    return delete_row_service(entity_name, row_id, db, user, tenant_id)
