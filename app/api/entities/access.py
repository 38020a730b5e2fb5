from __future__ import annotations

import importlib
import logging
import pkgutil
from functools import lru_cache

from fastapi import HTTPException

import app.models as models_pkg
from app.db.session import Base
from app.services.query_fields import normalize_identifier

_LOG = logging.getLogger("app.entities")

ENTITY_ACTIONS = {"create", "read", "update", "delete"}
SYSTEM_FIELDS = {"id", "tenant_id"}

ROLE_ACTIONS: dict[str, set[str]] = {
    "ADMIN": set(ENTITY_ACTIONS),
    "STAFF": {"create", "read", "update"},
    "VIEWER": {"read"},
}


@lru_cache(maxsize=1)
def _entity_model_map() -> dict[str, type]:
    for module in pkgutil.iter_modules(models_pkg.__path__):
        if module.name.startswith("_") or module.name == "common":
            continue
        importlib.import_module(f"{models_pkg.__name__}.{module.name}")
    entities: dict[str, type] = {}
    for mapper in Base.registry.mappers:
        model = mapper.class_
        table_name = getattr(model, "__tablename__", None)
        if not table_name:
            continue
        # Both the table name and the class name address an entity:
        # "visit_modes", "VisitMode" and "visit-mode" resolve to the same model.
        entities[table_name] = model
        entities.setdefault(normalize_identifier(model.__name__), model)
    return entities


def _resolve_entity_model(entity_name: str) -> tuple[str, type]:
    model = _entity_model_map().get(normalize_identifier(entity_name))
    if model is None:
        raise HTTPException(status_code=404, detail="Entity not found")
    return model.__tablename__, model


def _allowed_actions(role: str) -> set[str]:
    return set(ROLE_ACTIONS.get(role, set()))


def _require_entity_action(user: dict, entity: str, action: str) -> None:
    role = str(user.get("role") or "").upper()
    if action not in _allowed_actions(role):
        _LOG.info("denied action=%s entity=%s role=%s sub=%s", action, entity, role or "-", user.get("sub"))
        raise HTTPException(status_code=403, detail="Insufficient permissions")
