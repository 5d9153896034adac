"""
Entity CRUD API: /api/v1/entities/{kind}

kind is an entity tag ("email", "recurring_expense", ...). Domain errors
are mapped to HTTP status codes by the handlers in main.py.
"""
from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from redemption.api.deps import get_db, get_current_user
from redemption.application.entities import (
    CreateEntityUseCase,
    UpdateEntityUseCase,
    SoftDeleteEntityUseCase,
    RestoreEntityUseCase,
    PermanentDeleteEntityUseCase,
    entity_to_dict,
    get_entity,
    list_live,
)
from redemption.application.registry import get_definition, resolve_kind
from redemption.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/entities", tags=["entities"])


@router.get("/{kind}")
def list_entities(kind: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Live rows of one kind, newest first"""
    rows = list_live(db, user.id, kind)
    definition = get_definition(resolve_kind(kind))
    return {"success": True, "data": {definition.plural: [entity_to_dict(r) for r in rows]}}


@router.post("/{kind}", status_code=status.HTTP_201_CREATED)
def create_entity(
    kind: str,
    payload: dict = Body(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = CreateEntityUseCase(db).execute(user.id, kind, payload, actor_id=user.id)
    return {"success": True, "data": entity_to_dict(row)}


@router.get("/{kind}/{entity_id}")
def get_entity_detail(kind: str, entity_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    row = get_entity(db, user.id, kind, entity_id)
    return {"success": True, "data": entity_to_dict(row)}


@router.patch("/{kind}/{entity_id}")
def update_entity(
    kind: str,
    entity_id: int,
    payload: dict = Body(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Partial update; only fields that actually change are written"""
    row, changes = UpdateEntityUseCase(db).execute(user.id, kind, entity_id, payload, actor_id=user.id)
    return {
        "success": True,
        "data": entity_to_dict(row),
        "changes": [c.model_dump(mode="json") for c in changes],
    }


@router.delete("/{kind}/{entity_id}")
def soft_delete_entity(kind: str, entity_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Move to trash"""
    deleted_at = SoftDeleteEntityUseCase(db).execute(user.id, kind, entity_id, actor_id=user.id)
    return {"success": True, "data": {"deleted_at": deleted_at.isoformat()}}


@router.post("/{kind}/{entity_id}/restore")
def restore_entity(kind: str, entity_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    row = RestoreEntityUseCase(db).execute(user.id, kind, entity_id, actor_id=user.id)
    return {"success": True, "data": entity_to_dict(row)}


@router.delete("/{kind}/{entity_id}/permanent")
def permanent_delete_entity(kind: str, entity_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    removed = PermanentDeleteEntityUseCase(db).execute(user.id, kind, entity_id, actor_id=user.id)
    return {"success": True, "data": {"deleted": removed}}
