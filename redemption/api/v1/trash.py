"""
Trash API: unified list of soft-deleted rows, restore / delete / empty.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from redemption.api.deps import get_db, get_current_user
from redemption.application.registry import get_definition
from redemption.application.trash import (
    empty_trash,
    get_deleted_items,
    normalize,
    permanent_delete_item,
    restore_item,
)
from redemption.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/trash", tags=["trash"])


def _result_response(result: dict) -> dict | JSONResponse:
    # unknown entity tag comes back as a result dict
    if not result["success"]:
        return JSONResponse(result, status_code=400)
    return result


@router.get("")
def list_trash(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """All trashed rows, most recently deleted first, plus per-kind counts"""
    bundle = get_deleted_items(db, user.id)
    items = normalize(bundle)
    counts = {get_definition(kind).plural: len(rows) for kind, rows in bundle.items()}
    return {
        "success": True,
        "data": {
            "items": [i.to_dict() for i in items],
            "counts": counts,
            "total": len(items),
        },
    }


@router.post("/{entity_type}/{entity_id}/restore")
def restore_trashed(entity_type: str, entity_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _result_response(restore_item(db, user.id, entity_type, entity_id, actor_id=user.id))


@router.delete("/{entity_type}/{entity_id}")
def delete_trashed(entity_type: str, entity_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _result_response(permanent_delete_item(db, user.id, entity_type, entity_id, actor_id=user.id))


@router.delete("")
def empty(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    result = empty_trash(db, user.id, actor_id=user.id)
    return {"success": not result["errors"], "data": result}
