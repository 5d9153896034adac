"""
Backup API: export / validate / restore a JSON snapshot.
"""
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from redemption.api.deps import get_db, get_current_user
from redemption.application.backup import (
    RESTORE_MERGE,
    backup_filename,
    backup_stats,
    create_snapshot,
    restore_snapshot,
    validate_snapshot,
)
from redemption.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/backup", tags=["backup"])


@router.get("/export")
def export_backup(include_deleted: bool = False, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    snapshot = create_snapshot(db, user.id, include_deleted=include_deleted)
    return JSONResponse(
        snapshot,
        headers={"Content-Disposition": f'attachment; filename="{backup_filename()}"'},
    )


@router.post("/validate")
def validate_backup(payload: dict = Body(...), user: User = Depends(get_current_user)):
    """Check a snapshot without writing anything"""
    snapshot = validate_snapshot(payload)
    return {"success": True, "data": backup_stats(snapshot.model_dump())}


@router.post("/restore")
def restore_backup(
    payload: dict = Body(...),
    mode: str = RESTORE_MERGE,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stats = restore_snapshot(db, user.id, payload, mode=mode, actor_id=user.id)
    return {"success": True, "data": stats}
