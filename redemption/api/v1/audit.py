"""
Audit trail API (read-only).
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from redemption.api.deps import get_db, get_current_user
from redemption.application.registry import resolve_kind
from redemption.domain.entities import AUDIT_ACTIONS
from redemption.domain.errors import ValidationError
from redemption.infrastructure.audit.repository import AuditLogRepository
from redemption.infrastructure.db.models import AuditLogModel, User


router = APIRouter(prefix="/api/v1/audit", tags=["audit"])


def _as_utc(value: datetime) -> datetime:
    # naive query values are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def audit_to_dict(row: AuditLogModel) -> dict:
    return {
        "id": row.id,
        "entity_type": row.entity_type,
        "entity_id": row.entity_id,
        "entity_name": row.entity_name,
        "action": row.action,
        "changes": row.changes_json,
        "metadata": row.metadata_json,
        "actor_id": row.actor_id,
        "occurred_at": row.occurred_at.isoformat(),
    }


@router.get("")
def recent_audit(
    limit: int = 50,
    action: str | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Newest entries of the user, or one slice of them:
      ?action=delete           newest rows with that action
      ?since=...&until=...     rows inside the window, oldest first
    """
    repo = AuditLogRepository(db)
    if action is not None:
        if action not in AUDIT_ACTIONS:
            raise ValidationError({"action": f"Action must be one of: {', '.join(AUDIT_ACTIONS)}"})
        rows = repo.by_action(user.id, action, limit=limit)
    elif since is not None or until is not None:
        start = _as_utc(since or datetime.min)
        end = _as_utc(until or datetime.max)
        if start > end:
            raise ValidationError({"since": "Must not be after until"})
        rows = repo.by_date_range(user.id, start, end)
    else:
        rows = repo.recent(user.id, limit=limit)
    return {
        "success": True,
        "data": {"entries": [audit_to_dict(r) for r in rows], "total": repo.count(user.id)},
    }


@router.get("/{kind}/{entity_id}")
def entity_audit(kind: str, entity_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """History of one entity, oldest first (kept after permanent deletion)"""
    entity_type = resolve_kind(kind).value
    rows = AuditLogRepository(db).for_entity(entity_type, entity_id, account_id=user.id)
    return {"success": True, "data": {"entries": [audit_to_dict(r) for r in rows]}}
