"""
Trash aggregator: every trashed row of an owner, grouped by kind or flattened.
"""
from dataclasses import dataclass, asdict
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from redemption.application.entities import (
    RestoreEntityUseCase, PermanentDeleteEntityUseCase, EmptyTrashUseCase, list_deleted,
)
from redemption.application.registry import REGISTRY, get_definition, resolve_kind
from redemption.domain.entities import EntityKind
from redemption.domain.errors import UnknownEntityTypeError

# kind -> trashed rows, each list ordered by deleted_at desc
DeletedItemsBundle = dict[EntityKind, list]


@dataclass
class NormalizedItem:
    id: int
    name: str
    entity_type: str
    deleted_at: datetime
    details: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["deleted_at"] = self.deleted_at.isoformat()
        return data


def get_deleted_items(db: Session, account_id: int) -> DeletedItemsBundle:
    return {kind: list_deleted(db, account_id, kind) for kind in REGISTRY}


def _sort_stamp(value: datetime) -> datetime:
    # SQLite hands back naive UTC timestamps
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize(bundle: DeletedItemsBundle) -> list[NormalizedItem]:
    """
    Flatten a bundle into one list.

    Order: deleted_at desc; equal stamps by (entity_type, id).
    """
    items = []
    for kind, rows in bundle.items():
        definition = get_definition(kind)
        for row in rows:
            items.append(NormalizedItem(
                id=row.id,
                name=definition.name_of(row),
                entity_type=kind.value,
                deleted_at=row.deleted_at,
                details=definition.details(row),
            ))
    items.sort(key=lambda i: (i.entity_type, i.id))
    items.sort(key=lambda i: _sort_stamp(i.deleted_at), reverse=True)
    return items


def restore_item(db: Session, account_id: int, tag: str, entity_id: int, actor_id: int | None = None) -> dict:
    """
    Restore by external tag.

    An unknown tag is a result, not an exception; NotFoundError and
    InvalidStateError propagate.
    """
    try:
        kind = resolve_kind(tag)
    except UnknownEntityTypeError as exc:
        return {"success": False, "error": exc.message}
    RestoreEntityUseCase(db).execute(account_id, kind, entity_id, actor_id=actor_id)
    return {"success": True}


def permanent_delete_item(db: Session, account_id: int, tag: str, entity_id: int,
                          actor_id: int | None = None) -> dict:
    try:
        kind = resolve_kind(tag)
    except UnknownEntityTypeError as exc:
        return {"success": False, "error": exc.message}
    removed = PermanentDeleteEntityUseCase(db).execute(account_id, kind, entity_id, actor_id=actor_id)
    return {"success": True, "data": {"deleted": removed}}


def empty_trash(db: Session, account_id: int, actor_id: int | None = None) -> dict:
    return EmptyTrashUseCase(db).execute(account_id, actor_id=actor_id)
