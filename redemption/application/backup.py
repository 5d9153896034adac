"""
Backup / restore of one owner's data.

Snapshot format:
    {
        "version": "1.0.0",
        "timestamp": "2026-03-01T10:00:00+00:00",
        "app_name": "Redemption",
        "total_records": 12,
        "data": {"emails": [...], "accounts": [...], ..., "wishlist_items": [...]}
    }

Restore replays rows through the audited create/update/soft-delete/restore
use cases inside one transaction. Ids are kept, so merge mode is an upsert
by id and replaying the same snapshot again writes nothing.
"""
import logging
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError
from sqlalchemy import text
from sqlalchemy.orm import Session

from redemption.application.entities import (
    CreateEntityUseCase,
    UpdateEntityUseCase,
    SoftDeleteEntityUseCase,
    RestoreEntityUseCase,
    entity_to_dict,
    field_errors_from,
    purge_entity,
)
from redemption.application.registry import (
    REGISTRY, CREATE_ORDER, PURGE_ORDER, by_plural, get_definition,
)
from redemption.domain.audit import AuditMetadata
from redemption.domain.errors import InvalidStateError, ValidationError
from redemption.infrastructure.audit.repository import AuditLogRepository
from redemption.utils.dates import utc_now

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0.0"
APP_NAME = "Redemption"

RESTORE_MERGE = "merge"
RESTORE_REPLACE = "replace"
RESTORE_MODES = (RESTORE_MERGE, RESTORE_REPLACE)

_RESTORE_SOURCE = AuditMetadata(source="backup_restore")

# Bookkeeping timestamps taken from the snapshot as they are, outside the audit diff
_CARRIED_TIMESTAMPS = ("created_at", "last_balance_update")


class BackupSnapshot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str
    timestamp: datetime
    app_name: str
    total_records: int = Field(ge=0)
    data: dict[str, list[dict]]


# ============================================================================
# Export
# ============================================================================


def create_snapshot(db: Session, account_id: int, include_deleted: bool = False) -> dict:
    """Every live (optionally also trashed) row of the owner, oldest first."""
    data: dict[str, list[dict]] = {}
    total = 0
    for kind in CREATE_ORDER:
        definition = get_definition(kind)
        model = definition.model
        query = db.query(model).filter(model.account_id == account_id)
        if not include_deleted:
            query = query.filter(model.deleted_at.is_(None))
        rows = query.order_by(model.created_at.asc(), model.id.asc()).all()

        items = []
        for row in rows:
            item = entity_to_dict(row)
            item.pop("account_id", None)
            items.append(item)
        data[definition.plural] = items
        total += len(items)

    return {
        "version": BACKUP_VERSION,
        "timestamp": utc_now().isoformat(),
        "app_name": APP_NAME,
        "total_records": total,
        "data": data,
    }


def backup_stats(snapshot: dict) -> dict:
    """{plural: row count, ..., "total_records": n}"""
    stats = {plural: len(rows) for plural, rows in snapshot.get("data", {}).items()}
    stats["total_records"] = sum(stats.values())
    return stats


def backup_filename(now: datetime | None = None) -> str:
    now = now or utc_now()
    return f"redemption-backup-{now:%Y-%m-%d_%H-%M-%S}.json"


# ============================================================================
# Validation
# ============================================================================


def validate_snapshot(raw) -> BackupSnapshot:
    """
    Check the envelope of a snapshot (not the rows themselves).

    Raises:
        ValidationError: wrong shape, foreign app, unsupported major version,
            unknown entity collections or a wrong record count
    """
    if not isinstance(raw, dict):
        raise ValidationError({"_form": "Backup must be a JSON object"}, "Invalid backup file")
    try:
        snapshot = BackupSnapshot.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError(field_errors_from(exc), "Invalid backup file")

    errors: dict[str, str] = {}
    if snapshot.app_name != APP_NAME:
        errors["app_name"] = f"Expected a {APP_NAME} backup"
    if snapshot.version.split(".")[0] != BACKUP_VERSION.split(".")[0]:
        errors["version"] = f"Unsupported backup version {snapshot.version}"

    unknown = sorted(plural for plural in snapshot.data if by_plural(plural) is None)
    if unknown:
        errors["data"] = f"Unknown collections: {', '.join(unknown)}"

    count = sum(len(rows) for rows in snapshot.data.values())
    if count != snapshot.total_records:
        errors["total_records"] = f"Declares {snapshot.total_records} records, contains {count}"

    for plural, rows in snapshot.data.items():
        for i, row in enumerate(rows):
            if not isinstance(row.get("id"), int):
                errors.setdefault(f"data.{plural}.{i}.id", "Row id must be an integer")

    if errors:
        raise ValidationError(errors, "Invalid backup file")
    return snapshot


# ============================================================================
# Restore
# ============================================================================


def _input_fields(definition, row: dict) -> dict:
    allowed = definition.create_schema.model_fields
    return {key: value for key, value in row.items() if key in allowed}


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _carry_timestamps(entity, row: dict) -> None:
    """Copy created_at / last_balance_update from the snapshot row onto the restored entity."""
    for key in _CARRIED_TIMESTAMPS:
        raw = row.get(key)
        if not raw or not hasattr(entity, key):
            continue
        try:
            value = _as_utc(datetime.fromisoformat(raw))
        except (TypeError, ValueError):
            raise ValidationError({key: "Invalid timestamp"})
        current = getattr(entity, key)
        if current is None or _as_utc(current) != value:
            setattr(entity, key, value)


def _prefix_errors(exc: ValidationError, plural: str, index: int) -> ValidationError:
    return ValidationError(
        {f"data.{plural}.{index}.{field}": msg for field, msg in exc.field_errors.items()},
        "Invalid backup file",
    )


class RestoreBackupUseCase:
    """
    Replay a snapshot for one owner.

    merge:   upsert by id; live/trashed state follows the snapshot
    replace: permanently delete all of the owner's rows first (audited),
             then create everything from the snapshot

    All or nothing: any failure rolls the whole restore back.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, account_id: int, raw: dict, mode: str = RESTORE_MERGE, actor_id: int | None = None) -> dict:
        if mode not in RESTORE_MODES:
            raise ValidationError({"mode": f"Mode must be one of: {', '.join(RESTORE_MODES)}"})
        snapshot = validate_snapshot(raw)

        stats = {"created": {}, "updated": {}, "unchanged": {}, "purged": 0}
        try:
            if mode == RESTORE_REPLACE:
                stats["purged"] = self._purge_all(account_id, actor_id)

            trashed: list[tuple] = []
            for kind in CREATE_ORDER:
                definition = get_definition(kind)
                for index, row in enumerate(snapshot.data.get(definition.plural, [])):
                    try:
                        outcome = self._apply_row(account_id, kind, definition, row, actor_id)
                    except ValidationError as exc:
                        raise _prefix_errors(exc, definition.plural, index)
                    bucket = stats[outcome]
                    bucket[definition.plural] = bucket.get(definition.plural, 0) + 1
                    if row.get("deleted_at"):
                        trashed.append((kind, row["id"]))

            # trash state last, so children exist before a parent cascades
            for kind, entity_id in trashed:
                self._ensure_trashed(account_id, kind, entity_id, actor_id)

            self._sync_sequences()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        stats["total"] = sum(sum(stats[key].values()) for key in ("created", "updated", "unchanged"))
        logger.info("Backup restored account_id=%s mode=%s total=%s", account_id, mode, stats["total"])
        return stats

    def _purge_all(self, account_id: int, actor_id: int | None) -> int:
        audit = AuditLogRepository(self.db)
        removed = 0
        for kind in PURGE_ORDER:
            model = get_definition(kind).model
            for row in self.db.query(model).filter(model.account_id == account_id).all():
                removed += purge_entity(self.db, audit, account_id, kind, row, actor_id, _RESTORE_SOURCE)
            self.db.flush()
        return removed

    def _apply_row(self, account_id: int, kind, definition, row: dict, actor_id: int | None) -> str:
        entity_id = row["id"]
        fields = _input_fields(definition, row)
        model = definition.model

        existing = self.db.get(model, entity_id)
        if existing is None:
            created = CreateEntityUseCase(self.db, commit=False).execute(
                account_id, kind, fields, actor_id=actor_id, metadata=_RESTORE_SOURCE,
                entity_id=entity_id, notify=False, link_finance=False,
            )
            _carry_timestamps(created, row)
            return "created"

        if existing.account_id != account_id:
            raise InvalidStateError(f"{definition.label} id {entity_id} belongs to another owner")

        if existing.deleted_at is not None:
            if row.get("deleted_at"):
                # both trashed: leave the trashed copy as it is
                return "unchanged"
            RestoreEntityUseCase(self.db, commit=False).execute(account_id, kind, entity_id, actor_id=actor_id)

        updated, changes = UpdateEntityUseCase(self.db, commit=False).execute(
            account_id, kind, entity_id, fields, actor_id=actor_id, metadata=_RESTORE_SOURCE,
        )
        _carry_timestamps(updated, row)
        return "updated" if changes else "unchanged"

    def _ensure_trashed(self, account_id: int, kind, entity_id: int, actor_id: int | None) -> None:
        model = get_definition(kind).model
        row = self.db.get(model, entity_id)
        if row is None or row.deleted_at is not None:
            return
        SoftDeleteEntityUseCase(self.db, commit=False).execute(account_id, kind, entity_id, actor_id=actor_id)

    def _sync_sequences(self) -> None:
        """Pinned ids bypass PostgreSQL sequences; move them past the max id."""
        if self.db.get_bind().dialect.name != "postgresql":
            return
        for definition in REGISTRY.values():
            table = definition.model.__tablename__
            self.db.execute(text(
                f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
                f"COALESCE((SELECT MAX(id) FROM {table}), 1))"
            ))


def restore_snapshot(db: Session, account_id: int, raw: dict, mode: str = RESTORE_MERGE,
                     actor_id: int | None = None) -> dict:
    return RestoreBackupUseCase(db).execute(account_id, raw, mode=mode, actor_id=actor_id)
