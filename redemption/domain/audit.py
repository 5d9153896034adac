"""
Audit domain: field-level diffs and audit metadata.

Values are compared by value (Decimal("10") == Decimal("10.00"), a datetime
and the same instant in another tz are equal) and serialized to JSON-safe
primitives only when stored.
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict


class FieldChange(BaseModel):
    """One changed field: {field, old, new}"""
    model_config = ConfigDict(frozen=True)

    field: str
    old: Any = None
    new: Any = None


class AuditMetadata(BaseModel):
    """Extra context attached to an audit row"""
    model_config = ConfigDict(extra="forbid")

    # "email:12" when the row was touched by a cascade from its parent
    cascade_from: str | None = None
    # "backup_restore" / "trash" / "rollover" / ...
    source: str | None = None


def to_json_value(value: Any) -> Any:
    """Decimal -> str, date/datetime -> ISO string, containers recursively."""
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    if isinstance(value, dict):
        return {k: to_json_value(v) for k, v in value.items()}
    return value


def _normalize_for_compare(value: Any) -> Any:
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, int) and not isinstance(value, bool):
        return Decimal(value)
    if isinstance(value, datetime) and value.tzinfo is None:
        # naive timestamps coming back from SQLite are UTC
        return value.replace(tzinfo=timezone.utc)
    if isinstance(value, tuple):
        return list(value)
    return value


def values_equal(old: Any, new: Any) -> bool:
    if old is None or new is None:
        return old is None and new is None
    return _normalize_for_compare(old) == _normalize_for_compare(new)


def compute_changes(before: dict[str, Any], after: dict[str, Any]) -> list[FieldChange]:
    """
    Diff two field maps.

    Only keys present in `after` are considered; unchanged fields are skipped.
    """
    changes: list[FieldChange] = []
    for field, new in after.items():
        old = before.get(field)
        if values_equal(old, new):
            continue
        changes.append(FieldChange(field=field, old=old, new=new))
    return changes


def serialize_changes(changes: list[FieldChange] | None) -> list[dict] | None:
    if changes is None:
        return None
    return [
        {"field": c.field, "old": to_json_value(c.old), "new": to_json_value(c.new)}
        for c in changes
    ]
