"""
Tests for the entity use cases: create / update / soft delete / restore /
permanent delete, and the audit row each of them writes.
"""
from datetime import date
from decimal import Decimal

import pytest

from redemption.application.entities import (
    CreateEntityUseCase,
    UpdateEntityUseCase,
    SoftDeleteEntityUseCase,
    RestoreEntityUseCase,
    PermanentDeleteEntityUseCase,
    domain_fields,
    get_entity,
    link_label,
    list_deleted,
    list_live,
)
from redemption.domain.entities import EntityKind
from redemption.domain.errors import (
    AlreadyInTrashError,
    InvalidStateError,
    NotFoundError,
    NotInTrashError,
    UnknownEntityTypeError,
    ValidationError,
)
from redemption.infrastructure.audit.repository import AuditLogRepository
from redemption.infrastructure.db.models import AuditLogModel, NotificationModel


USER_ID = 1

BANK = {"name": "sparkasse", "display_name": "Sparkasse Giro", "balance": "1250.40"}
BILL = {"name": "Dentist", "amount": "80", "pay_to": "Dr. Weber", "due_date": "2026-03-04"}


def _bank(db, **overrides):
    return CreateEntityUseCase(db).execute(USER_ID, EntityKind.BANK, {**BANK, **overrides}, actor_id=USER_ID)


def _audit(db, kind, entity_id):
    return AuditLogRepository(db).for_entity(kind.value, entity_id, account_id=USER_ID)


# Smallest valid input per kind; an account also gets a fresh email
MINIMAL = {
    EntityKind.EMAIL: {"email": "solo@example.com"},
    EntityKind.ACCOUNT: {"provider": "GitHub"},
    EntityKind.INCOME: {"source": "Salary", "amount": "2500", "cycle": "monthly"},
    EntityKind.DEBT: {"name": "Car", "amount": "1000", "remaining_amount": "400", "pay_to": "Dad", "cycle": "monthly"},
    EntityKind.CREDIT: {"provider": "Visa", "total_limit": "2000", "interest_rate": "19.9"},
    EntityKind.RECURRING_EXPENSE: {"name": "Gym", "amount": "30", "cycle": "monthly", "category": "subscription"},
    EntityKind.ONE_TIME_BILL: BILL,
    EntityKind.BANK: BANK,
    EntityKind.WISHLIST_ITEM: {"name": "Lamp", "price": "30", "where_to_buy": "Shop", "need_rate": "luxury"},
}


def _minimal(db, kind):
    data = dict(MINIMAL[kind])
    if kind == EntityKind.ACCOUNT:
        email = CreateEntityUseCase(db).execute(USER_ID, EntityKind.EMAIL, {"email": "owner@example.com"})
        data["email_id"] = email.id
    return CreateEntityUseCase(db).execute(USER_ID, kind, data)


# ---------------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------------

def test_create_writes_row_and_create_audit(db_session, user):
    bank = _bank(db_session)

    assert bank.id is not None
    assert bank.balance == Decimal("1250.40")
    assert bank.deleted_at is None

    entries = _audit(db_session, EntityKind.BANK, bank.id)
    assert [e.action for e in entries] == ["create"]
    assert entries[0].entity_name == "Sparkasse Giro"
    assert entries[0].actor_id == USER_ID
    assert entries[0].changes_json is None


def test_create_accepts_tag_string(db_session, user):
    bill = CreateEntityUseCase(db_session).execute(USER_ID, "one_time_bill", BILL)
    assert bill.due_date == date(2026, 3, 4)
    assert bill.is_paid is False


def test_create_validation_errors_are_per_field(db_session, user):
    with pytest.raises(ValidationError) as exc_info:
        CreateEntityUseCase(db_session).execute(USER_ID, EntityKind.ONE_TIME_BILL, {
            "name": "  ", "amount": "12.345", "pay_to": "x",
        })

    errors = exc_info.value.field_errors
    assert set(errors) == {"name", "amount"}
    assert errors["amount"] == "At most 2 decimal places"
    assert db_session.query(AuditLogModel).count() == 0


def test_create_rejects_unknown_fields(db_session, user):
    with pytest.raises(ValidationError) as exc_info:
        _bank(db_session, deleted_at="2026-01-01T00:00:00")
    assert "deleted_at" in exc_info.value.field_errors


def test_unknown_kind_raises(db_session, user):
    with pytest.raises(UnknownEntityTypeError):
        CreateEntityUseCase(db_session).execute(USER_ID, "spaceship", {})


def test_create_recurring_expense_emits_notification(db_session, user):
    expense = CreateEntityUseCase(db_session).execute(USER_ID, EntityKind.RECURRING_EXPENSE, {
        "name": "Spotify", "amount": "10.99", "cycle": "monthly", "category": "subscription",
        "due_date": "2026-03-15",
    })

    notifs = db_session.query(NotificationModel).all()
    assert len(notifs) == 1
    assert notifs[0].type == "recurring_created"
    assert notifs[0].entity_id == expense.id
    assert notifs[0].message == "New recurring entry created for Spotify (March 2026)."
    assert notifs[0].metadata_json["kind"] == "recurring"


def test_update_writes_only_changed_fields(db_session, user):
    bank = _bank(db_session)

    row, changes = UpdateEntityUseCase(db_session).execute(
        USER_ID, EntityKind.BANK, bank.id, {"balance": "1250.40", "display_name": "Sparkasse Savings"},
    )

    assert [c.field for c in changes] == ["display_name"]
    assert changes[0].old == "Sparkasse Giro"
    assert changes[0].new == "Sparkasse Savings"
    assert row.display_name == "Sparkasse Savings"

    entries = _audit(db_session, EntityKind.BANK, bank.id)
    assert [e.action for e in entries] == ["create", "update"]
    assert entries[1].changes_json == [
        {"field": "display_name", "old": "Sparkasse Giro", "new": "Sparkasse Savings"},
    ]


def test_balance_change_stamps_last_balance_update(db_session, user):
    bank = _bank(db_session)
    stamped = bank.last_balance_update

    UpdateEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id, {"display_name": "Renamed"})
    assert bank.last_balance_update == stamped

    row, changes = UpdateEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id, {"balance": "99.90"})

    assert [c.field for c in changes] == ["balance", "last_balance_update"]
    assert changes[1].old == stamped
    assert changes[1].new.replace(tzinfo=None) >= stamped.replace(tzinfo=None)
    assert row.last_balance_update.replace(tzinfo=None) == changes[1].new.replace(tzinfo=None)

    entry = _audit(db_session, EntityKind.BANK, bank.id)[-1]
    assert [c["field"] for c in entry.changes_json] == ["balance", "last_balance_update"]


def test_update_without_changes_writes_nothing(db_session, user):
    bank = _bank(db_session)

    _, changes = UpdateEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id, {"balance": "1250.4"})

    assert changes == []
    assert len(_audit(db_session, EntityKind.BANK, bank.id)) == 1


def test_update_rejects_null_for_required_field(db_session, user):
    bank = _bank(db_session)
    with pytest.raises(ValidationError) as exc_info:
        UpdateEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id, {"display_name": None})
    assert "display_name" in exc_info.value.field_errors


def test_update_trashed_row_fails(db_session, user):
    bank = _bank(db_session)
    SoftDeleteEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id)

    with pytest.raises(AlreadyInTrashError):
        UpdateEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id, {"balance": "1"})


# ---------------------------------------------------------------------------
# Soft delete / restore
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("kind", list(EntityKind))
def test_soft_delete_restore_round_trip(db_session, user, kind):
    row = _minimal(db_session, kind)
    before = domain_fields(row)

    SoftDeleteEntityUseCase(db_session).execute(USER_ID, kind, row.id, actor_id=USER_ID)
    RestoreEntityUseCase(db_session).execute(USER_ID, kind, row.id, actor_id=USER_ID)

    restored = get_entity(db_session, USER_ID, kind, row.id)
    assert restored.deleted_at is None
    assert domain_fields(restored) == before


def test_live_and_trash_visibility(db_session, user):
    keep = _bank(db_session, display_name="Keep")
    gone = _bank(db_session, display_name="Gone")

    SoftDeleteEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, gone.id)

    assert [b.id for b in list_live(db_session, USER_ID, EntityKind.BANK)] == [keep.id]
    assert [b.id for b in list_deleted(db_session, USER_ID, EntityKind.BANK)] == [gone.id]
    with pytest.raises(NotFoundError):
        get_entity(db_session, USER_ID, EntityKind.BANK, gone.id)
    assert get_entity(db_session, USER_ID, EntityKind.BANK, gone.id, include_deleted=True).id == gone.id


def test_soft_delete_audit_row(db_session, user):
    bank = _bank(db_session)
    deleted_at = SoftDeleteEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id, actor_id=USER_ID)

    entry = _audit(db_session, EntityKind.BANK, bank.id)[-1]
    assert entry.action == "delete"
    assert entry.changes_json == [{"field": "deleted_at", "old": None, "new": deleted_at.isoformat()}]


def test_soft_delete_twice_fails(db_session, user):
    bank = _bank(db_session)
    SoftDeleteEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id)

    with pytest.raises(AlreadyInTrashError):
        SoftDeleteEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id)
    assert len(_audit(db_session, EntityKind.BANK, bank.id)) == 2


def test_soft_delete_missing_row(db_session, user):
    with pytest.raises(NotFoundError):
        SoftDeleteEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, 404)


def test_restore_live_row_fails(db_session, user):
    bank = _bank(db_session)
    with pytest.raises(NotInTrashError):
        RestoreEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id)


def test_rows_of_other_owner_are_invisible(db_session, user, other_user):
    bank = _bank(db_session)
    with pytest.raises(NotFoundError):
        SoftDeleteEntityUseCase(db_session).execute(other_user.id, EntityKind.BANK, bank.id)
    with pytest.raises(NotFoundError):
        get_entity(db_session, other_user.id, EntityKind.BANK, bank.id)


# ---------------------------------------------------------------------------
# Permanent delete
# ---------------------------------------------------------------------------

def test_permanent_delete_requires_trash(db_session, user):
    bank = _bank(db_session)
    with pytest.raises(InvalidStateError):
        PermanentDeleteEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id)


@pytest.mark.parametrize("kind", list(EntityKind))
def test_permanent_delete_then_restore_is_not_found(db_session, user, kind):
    row = _minimal(db_session, kind)
    row_id = row.id
    SoftDeleteEntityUseCase(db_session).execute(USER_ID, kind, row_id)

    removed = PermanentDeleteEntityUseCase(db_session).execute(USER_ID, kind, row_id)

    assert removed == 1
    with pytest.raises(NotFoundError):
        RestoreEntityUseCase(db_session).execute(USER_ID, kind, row_id)

    # the audit trail survives the row
    entries = _audit(db_session, kind, row_id)
    assert [e.action for e in entries] == ["create", "delete", "permanent_delete"]
    assert entries[-1].changes_json is None


def test_exactly_one_audit_row_per_mutation(db_session, user):
    bank = _bank(db_session)
    UpdateEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id, {"balance": "1"})
    SoftDeleteEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id)
    RestoreEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id)
    SoftDeleteEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id)
    PermanentDeleteEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id)

    actions = [e.action for e in _audit(db_session, EntityKind.BANK, bank.id)]
    assert actions == ["create", "update", "delete", "restore", "delete", "permanent_delete"]


def test_failed_audit_rolls_back_mutation(db_session, user, monkeypatch):
    bank = _bank(db_session)

    def boom(*args, **kwargs):
        raise RuntimeError("audit store down")

    monkeypatch.setattr(AuditLogRepository, "append", boom)
    with pytest.raises(RuntimeError):
        SoftDeleteEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id)

    assert get_entity(db_session, USER_ID, EntityKind.BANK, bank.id).deleted_at is None


# ---------------------------------------------------------------------------
# Non-owning links
# ---------------------------------------------------------------------------

def test_link_label_dangles_to_dash(db_session, user):
    bank = _bank(db_session)
    bill = CreateEntityUseCase(db_session).execute(USER_ID, EntityKind.ONE_TIME_BILL, {**BILL, "linked_bank_id": bank.id})

    assert link_label(db_session, USER_ID, EntityKind.BANK, bill.linked_bank_id) == "Sparkasse Giro"

    SoftDeleteEntityUseCase(db_session).execute(USER_ID, EntityKind.BANK, bank.id)
    assert link_label(db_session, USER_ID, EntityKind.BANK, bill.linked_bank_id) == "—"
    assert link_label(db_session, USER_ID, EntityKind.BANK, None) == "—"
