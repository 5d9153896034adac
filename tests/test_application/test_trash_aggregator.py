"""
Tests for the trash aggregator: unified listing, dispatch by tag, empty trash.
"""
from datetime import datetime, timezone
from unittest.mock import patch

from redemption.application import entities as entities_module
from redemption.application.entities import CreateEntityUseCase, SoftDeleteEntityUseCase
from redemption.application.trash import (
    NormalizedItem,
    empty_trash,
    get_deleted_items,
    normalize,
    permanent_delete_item,
    restore_item,
)
from redemption.domain.entities import EntityKind
from redemption.infrastructure.db.models import AuditLogModel, BankModel, WishlistItemModel


USER_ID = 1


def _bank(db, display_name="PayPal"):
    return CreateEntityUseCase(db).execute(USER_ID, EntityKind.BANK, {
        "name": "paypal", "display_name": display_name, "balance": "10",
    })


def _wish(db, name="Headphones"):
    return CreateEntityUseCase(db).execute(USER_ID, EntityKind.WISHLIST_ITEM, {
        "name": name, "price": "199.99", "where_to_buy": "Store", "need_rate": "can_wait",
        "links": ["https://example.com/headphones"],
    })


def _trash(db, kind, row):
    SoftDeleteEntityUseCase(db).execute(USER_ID, kind, row.id)


def test_bundle_has_every_kind(db_session, user):
    bundle = get_deleted_items(db_session, USER_ID)
    assert set(bundle) == set(EntityKind)
    assert all(rows == [] for rows in bundle.values())


def test_normalized_list_most_recent_first(db_session, user):
    bank = _bank(db_session)
    wish = _wish(db_session)
    _trash(db_session, EntityKind.BANK, bank)
    _trash(db_session, EntityKind.WISHLIST_ITEM, wish)

    items = normalize(get_deleted_items(db_session, USER_ID))

    assert [(i.entity_type, i.id) for i in items] == [("wishlist_item", wish.id), ("bank", bank.id)]
    assert items[0].name == "Headphones"
    assert items[0].details == "€199.99"
    assert items[1].details == "€10.00"


def test_normalize_ties_broken_by_type_then_id():
    stamp = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    class Row:
        def __init__(self, id):
            self.id = id
            self.deleted_at = stamp
            self.display_name = f"b{id}"
            self.name = f"w{id}"
            self.price = 1
            self.balance = 1

    bundle = {EntityKind.WISHLIST_ITEM: [Row(1)], EntityKind.BANK: [Row(5), Row(2)]}
    items = normalize(bundle)

    assert [(i.entity_type, i.id) for i in items] == [("bank", 2), ("bank", 5), ("wishlist_item", 1)]
    assert isinstance(items[0], NormalizedItem)
    assert items[0].to_dict()["deleted_at"] == "2026-03-01T12:00:00+00:00"


def test_restore_item_by_tag(db_session, user):
    bank = _bank(db_session)
    _trash(db_session, EntityKind.BANK, bank)

    assert restore_item(db_session, USER_ID, "bank", bank.id) == {"success": True}
    assert db_session.get(BankModel, bank.id).deleted_at is None


def test_unknown_tag_is_a_result_not_an_exception(db_session, user):
    assert restore_item(db_session, USER_ID, "spaceship", 1) == {"success": False, "error": "Unknown entity type"}
    assert permanent_delete_item(db_session, USER_ID, "spaceship", 1) == {
        "success": False, "error": "Unknown entity type",
    }


def test_permanent_delete_item(db_session, user):
    wish = _wish(db_session)
    _trash(db_session, EntityKind.WISHLIST_ITEM, wish)

    result = permanent_delete_item(db_session, USER_ID, "wishlist_item", wish.id)

    assert result == {"success": True, "data": {"deleted": 1}}
    assert db_session.query(WishlistItemModel).count() == 0


def test_empty_trash_only_touches_trashed_rows(db_session, user):
    keep = _bank(db_session, "Keep")
    gone = _bank(db_session, "Gone")
    wish = _wish(db_session)
    _trash(db_session, EntityKind.BANK, gone)
    _trash(db_session, EntityKind.WISHLIST_ITEM, wish)

    result = empty_trash(db_session, USER_ID, actor_id=USER_ID)

    assert result == {"deleted": {"bank": 1, "wishlist_item": 1}, "total": 2, "errors": {}}
    assert [b.id for b in db_session.query(BankModel).all()] == [keep.id]


def test_empty_trash_is_idempotent(db_session, user):
    _trash(db_session, EntityKind.BANK, _bank(db_session))
    empty_trash(db_session, USER_ID)

    audit_rows = db_session.query(AuditLogModel).count()
    assert empty_trash(db_session, USER_ID) == {"deleted": {}, "total": 0, "errors": {}}
    assert db_session.query(AuditLogModel).count() == audit_rows


def test_empty_trash_reports_failing_kind_and_continues(db_session, user):
    bank = _bank(db_session)
    wish = _wish(db_session)
    _trash(db_session, EntityKind.BANK, bank)
    _trash(db_session, EntityKind.WISHLIST_ITEM, wish)

    real_purge = entities_module.purge_entity

    def flaky_purge(db, audit, account_id, kind, row, actor_id, metadata=None):
        if kind == EntityKind.BANK:
            raise RuntimeError("disk full")
        return real_purge(db, audit, account_id, kind, row, actor_id, metadata)

    with patch.object(entities_module, "purge_entity", flaky_purge):
        result = empty_trash(db_session, USER_ID)

    assert result["deleted"] == {"wishlist_item": 1}
    assert result["errors"] == {"bank": "Failed to delete banks"}
    assert db_session.get(BankModel, bank.id) is not None
