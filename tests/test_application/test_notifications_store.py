"""
Tests for notification storage: dedup lookup, listing, read / delete.
"""
from decimal import Decimal

import pytest

from redemption.application.notifications import (
    DeleteNotificationUseCase,
    DeleteReadNotificationsUseCase,
    MarkAllNotificationsReadUseCase,
    MarkNotificationReadUseCase,
    create_notification,
    has_unread,
    list_notifications,
    unread_count,
)
from redemption.domain.errors import NotFoundError
from redemption.domain.notification import BillMetadata
from redemption.infrastructure.db.models import NotificationModel


USER_ID = 1


def _notify(db, entity_id=1, type_="bill_due", user_id=USER_ID):
    notif = create_notification(
        db, user_id, type_, f"Bill {entity_id} is due.",
        entity_type="one_time_bill", entity_id=entity_id,
        metadata=BillMetadata(bill_id=entity_id, bill_name=f"Bill {entity_id}", amount=Decimal("9.50")),
    )
    db.commit()
    return notif


def test_has_unread_matches_type_and_entity(db_session, user):
    _notify(db_session, entity_id=7)

    assert has_unread(db_session, USER_ID, "bill_due", "one_time_bill", 7)
    assert not has_unread(db_session, USER_ID, "bill_overdue", "one_time_bill", 7)
    assert not has_unread(db_session, USER_ID, "bill_due", "one_time_bill", 8)
    assert not has_unread(db_session, USER_ID, "bill_due", "recurring_expense", 7)


def test_read_notification_no_longer_counts(db_session, user):
    notif = _notify(db_session, entity_id=7)
    MarkNotificationReadUseCase(db_session).execute(USER_ID, notif.id)

    assert not has_unread(db_session, USER_ID, "bill_due", "one_time_bill", 7)
    assert unread_count(db_session, USER_ID) == 0


def test_list_notifications_shape(db_session, user):
    _notify(db_session, 1)
    second = _notify(db_session, 2)

    listing = list_notifications(db_session, USER_ID)

    assert listing["unread_count"] == 2
    assert listing["notifications"][0]["id"] == second.id
    first = listing["notifications"][0]
    assert first["metadata"] == {
        "kind": "bill", "bill_id": 2, "bill_name": "Bill 2", "amount": "9.50", "due_date": None,
    }
    assert first["is_read"] is False


def test_mark_all_read_counts_only_unread(db_session, user):
    notif = _notify(db_session, 1)
    _notify(db_session, 2)
    MarkNotificationReadUseCase(db_session).execute(USER_ID, notif.id)

    assert MarkAllNotificationsReadUseCase(db_session).execute(USER_ID) == 1
    assert unread_count(db_session, USER_ID) == 0


def test_delete_read_keeps_unread(db_session, user):
    read = _notify(db_session, 1)
    _notify(db_session, 2)
    MarkNotificationReadUseCase(db_session).execute(USER_ID, read.id)

    assert DeleteReadNotificationsUseCase(db_session).execute(USER_ID) == 1
    assert [n.entity_id for n in db_session.query(NotificationModel).all()] == [2]


def test_other_users_notifications_are_not_found(db_session, user, other_user):
    notif = _notify(db_session, 1)

    with pytest.raises(NotFoundError):
        MarkNotificationReadUseCase(db_session).execute(other_user.id, notif.id)
    with pytest.raises(NotFoundError):
        DeleteNotificationUseCase(db_session).execute(other_user.id, notif.id)

    DeleteNotificationUseCase(db_session).execute(USER_ID, notif.id)
    assert db_session.query(NotificationModel).count() == 0
