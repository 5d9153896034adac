"""
Notification storage: create, dedup lookup, list, mark read, delete.

The derivation rules live in notification_engine.py.
"""
from sqlalchemy.orm import Session

from redemption.domain.errors import NotFoundError
from redemption.domain.notification import dump_metadata, load_metadata
from redemption.infrastructure.db.models import NotificationModel


def has_unread(
    db: Session,
    user_id: int,
    type: str,
    entity_type: str | None,
    entity_id: int | None,
) -> bool:
    """True if an unread notification of this type already exists for the entity."""
    return (
        db.query(NotificationModel.id)
        .filter(
            NotificationModel.user_id == user_id,
            NotificationModel.type == type,
            NotificationModel.entity_type == entity_type,
            NotificationModel.entity_id == entity_id,
            NotificationModel.is_read.is_(False),
        )
        .first()
        is not None
    )


def create_notification(
    db: Session,
    user_id: int,
    type: str,
    message: str,
    entity_type: str | None = None,
    entity_id: int | None = None,
    metadata=None,
) -> NotificationModel:
    """Add a notification to the session (flush, no commit)."""
    notif = NotificationModel(
        user_id=user_id,
        type=type,
        entity_type=entity_type,
        entity_id=entity_id,
        message=message,
        metadata_json=dump_metadata(metadata),
        is_read=False,
    )
    db.add(notif)
    db.flush()
    return notif


def notification_to_dict(notif: NotificationModel) -> dict:
    meta = load_metadata(notif.metadata_json)
    return {
        "id": notif.id,
        "type": notif.type,
        "entity_type": notif.entity_type,
        "entity_id": notif.entity_id,
        "message": notif.message,
        "metadata": meta.model_dump(mode="json") if meta is not None else None,
        "is_read": notif.is_read,
        "created_at": notif.created_at.isoformat() if notif.created_at else None,
    }


def list_notifications(db: Session, user_id: int, limit: int = 50) -> dict:
    """Newest first, plus the unread count across all of the user's notifications."""
    rows = (
        db.query(NotificationModel)
        .filter(NotificationModel.user_id == user_id)
        .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        .limit(limit)
        .all()
    )
    return {
        "notifications": [notification_to_dict(n) for n in rows],
        "unread_count": unread_count(db, user_id),
    }


def unread_count(db: Session, user_id: int) -> int:
    return (
        db.query(NotificationModel)
        .filter(NotificationModel.user_id == user_id, NotificationModel.is_read.is_(False))
        .count()
    )


class MarkNotificationReadUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, notification_id: int) -> None:
        notif = self.db.query(NotificationModel).filter(
            NotificationModel.id == notification_id,
            NotificationModel.user_id == user_id,
        ).first()
        if not notif:
            raise NotFoundError("Notification not found")
        notif.is_read = True
        self.db.commit()


class MarkAllNotificationsReadUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int) -> int:
        count = (
            self.db.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id, NotificationModel.is_read.is_(False))
            .update({NotificationModel.is_read: True}, synchronize_session="fetch")
        )
        self.db.commit()
        return count


class DeleteNotificationUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, notification_id: int) -> None:
        notif = self.db.query(NotificationModel).filter(
            NotificationModel.id == notification_id,
            NotificationModel.user_id == user_id,
        ).first()
        if not notif:
            raise NotFoundError("Notification not found")
        self.db.delete(notif)
        self.db.commit()


class DeleteReadNotificationsUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int) -> int:
        count = (
            self.db.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id, NotificationModel.is_read.is_(True))
            .delete(synchronize_session="fetch")
        )
        self.db.commit()
        return count
