"""
Notifications API + engine trigger for an external cron.
"""
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from redemption.api.deps import get_db, get_current_user, require_cron_secret
from redemption.application.notification_engine import NotificationEngine
from redemption.application.notifications import (
    DeleteNotificationUseCase,
    DeleteReadNotificationsUseCase,
    MarkAllNotificationsReadUseCase,
    MarkNotificationReadUseCase,
    list_notifications,
)
from redemption.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("")
def get_notifications(limit: int = 50, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Newest first, plus unread count"""
    return {"success": True, "data": list_notifications(db, user.id, limit=limit)}


@router.post("/run", dependencies=[Depends(require_cron_secret)])
def run_engine(today: date | None = None, db: Session = Depends(get_db)):
    """Run the notification engine for all users (Authorization: Bearer CRON_SECRET)"""
    result = NotificationEngine(db).run(today)
    return {"success": not result.errors, "data": result.to_dict()}


@router.post("/read-all")
def mark_all_read(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    count = MarkAllNotificationsReadUseCase(db).execute(user.id)
    return {"success": True, "data": {"updated": count}}


@router.delete("/read")
def delete_read(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    count = DeleteReadNotificationsUseCase(db).execute(user.id)
    return {"success": True, "data": {"deleted": count}}


@router.post("/{notification_id}/read")
def mark_read(notification_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    MarkNotificationReadUseCase(db).execute(user.id, notification_id)
    return {"success": True}


@router.delete("/{notification_id}")
def delete_notification(notification_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    DeleteNotificationUseCase(db).execute(user.id, notification_id)
    return {"success": True}
