"""
Background scheduler: runs periodic jobs inside the FastAPI process.

Jobs:
  - Notification engine (daily, NOTIFICATION_ENGINE_HOUR:NOTIFICATION_ENGINE_MINUTE UTC)
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from redemption.config import get_settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True, timezone="UTC")


def _run_notification_engine():
    from redemption.infrastructure.db.session import get_session_factory
    from redemption.application.notification_engine import NotificationEngine

    Session = get_session_factory()
    db = Session()
    try:
        NotificationEngine(db).run()
    except Exception:
        logger.exception("Notification engine job failed")
    finally:
        db.close()


def start_scheduler():
    """Start the background scheduler with all periodic jobs."""
    settings = get_settings()
    hour = settings.NOTIFICATION_ENGINE_HOUR
    minute = settings.NOTIFICATION_ENGINE_MINUTE

    scheduler.add_job(
        _run_notification_engine,
        CronTrigger(hour=hour, minute=minute),
        id="notification_engine",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started: notification_engine (%02d:%02d UTC)", hour, minute)


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
