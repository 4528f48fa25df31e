# kibbledrop/tasks/reminders.py
from datetime import date, timedelta

from kibbledrop.celery_worker import celery_app
from kibbledrop.data.database import SessionLocal
from kibbledrop.repos.subscription_repo import SubscriptionRepo
from kibbledrop.services.notification_service import NotificationService
from kibbledrop.services.subscription_service import item_names
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)


def send_delivery_reminders(db, today: date | None = None) -> int:
    """Emails owners of active subscriptions delivering tomorrow. Only reads subscriptions."""
    tomorrow = (today or date.today()) + timedelta(days=1)
    notifier = NotificationService()

    due = SubscriptionRepo(db).active_due_on(tomorrow)
    logger.info(f"Found {len(due)} subscriptions delivering on {tomorrow}")

    for sub in due:
        notifier.send_delivery_reminder(
            sub.user.email, sub.user.name, sub.id, item_names(sub), tomorrow.isoformat()
        )
    return len(due)


@celery_app.task(name="kibbledrop.tasks.reminders.send_delivery_reminders_task")
def send_delivery_reminders_task():
    logger.info("Delivery reminder task started")

    db = SessionLocal()
    try:
        return send_delivery_reminders(db)
    finally:
        db.close()
