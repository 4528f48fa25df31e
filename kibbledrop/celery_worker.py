# kibbledrop/celery_worker.py
from celery import Celery
from celery.schedules import crontab

from kibbledrop.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "kibbledrop",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks have to be imported explicitly so the worker registers them
celery_app.conf.imports = (
    "kibbledrop.tasks.reminders",
    "kibbledrop.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "delivery-reminders-daily": {
        "task": "kibbledrop.tasks.reminders.send_delivery_reminders_task",
        "schedule": crontab(hour=8, minute=0),
    },
}

celery_app.conf.timezone = "UTC"
