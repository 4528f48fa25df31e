# kibbledrop/services/notification_service.py
from kibbledrop.celery_worker import celery_app
from kibbledrop.services import email_templates
from kibbledrop.services.email_client import EmailClient
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Email notifications, sent through Celery.

    Every call is fire-and-forget: a broker failure is logged and never
    propagates, so the state change that triggered the mail stands.
    """

    @staticmethod
    def _dispatch(task, *args):
        try:
            task.delay(*args)
        except Exception as e:
            logger.error(f"Failed to queue {task.name}: {e}")

    def send_welcome(self, email: str, name: str | None):
        self._dispatch(send_welcome_email_task, email, name)

    def send_order_confirmation(self, email: str, order: dict):
        self._dispatch(send_order_confirmation_task, email, order)

    def send_order_status(self, email: str, name: str | None, order_id: int, status: str,
                          tracking_number: str | None = None, reason: str | None = None):
        self._dispatch(send_order_status_task, email, name, order_id, status, tracking_number, reason)

    def send_subscription_status(self, email: str, name: str | None, subscription_id: int, status: str,
                                 item_names: list, next_delivery: str | None = None):
        self._dispatch(send_subscription_status_task, email, name, subscription_id, status, item_names, next_delivery)

    def send_subscription_confirmation(self, email: str, name: str | None, subscription_id: int, frequency: str,
                                       item_names: list, next_delivery: str | None = None):
        self._dispatch(send_subscription_confirmation_task, email, name, subscription_id, frequency, item_names, next_delivery)

    def send_delivery_reminder(self, email: str, name: str | None, subscription_id: int,
                               item_names: list, delivery_date: str):
        self._dispatch(send_delivery_reminder_task, email, name, subscription_id, item_names, delivery_date)


def _send(to: str, rendered) -> dict:
    subject, html = rendered
    return EmailClient().send(to, subject, html)


@celery_app.task(name="kibbledrop.services.notification_service.send_welcome_email_task")
def send_welcome_email_task(email: str, name: str | None):
    logger.info(f"[NOTIFICATION] welcome -> {email}")
    return _send(email, email_templates.welcome(name))


@celery_app.task(name="kibbledrop.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(email: str, order: dict):
    logger.info(f"[NOTIFICATION] order {order['id']} confirmation -> {email}")
    return _send(email, email_templates.order_confirmation(order))


@celery_app.task(name="kibbledrop.services.notification_service.send_order_status_task")
def send_order_status_task(email: str, name: str | None, order_id: int, status: str,
                           tracking_number: str | None = None, reason: str | None = None):
    logger.info(f"[NOTIFICATION] order {order_id} status {status} -> {email}")
    return _send(email, email_templates.order_status(name, order_id, status, tracking_number, reason))


@celery_app.task(name="kibbledrop.services.notification_service.send_subscription_status_task")
def send_subscription_status_task(email: str, name: str | None, subscription_id: int, status: str,
                                  item_names: list, next_delivery: str | None = None):
    logger.info(f"[NOTIFICATION] subscription {subscription_id} status {status} -> {email}")
    return _send(email, email_templates.subscription_status(name, subscription_id, status, item_names, next_delivery))


@celery_app.task(name="kibbledrop.services.notification_service.send_subscription_confirmation_task")
def send_subscription_confirmation_task(email: str, name: str | None, subscription_id: int, frequency: str,
                                        item_names: list, next_delivery: str | None = None):
    logger.info(f"[NOTIFICATION] subscription {subscription_id} confirmation -> {email}")
    return _send(
        email,
        email_templates.subscription_confirmation(name, subscription_id, frequency, item_names, next_delivery),
    )


@celery_app.task(name="kibbledrop.services.notification_service.send_delivery_reminder_task")
def send_delivery_reminder_task(email: str, name: str | None, subscription_id: int,
                                item_names: list, delivery_date: str):
    logger.info(f"[NOTIFICATION] subscription {subscription_id} reminder for {delivery_date} -> {email}")
    return _send(email, email_templates.delivery_reminder(name, subscription_id, item_names, delivery_date))
