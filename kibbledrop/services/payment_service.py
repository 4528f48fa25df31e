# kibbledrop/services/payment_service.py
from datetime import datetime, timezone
from typing import Mapping
from sqlalchemy.orm import Session

from kibbledrop.data.models.order import OrderModel
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain import statuses
from kibbledrop.domain.errors import NotFoundError
from kibbledrop.domain.schemas import CheckoutIn
from kibbledrop.repos.order_repo import OrderRepo
from kibbledrop.repos.subscription_repo import SubscriptionRepo
from kibbledrop.services.event_guard import EventGuard
from kibbledrop.services.notification_service import NotificationService
from kibbledrop.services.order_service import OrderService
from kibbledrop.services.payments.base import PaymentProvider, PaymentEvent
from kibbledrop.services.subscription_service import activate_subscription, notify_status
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

SUCCESS_STATUSES = frozenset({statuses.PAID, statuses.PROCESSING})
CHECKOUT_ALLOWED = frozenset({statuses.PENDING, statuses.PAYMENT_PENDING, statuses.FAILED})


class PaymentService:
    """
    Gateway agnostic half of the payment flow.

    The provider turns gateway specifics into a PaymentEvent, this class
    applies it: order status, payment fields and, for a successful payment
    of a subscription order, the pending -> active subscription transition.
    """

    def __init__(self, db: Session, provider: PaymentProvider):
        self.provider = provider
        self.orders = OrderRepo(db)
        self.subscriptions = SubscriptionRepo(db)
        self.order_service = OrderService(db)
        self.notification_service = NotificationService()

    def start_checkout(self, user: UserModel, payload: CheckoutIn) -> dict:
        if (payload.order_id is None) == (payload.subscription_id is None):
            raise ValueError("Provide either order_id or subscription_id")

        subscription = None
        if payload.subscription_id is not None:
            subscription = self.subscriptions.get_subscription(payload.subscription_id)
            if not subscription or subscription.user_id != user.id:
                raise NotFoundError("Subscription not found")
            if subscription.status != statuses.SUB_PENDING:
                raise ValueError(f"Subscription is already {subscription.status}")
            order = self.order_service.create_subscription_order(subscription)
        else:
            order = self.orders.get_order(payload.order_id)
            if not order or order.user_id != user.id:
                raise NotFoundError("Order not found")
            if order.status not in CHECKOUT_ALLOWED:
                raise ValueError(f"Order with status '{order.status}' cannot be paid")

        session = self.provider.create_checkout(order, user, subscription)

        order.payment_provider = self.provider.name
        order.payment_reference = session.reference
        order.payment_status = statuses.PENDING
        order.status = self.provider.checkout_status
        self.orders.commit()

        logger.info(
            f"Checkout via {self.provider.name} for order {order.id}: "
            f"reference {session.reference}, status {order.status}"
        )
        return {
            "provider": self.provider.name,
            "order_id": order.id,
            "reference": session.reference,
            "redirect_url": session.redirect_url,
            "status": order.status,
        }

    def handle_webhook(self, body: bytes, headers: Mapping[str, str], guard: EventGuard) -> dict:
        payload = self.provider.verify_webhook(body, headers)
        event = self.provider.parse_event(payload)
        if event is None:
            return {"received": True}

        if not guard.first_delivery(self.provider.name, event.event_id):
            return {"received": True, "duplicate": True}

        try:
            return self.apply_event(event)
        except Exception:
            guard.forget(self.provider.name, event.event_id)
            raise

    def apply_event(self, event: PaymentEvent) -> dict:
        order = self._find_order(event)
        subscription = None
        if order is not None and order.subscription_id:
            subscription = order.subscription
        elif event.subscription_id:
            subscription = self.subscriptions.get_subscription(event.subscription_id)

        if order is None and subscription is None:
            raise NotFoundError("Order not found")

        previous_order_status = order.status if order is not None else None
        previous_sub_status = subscription.status if subscription is not None else None

        if order is not None:
            self._apply_to_order(order, event)

        if subscription is not None:
            if event.stripe_subscription_id:
                subscription.stripe_subscription_id = event.stripe_subscription_id
            if event.status in SUCCESS_STATUSES and subscription.status == statuses.SUB_PENDING:
                activate_subscription(subscription)

        self.orders.commit()

        if order is not None and order.status != previous_order_status:
            logger.info(f"Order {order.id}: {previous_order_status} -> {order.status} ({self.provider.name})")
            self.notification_service.send_order_status(
                order.user.email, order.user.name, order.id, order.status
            )
        if subscription is not None and subscription.status != previous_sub_status:
            logger.info(f"Subscription {subscription.id}: {previous_sub_status} -> {subscription.status}")
            notify_status(self.notification_service, subscription)

        return {
            "received": True,
            "order_id": order.id if order is not None else None,
            "subscription_id": subscription.id if subscription is not None else None,
            "status": order.status if order is not None else None,
        }

    def lookup_status(self, user: UserModel, reference: str) -> dict:
        order = self.orders.get_by_reference(self.provider.name, reference)
        # only references that belong to one of our orders are looked up
        if order is None or (order.user_id != user.id and user.role != "admin"):
            raise NotFoundError("Payment not found")

        gateway_status, raw = self.provider.fetch_status(reference)
        return {
            "provider": self.provider.name,
            "reference": reference,
            "status": gateway_status,
            "order_id": order.id,
            "order_status": order.status,
            "raw": raw,
        }

    def _find_order(self, event: PaymentEvent) -> OrderModel | None:
        if event.order_id is not None:
            order = self.orders.get_order(event.order_id)
            if order is None:
                raise NotFoundError("Order not found")
            return order
        if event.order_reference is not None:
            order = self.orders.get_by_reference(self.provider.name, event.order_reference)
            if order is None:
                raise NotFoundError("Order not found")
            return order
        return None

    @staticmethod
    def _apply_to_order(order: OrderModel, event: PaymentEvent):
        order.payment_status = event.gateway_status
        if event.transaction_id:
            order.transaction_id = event.transaction_id

        if order.status in statuses.TERMINAL_ORDER_STATUSES and event.status != order.status:
            logger.warning(f"Order {order.id} is {order.status}, ignoring gateway status {event.status}")
            return
        if statuses.is_step_back(order.status, event.status):
            logger.warning(f"Order {order.id} already {order.status}, ignoring late gateway status {event.status}")
            return

        order.status = event.status
        if event.status in SUCCESS_STATUSES and order.paid_at is None:
            order.paid_at = datetime.now(timezone.utc)
