# kibbledrop/services/payments/stripe_provider.py
import json
from typing import Mapping

import stripe

from kibbledrop.data.models.order import OrderModel
from kibbledrop.data.models.subscription import SubscriptionModel
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain import statuses
from kibbledrop.domain.errors import PaymentGatewayError, WebhookSignatureError
from kibbledrop.services.payments.base import PaymentProvider, CheckoutSession, PaymentEvent, to_cents
from kibbledrop.utils.settings import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET, STRIPE_CURRENCY, APP_URL
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

# frequency -> (interval, interval_count)
RECURRING = {
    "weekly": ("week", 1),
    "bi-weekly": ("week", 2),
    "tri-weekly": ("week", 3),
}

STATUS_MAP = {
    "complete": statuses.PAID,
    "paid": statuses.PAID,
    "expired": statuses.CANCELED,
    "failed": statuses.FAILED,
}


class StripeProvider(PaymentProvider):
    name = "stripe"
    checkout_status = statuses.PENDING

    def __init__(self, api_key: str | None = None, webhook_secret: str | None = None):
        self.api_key = STRIPE_SECRET_KEY if api_key is None else api_key
        self.webhook_secret = STRIPE_WEBHOOK_SECRET if webhook_secret is None else webhook_secret

    def create_checkout(self, order: OrderModel, user: UserModel,
                        subscription: SubscriptionModel | None = None) -> CheckoutSession:
        if not self.api_key:
            raise PaymentGatewayError("Stripe is not configured")
        stripe.api_key = self.api_key

        metadata = {"order_id": str(order.id), "user_id": str(user.id)}
        if subscription is not None:
            metadata["subscription_id"] = str(subscription.id)

        try:
            customer = self._get_or_create_customer(user)
            params = dict(
                customer=customer.id,
                payment_method_types=["card"],
                line_items=self._line_items(order, subscription),
                metadata=metadata,
                success_url=f"{APP_URL}/payment/success?session_id={{CHECKOUT_SESSION_ID}}&order_id={order.id}",
                cancel_url=f"{APP_URL}/payment/cancelled?order_id={order.id}",
            )
            if subscription is not None:
                params.update(mode="subscription", subscription_data={"metadata": metadata})
            else:
                params.update(mode="payment", payment_intent_data={"metadata": metadata})

            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout for order {order.id} failed: {e}")
            raise PaymentGatewayError("Failed to create Stripe checkout session")

        logger.info(f"Stripe session {session.id} created for order {order.id} ({params['mode']})")
        return CheckoutSession(reference=session.id, redirect_url=session.url)

    def verify_webhook(self, body: bytes, headers: Mapping[str, str]) -> dict:
        signature = headers.get("stripe-signature")
        if not signature:
            raise WebhookSignatureError("Missing stripe-signature header", 400)
        if not self.webhook_secret:
            raise PaymentGatewayError("Stripe webhook secret is not configured")

        payload = body.decode("utf-8")
        try:
            stripe.WebhookSignature.verify_header(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Stripe webhook signature verification failed: {e}")
            raise WebhookSignatureError("Webhook signature verification failed", 400)

        try:
            return json.loads(payload)
        except ValueError:
            raise WebhookSignatureError("Invalid payload", 400)

    def parse_event(self, payload: dict) -> PaymentEvent | None:
        event_type = payload.get("type")
        obj = (payload.get("data") or {}).get("object") or {}
        metadata = obj.get("metadata") or {}
        event_id = payload.get("id") or f"{event_type}:{obj.get('id')}"

        order_id = _int_or_none(metadata.get("order_id"))
        subscription_id = _int_or_none(metadata.get("subscription_id"))

        if event_type == "checkout.session.completed":
            event = PaymentEvent(
                event_id=event_id,
                gateway_status=obj.get("status") or "complete",
                status=self.map_status("complete"),
                order_id=order_id,
                subscription_id=subscription_id,
                transaction_id=obj.get("payment_intent") or obj.get("id"),
            )
            if obj.get("mode") == "subscription":
                event.stripe_subscription_id = obj.get("subscription")
            return event

        if event_type == "checkout.session.expired":
            return PaymentEvent(event_id=event_id, gateway_status="expired",
                                status=self.map_status("expired"), order_id=order_id)

        if event_type == "payment_intent.payment_failed":
            return PaymentEvent(event_id=event_id, gateway_status="failed",
                                status=self.map_status("failed"), order_id=order_id,
                                transaction_id=obj.get("id"))

        logger.info(f"Unhandled Stripe event type {event_type}")
        return None

    def map_status(self, gateway_status: str) -> str | None:
        return STATUS_MAP.get(gateway_status)

    def fetch_status(self, reference: str) -> tuple[str, dict]:
        if not self.api_key:
            raise PaymentGatewayError("Stripe is not configured")
        stripe.api_key = self.api_key

        try:
            session = stripe.checkout.Session.retrieve(reference)
        except stripe.StripeError as e:
            logger.error(f"Stripe session lookup for {reference} failed: {e}")
            raise PaymentGatewayError("Failed to get Stripe session status")

        raw = {
            "id": session.id,
            "status": session.status,
            "payment_status": session.payment_status,
            "mode": session.mode,
        }
        return str(session.payment_status or session.status or "unknown"), raw

    def _get_or_create_customer(self, user: UserModel):
        existing = stripe.Customer.list(email=user.email, limit=1)
        if existing.data:
            return existing.data[0]
        return stripe.Customer.create(email=user.email, name=user.name, metadata={"user_id": str(user.id)})

    @staticmethod
    def _line_items(order: OrderModel, subscription: SubscriptionModel | None) -> list[dict]:
        recurring = None
        if subscription is not None:
            interval, count = RECURRING.get(subscription.frequency, ("month", 1))
            recurring = {"interval": interval, "interval_count": count}

        items = []
        for item in order.items:
            price_data = {
                "currency": STRIPE_CURRENCY,
                "product_data": {"name": item.product_name},
                "unit_amount": to_cents(item.price),
            }
            if recurring:
                price_data["recurring"] = recurring
            items.append({"price_data": price_data, "quantity": item.quantity})

        if order.shipping and recurring is None:
            items.append({
                "price_data": {
                    "currency": STRIPE_CURRENCY,
                    "product_data": {"name": "Express delivery"},
                    "unit_amount": to_cents(order.shipping),
                },
                "quantity": 1,
            })
        return items


def _int_or_none(value):
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None
