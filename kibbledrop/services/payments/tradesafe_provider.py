# kibbledrop/services/payments/tradesafe_provider.py
import hmac
import json
import secrets
import time
from typing import Mapping

import requests

from kibbledrop.data.models.order import OrderModel
from kibbledrop.data.models.subscription import SubscriptionModel
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain import statuses
from kibbledrop.domain.errors import PaymentGatewayError, WebhookSignatureError
from kibbledrop.services.payments.base import PaymentProvider, CheckoutSession, PaymentEvent, hmac_sha256_hex
from kibbledrop.utils.retry import http_retry
from kibbledrop.utils.settings import (
    APP_URL,
    ENVIRONMENT,
    PAYMENT_HTTP_TIMEOUT,
    TRADESAFE_API_URL,
    TRADESAFE_CLIENT_ID,
    TRADESAFE_CLIENT_SECRET,
    TRADESAFE_WEBHOOK_SECRET,
)
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

STATUS_MAP = {
    "completed": statuses.PAID,
    "failed": statuses.FAILED,
    "cancelled": statuses.CANCELED,
    "canceled": statuses.CANCELED,
    "pending": statuses.PAYMENT_PENDING,
}

SIGNATURE_HEADER = "x-tradesafe-signature"


class TradeSafeProvider(PaymentProvider):
    name = "tradesafe"
    checkout_status = statuses.PAYMENT_PENDING

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        webhook_secret: str | None = None,
        base_url: str | None = None,
        environment: str | None = None,
        timeout: int = PAYMENT_HTTP_TIMEOUT,
    ):
        self.client_id = TRADESAFE_CLIENT_ID if client_id is None else client_id
        self.client_secret = TRADESAFE_CLIENT_SECRET if client_secret is None else client_secret
        self.webhook_secret = TRADESAFE_WEBHOOK_SECRET if webhook_secret is None else webhook_secret
        self.base_url = (base_url or TRADESAFE_API_URL).rstrip("/")
        self.environment = environment or ENVIRONMENT
        self.timeout = timeout
        self._token: str | None = None
        self._token_expires_at = 0.0

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @http_retry()
    def _fetch_token(self) -> dict:
        url = f"{self.base_url}/oauth/token"
        logger.info(f"TradeSafe POST {url}")
        resp = requests.post(
            url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            headers={"User-Agent": "KibbleDrop/1.0"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def get_access_token(self) -> str:
        # refreshed one minute before it actually expires
        if self._token and time.time() < self._token_expires_at:
            return self._token

        try:
            data = self._fetch_token()
        except requests.RequestException as e:
            logger.error(f"TradeSafe OAuth token request failed: {e}")
            raise PaymentGatewayError("TradeSafe authentication failed")

        self._token = data["access_token"]
        self._token_expires_at = time.time() + int(data.get("expires_in") or 3600) - 60
        return self._token

    def create_checkout(self, order: OrderModel, user: UserModel,
                        subscription: SubscriptionModel | None = None) -> CheckoutSession:
        if not self.configured:
            if self.environment == "development":
                return self._mock_checkout(order)
            raise PaymentGatewayError("TradeSafe is not configured")

        body = {
            "amount": float(order.total),
            "currency": "ZAR",
            "order_id": str(order.id),
            "description": f"KibbleDrop order #{order.id}",
            "customer_email": user.email,
            "customer_name": order.delivery_name or user.name,
            "customer_phone": order.delivery_phone,
            "return_url": f"{APP_URL}/payment/success?order_id={order.id}",
            "cancel_url": f"{APP_URL}/payment/cancelled?order_id={order.id}",
            "webhook_url": f"{APP_URL}/api/tradesafe/webhook",
            "metadata": {"subscription_id": subscription.id if subscription else None},
        }

        url = f"{self.base_url}/api/payments"
        logger.info(f"TradeSafe POST {url} for order {order.id}")
        try:
            resp = requests.post(
                url,
                json=body,
                headers={"Authorization": f"Bearer {self.get_access_token()}", "User-Agent": "KibbleDrop/1.0"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            logger.error(f"TradeSafe payment creation for order {order.id} failed: {e}")
            raise PaymentGatewayError("Failed to create TradeSafe payment")

        return CheckoutSession(reference=str(data["payment_id"]), redirect_url=data["redirect_url"])

    @http_retry()
    def _fetch_payment(self, payment_id: str) -> dict:
        url = f"{self.base_url}/v1/payments/{payment_id}"
        logger.info(f"TradeSafe GET {url}")
        resp = requests.get(
            url,
            headers={"Authorization": f"Bearer {self.get_access_token()}", "User-Agent": "KibbleDrop/1.0"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def get_payment_status(self, payment_id: str) -> dict:
        if payment_id.startswith("mock_"):
            return {"payment_id": payment_id, "status": "pending", "mock": True}
        if not self.configured:
            raise PaymentGatewayError("TradeSafe is not configured")
        try:
            return self._fetch_payment(payment_id)
        except requests.RequestException as e:
            logger.error(f"TradeSafe payment status for {payment_id} failed: {e}")
            raise PaymentGatewayError("Failed to get TradeSafe payment status")

    def verify_webhook(self, body: bytes, headers: Mapping[str, str]) -> dict:
        signature = headers.get(SIGNATURE_HEADER)
        if not signature:
            raise WebhookSignatureError("Missing signature", 400)
        if not self.webhook_secret:
            raise PaymentGatewayError("TradeSafe webhook secret is not configured")
        if not hmac.compare_digest(hmac_sha256_hex(self.webhook_secret, body), signature.strip().lower()):
            logger.warning("TradeSafe webhook with invalid signature")
            raise WebhookSignatureError("Invalid signature", 401)

        try:
            return json.loads(body)
        except ValueError:
            raise WebhookSignatureError("Invalid payload", 400)

    def parse_event(self, payload: dict) -> PaymentEvent | None:
        gateway_status = str(payload.get("status") or "").lower()
        status = self.map_status(gateway_status)
        if status is None:
            raise ValueError("Unknown status")

        order_ref = payload.get("orderId") or payload.get("order_id")
        if order_ref in (None, "") or not str(order_ref).isdigit():
            raise ValueError("Missing orderId")

        transaction_id = payload.get("transactionId") or payload.get("transaction_id")
        payment_id = payload.get("paymentId") or payload.get("payment_id")
        return PaymentEvent(
            event_id=f"{payment_id or order_ref}:{gateway_status}",
            gateway_status=statuses.normalize(gateway_status),
            status=status,
            order_id=int(order_ref),
            transaction_id=transaction_id,
        )

    def map_status(self, gateway_status: str) -> str | None:
        return STATUS_MAP.get((gateway_status or "").lower())

    def fetch_status(self, reference: str) -> tuple[str, dict]:
        data = self.get_payment_status(reference)
        return str(data.get("status") or "pending"), data

    def _mock_checkout(self, order: OrderModel) -> CheckoutSession:
        payment_id = f"mock_{int(time.time() * 1000)}_{secrets.token_hex(5)}"
        logger.info(f"TradeSafe not configured, mock payment {payment_id} for order {order.id}")
        return CheckoutSession(
            reference=payment_id,
            redirect_url=f"{APP_URL}/mock-payment?paymentId={payment_id}&orderId={order.id}&amount={order.total}",
        )
