# kibbledrop/services/payments/tradesafe_graphql_provider.py
import hmac
import json
from typing import Mapping

import requests

from kibbledrop.data.models.order import OrderModel
from kibbledrop.data.models.subscription import SubscriptionModel
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain import statuses
from kibbledrop.domain.errors import PaymentGatewayError, WebhookSignatureError
from kibbledrop.services.payments.base import (
    PaymentProvider,
    CheckoutSession,
    PaymentEvent,
    hmac_sha256_hex,
    to_cents,
)
from kibbledrop.utils.retry import http_retry
from kibbledrop.utils.settings import (
    BUSINESS_EMAIL,
    BUSINESS_NAME,
    BUSINESS_PHONE,
    ENVIRONMENT,
    PAYMENT_HTTP_TIMEOUT,
    TRADESAFE_API_KEY,
    TRADESAFE_GRAPHQL_URL,
    TRADESAFE_WEBHOOK_SECRET,
)
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

CREATE_USER_TOKEN = """
mutation CreateUserToken($input: CreateUserTokenInput!) {
  createUserToken(input: $input) { id token email }
}
"""

CREATE_TRANSACTION = """
mutation CreateTransaction($input: CreateTransactionInput!) {
  createTransaction(input: $input) { id reference title state currency value createdAt }
}
"""

CREATE_PAYMENT_LINK = """
mutation CreatePaymentLink($transactionId: ID!) {
  createPaymentLink(transactionId: $transactionId) { id url reference expiresAt }
}
"""

GET_TRANSACTION = """
query GetTransaction($id: ID!) {
  transaction(id: $id) { id reference title state currency value createdAt updatedAt }
}
"""

EVENT_MAP = {
    "transaction.funded": statuses.PROCESSING,
    "transaction.completed": statuses.COMPLETED,
    "transaction.cancelled": statuses.CANCELED,
    "transaction.canceled": statuses.CANCELED,
}

SIGNATURE_HEADER = "x-tradesafe-signature"


class TradeSafeGraphQLProvider(PaymentProvider):
    """Escrow style TradeSafe integration over GraphQL."""

    name = "tradesafe-graphql"
    checkout_status = statuses.PENDING

    def __init__(
        self,
        api_key: str | None = None,
        endpoint: str | None = None,
        webhook_secret: str | None = None,
        environment: str | None = None,
        timeout: int = PAYMENT_HTTP_TIMEOUT,
    ):
        self.api_key = TRADESAFE_API_KEY if api_key is None else api_key
        self.endpoint = endpoint or TRADESAFE_GRAPHQL_URL
        self.webhook_secret = TRADESAFE_WEBHOOK_SECRET if webhook_secret is None else webhook_secret
        self.environment = environment or ENVIRONMENT
        self.timeout = timeout

    def _post(self, query: str, variables: dict) -> dict:
        resp = requests.post(
            self.endpoint,
            json={"query": query, "variables": variables},
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def execute(self, query: str, variables: dict, retry_safe: bool = False) -> dict:
        if not self.api_key:
            raise PaymentGatewayError("TradeSafe GraphQL is not configured")

        send = http_retry()(self._post) if retry_safe else self._post
        try:
            result = send(query, variables)
        except requests.RequestException as e:
            logger.error(f"TradeSafe GraphQL request failed: {e}")
            raise PaymentGatewayError("TradeSafe request failed")

        if result.get("errors"):
            message = result["errors"][0].get("message") or "GraphQL error occurred"
            logger.error(f"TradeSafe GraphQL error: {message}")
            raise PaymentGatewayError(message)
        return result.get("data") or {}

    def create_user_token(self, email: str, given_name: str | None = None, mobile: str | None = None) -> dict:
        user_input = {"email": email}
        if given_name:
            user_input["givenName"] = given_name
        if mobile:
            user_input["mobile"] = mobile
        return self.execute(CREATE_USER_TOKEN, {"input": user_input})["createUserToken"]

    def create_checkout(self, order: OrderModel, user: UserModel,
                        subscription: SubscriptionModel | None = None) -> CheckoutSession:
        buyer = self.create_user_token(user.email, order.delivery_name or user.name, order.delivery_phone)
        seller = self.create_user_token(BUSINESS_EMAIL, BUSINESS_NAME, BUSINESS_PHONE or None)

        allocations = [
            {
                "title": item.product_name,
                "description": f"{item.quantity}x {item.product_name}",
                "value": to_cents(item.price * item.quantity),
                "daysToDeliver": 7,
                "daysToInspect": 3,
            }
            for item in order.items
        ]
        if order.shipping:
            allocations.append({
                "title": "Delivery",
                "description": f"{order.delivery_method} delivery",
                "value": to_cents(order.shipping),
                "daysToDeliver": 7,
                "daysToInspect": 3,
            })

        transaction = self.execute(CREATE_TRANSACTION, {"input": {
            "title": f"KibbleDrop Order - {len(order.items)} item(s)",
            "description": f"Pet food order #{order.id} from KibbleDrop",
            "currency": "ZAR",
            "value": to_cents(order.total),
            "feeAllocation": "BUYER",
            "parties": {"buyer": buyer["token"], "seller": seller["token"]},
            "allocations": allocations,
        }})["createTransaction"]

        link = self.execute(CREATE_PAYMENT_LINK, {"transactionId": transaction["id"]})["createPaymentLink"]

        logger.info(f"TradeSafe transaction {transaction['id']} created for order {order.id}")
        return CheckoutSession(reference=str(transaction["id"]), redirect_url=link["url"])

    def get_transaction(self, transaction_id: str) -> dict:
        return self.execute(GET_TRANSACTION, {"id": transaction_id}, retry_safe=True)["transaction"] or {}

    def verify_webhook(self, body: bytes, headers: Mapping[str, str]) -> dict:
        signature = headers.get(SIGNATURE_HEADER)
        if not signature:
            raise WebhookSignatureError("Missing signature", 400)

        # only enforced in production, sandbox callbacks are not signed reliably
        if self.environment == "production":
            if not self.webhook_secret:
                raise PaymentGatewayError("TradeSafe webhook secret is not configured")
            if not hmac.compare_digest(hmac_sha256_hex(self.webhook_secret, body), signature.strip().lower()):
                logger.warning("TradeSafe GraphQL webhook with invalid signature")
                raise WebhookSignatureError("Invalid signature", 401)

        try:
            return json.loads(body)
        except ValueError:
            raise WebhookSignatureError("Invalid payload", 400)

    def parse_event(self, payload: dict) -> PaymentEvent | None:
        event = payload.get("event") or ""
        transaction_id = payload.get("transactionId")
        if not transaction_id:
            raise ValueError("Missing transactionId")

        status = self.map_status(event)
        if status is None:
            logger.info(f"TradeSafe GraphQL event {event} for {transaction_id} acknowledged")
            return None

        return PaymentEvent(
            event_id=f"{transaction_id}:{event}",
            gateway_status=event,
            status=status,
            order_reference=str(transaction_id),
            transaction_id=str(transaction_id),
        )

    def map_status(self, gateway_status: str) -> str | None:
        return EVENT_MAP.get(gateway_status)

    def fetch_status(self, reference: str) -> tuple[str, dict]:
        data = self.get_transaction(reference)
        return str(data.get("state") or "UNKNOWN"), data
