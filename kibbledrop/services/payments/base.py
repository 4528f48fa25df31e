# kibbledrop/services/payments/base.py
import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping

from kibbledrop.data.models.order import OrderModel
from kibbledrop.data.models.subscription import SubscriptionModel
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain import statuses


@dataclass
class CheckoutSession:
    reference: str
    redirect_url: str


@dataclass
class PaymentEvent:
    event_id: str
    gateway_status: str
    status: str | None = None  # local order status, None means acknowledge only
    order_id: int | None = None
    order_reference: str | None = None
    subscription_id: int | None = None
    transaction_id: str | None = None
    stripe_subscription_id: str | None = None


def hmac_sha256_hex(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def to_cents(amount) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentProvider(ABC):
    name: str = ""
    # status an order is left in once checkout has been started
    checkout_status: str = statuses.PENDING

    @abstractmethod
    def create_checkout(self, order: OrderModel, user: UserModel,
                        subscription: SubscriptionModel | None = None) -> CheckoutSession:
        ...

    @abstractmethod
    def verify_webhook(self, body: bytes, headers: Mapping[str, str]) -> dict:
        ...

    @abstractmethod
    def parse_event(self, payload: dict) -> PaymentEvent | None:
        ...

    @abstractmethod
    def map_status(self, gateway_status: str) -> str | None:
        ...

    @abstractmethod
    def fetch_status(self, reference: str) -> tuple[str, dict]:
        """(gateway status, raw response)"""
