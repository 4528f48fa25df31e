import json
import time
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
import stripe

from conftest import (
    DELIVERY,
    STRIPE_WEBHOOK_SECRET,
    TRADESAFE_WEBHOOK_SECRET,
    auth_headers,
    make_pet,
    make_subscription,
    make_user,
)
from kibbledrop.api import deps
from kibbledrop.data.models import OrderModel, OrderItemModel, SubscriptionModel
from kibbledrop.services.payments.base import PaymentProvider, hmac_sha256_hex, to_cents
from kibbledrop.services.payments.stripe_provider import StripeProvider
from kibbledrop.services.payments.tradesafe_graphql_provider import TradeSafeGraphQLProvider


def make_order(db, user, product, status="pending", subscription=None, provider=None, reference=None):
    order = OrderModel(
        user_id=user.id,
        subscription_id=subscription.id if subscription else None,
        status=status,
        subtotal=Decimal("100.00"),
        shipping=Decimal("0.00"),
        total=Decimal("100.00"),
        delivery_method="standard",
        payment_provider=provider,
        payment_reference=reference,
        **DELIVERY,
    )
    order.items = [OrderItemModel(product_id=product.id, product_name=product.name, quantity=1, price=Decimal("100.00"))]
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def tradesafe_webhook(client, payload, secret=TRADESAFE_WEBHOOK_SECRET, signature=None):
    body = json.dumps(payload).encode("utf-8")
    headers = {"Content-Type": "application/json"}
    if signature is not False:
        headers["x-tradesafe-signature"] = signature or hmac_sha256_hex(secret, body)
    return client.post("/api/tradesafe/webhook", content=body, headers=headers)


def stripe_webhook(client, event, secret=STRIPE_WEBHOOK_SECRET):
    payload = json.dumps(event)
    timestamp = int(time.time())
    signature = hmac_sha256_hex(secret, f"{timestamp}.{payload}".encode("utf-8"))
    return client.post(
        "/api/stripe/webhook",
        content=payload.encode("utf-8"),
        headers={"Content-Type": "application/json", "stripe-signature": f"t={timestamp},v1={signature}"},
    )


def test_to_cents_rounds_half_up():
    assert to_cents(Decimal("10.005")) == 1001
    assert to_cents("99.99") == 9999


def test_provider_without_status_lookup_is_incomplete():
    class NoLookup(PaymentProvider):
        def create_checkout(self, order, user, subscription=None):
            raise NotImplementedError

        def verify_webhook(self, body, headers):
            return {}

        def parse_event(self, payload):
            return None

        def map_status(self, gateway_status):
            return None

    with pytest.raises(TypeError):
        NoLookup()


# checkout

def test_tradesafe_mock_checkout_in_development(client, db, user, product):
    order = make_order(db, user, product)

    res = client.post("/api/tradesafe/checkout", json={"order_id": order.id}, headers=auth_headers(user))

    assert res.status_code == 200
    body = res.json()
    assert body["provider"] == "tradesafe"
    assert body["status"] == "payment_pending"
    assert body["reference"].startswith("mock_")
    assert "mock-payment" in body["redirect_url"]

    db.expire_all()
    stored = db.get(OrderModel, order.id)
    assert stored.payment_provider == "tradesafe"
    assert stored.payment_reference == body["reference"]
    assert stored.payment_status == "pending"


def test_checkout_needs_exactly_one_target(client, user):
    headers = auth_headers(user)
    assert client.post("/api/tradesafe/checkout", json={}, headers=headers).status_code == 400
    assert client.post(
        "/api/tradesafe/checkout", json={"order_id": 1, "subscription_id": 1}, headers=headers
    ).status_code == 400


def test_checkout_of_paid_order_is_rejected(client, db, user, product):
    order = make_order(db, user, product, status="paid")

    res = client.post("/api/tradesafe/checkout", json={"order_id": order.id}, headers=auth_headers(user))
    assert res.status_code == 400


def test_checkout_of_someone_elses_order(client, db, user, product):
    order = make_order(db, make_user(db, email="other@example.com"), product)

    res = client.post("/api/tradesafe/checkout", json={"order_id": order.id}, headers=auth_headers(user))
    assert res.status_code == 404


def test_subscription_checkout_creates_linked_order(client, db, user, product):
    sub = make_subscription(db, user, make_pet(db, user), product)

    res = client.post("/api/tradesafe/checkout", json={"subscription_id": sub.id}, headers=auth_headers(user))

    assert res.status_code == 200
    db.expire_all()
    order = db.get(OrderModel, res.json()["order_id"])
    assert order.subscription_id == sub.id
    assert order.total == Decimal("100.00")


def test_active_subscription_cannot_check_out_again(client, db, user, product):
    sub = make_subscription(db, user, make_pet(db, user), product, status="active")

    res = client.post("/api/tradesafe/checkout", json={"subscription_id": sub.id}, headers=auth_headers(user))
    assert res.status_code == 400


def test_stripe_checkout_without_key(client, db, user, product):
    order = make_order(db, user, product)

    res = client.post("/api/stripe/checkout", json={"order_id": order.id}, headers=auth_headers(user))

    assert res.status_code == 500
    assert res.json()["detail"] == "Stripe is not configured"


def test_stripe_checkout_session(client, app, db, monkeypatch, user, product):
    sub = make_subscription(db, user, make_pet(db, user), product, frequency="bi-weekly")
    app.dependency_overrides[deps.get_stripe_provider] = lambda: StripeProvider(
        api_key="sk_test_123", webhook_secret=STRIPE_WEBHOOK_SECRET
    )
    created = {}

    def create_session(**params):
        created.update(params)
        return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.test/cs_test_1")

    monkeypatch.setattr(stripe.Customer, "list", lambda **kw: SimpleNamespace(data=[SimpleNamespace(id="cus_1")]))
    monkeypatch.setattr(stripe.checkout.Session, "create", create_session)

    res = client.post("/api/stripe/checkout", json={"subscription_id": sub.id}, headers=auth_headers(user))

    assert res.status_code == 200
    assert res.json()["reference"] == "cs_test_1"
    assert res.json()["status"] == "pending"
    assert created["mode"] == "subscription"
    assert created["customer"] == "cus_1"
    price_data = created["line_items"][0]["price_data"]
    assert price_data["unit_amount"] == 10000
    assert price_data["recurring"] == {"interval": "week", "interval_count": 2}
    assert created["metadata"]["subscription_id"] == str(sub.id)


# TradeSafe REST webhooks

def test_completed_payment_activates_subscription(client, db, user, product):
    sub = make_subscription(db, user, make_pet(db, user), product, next_delivery=date(2030, 1, 10))
    order = make_order(db, user, product, status="payment_pending", subscription=sub)

    res = tradesafe_webhook(client, {"orderId": str(order.id), "status": "completed", "paymentId": "pay_1",
                                     "transactionId": "tx_1"})

    assert res.status_code == 200
    assert res.json()["status"] == "paid"
    assert res.json()["subscription_id"] == sub.id

    db.expire_all()
    order = db.get(OrderModel, order.id)
    sub = db.get(SubscriptionModel, sub.id)
    assert order.status == "paid"
    assert order.paid_at is not None
    assert order.transaction_id == "tx_1"
    assert order.payment_status == "completed"
    assert sub.status == "active"
    assert sub.activated_at is not None
    assert sub.next_billing_date is not None
    assert sub.next_delivery == date(2030, 1, 10)


def test_bad_signature_changes_nothing(client, db, user, product):
    order = make_order(db, user, product, status="payment_pending")

    res = tradesafe_webhook(client, {"orderId": str(order.id), "status": "completed"}, signature="deadbeef")

    assert res.status_code == 401
    db.expire_all()
    assert db.get(OrderModel, order.id).status == "payment_pending"


def test_missing_signature(client, db, user, product):
    order = make_order(db, user, product)

    res = tradesafe_webhook(client, {"orderId": str(order.id), "status": "completed"}, signature=False)
    assert res.status_code == 400


def test_unknown_gateway_status(client, db, user, product):
    order = make_order(db, user, product)

    res = tradesafe_webhook(client, {"orderId": str(order.id), "status": "exploded"})
    assert res.status_code == 400


def test_unknown_order(client):
    res = tradesafe_webhook(client, {"orderId": "999", "status": "completed"})
    assert res.status_code == 404


def test_duplicate_delivery_is_acknowledged_once(client, db, user, product, event_guard):
    order = make_order(db, user, product, status="payment_pending")
    payload = {"orderId": str(order.id), "status": "completed", "paymentId": "pay_1"}

    first = tradesafe_webhook(client, payload)
    second = tradesafe_webhook(client, payload)

    assert first.json()["duplicate"] is False
    assert second.status_code == 200
    assert second.json()["duplicate"] is True
    assert ("tradesafe", "pay_1:completed") in event_guard.seen


def test_failed_processing_can_be_retried(client, db, user, product, event_guard):
    payload = {"orderId": "999", "status": "completed", "paymentId": "pay_9"}

    assert tradesafe_webhook(client, payload).status_code == 404
    assert event_guard.seen == set()


def test_terminal_order_ignores_late_payment(client, db, user, product):
    order = make_order(db, user, product, status="canceled")

    res = tradesafe_webhook(client, {"orderId": str(order.id), "status": "completed"})

    assert res.status_code == 200
    db.expire_all()
    stored = db.get(OrderModel, order.id)
    assert stored.status == "canceled"
    assert stored.paid_at is None


def test_paid_order_ignores_late_pending(client, db, user, product):
    order = make_order(db, user, product, status="paid")

    res = tradesafe_webhook(client, {"orderId": str(order.id), "status": "pending", "paymentId": "pay_2"})

    assert res.status_code == 200
    assert res.json()["status"] == "paid"
    db.expire_all()
    stored = db.get(OrderModel, order.id)
    assert stored.status == "paid"
    assert stored.payment_status == "pending"


def test_failed_payment_leaves_subscription_pending(client, db, user, product):
    sub = make_subscription(db, user, make_pet(db, user), product)
    order = make_order(db, user, product, status="payment_pending", subscription=sub)

    tradesafe_webhook(client, {"orderId": str(order.id), "status": "failed"})

    db.expire_all()
    assert db.get(OrderModel, order.id).status == "failed"
    assert db.get(SubscriptionModel, sub.id).status == "pending"


def test_mock_payment_status(client, db, user, product):
    order = make_order(db, user, product, provider="tradesafe", reference="mock_1_abc")

    res = client.get("/api/tradesafe/payment-status", params={"paymentId": "mock_1_abc"}, headers=auth_headers(user))

    assert res.status_code == 200
    assert res.json()["status"] == "pending"
    assert res.json()["order_id"] == order.id


def test_payment_status_is_private(client, db, user, product):
    make_order(db, user, product, provider="tradesafe", reference="mock_1_abc")
    other = make_user(db, email="other@example.com")

    res = client.get("/api/tradesafe/payment-status", params={"paymentId": "mock_1_abc"}, headers=auth_headers(other))
    assert res.status_code == 404


def test_payment_status_of_unknown_reference(client, user):
    res = client.get("/api/tradesafe/payment-status", params={"paymentId": "mock_9_nope"}, headers=auth_headers(user))

    assert res.status_code == 404
    assert res.json()["detail"] == "Payment not found"


# Stripe webhooks

def test_stripe_session_completed(client, db, user, product):
    sub = make_subscription(db, user, make_pet(db, user), product)
    order = make_order(db, user, product, subscription=sub, provider="stripe", reference="cs_test_1")

    res = stripe_webhook(client, {
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_test_1",
            "mode": "subscription",
            "status": "complete",
            "subscription": "sub_123",
            "metadata": {"order_id": str(order.id), "subscription_id": str(sub.id)},
        }},
    })

    assert res.status_code == 200
    db.expire_all()
    assert db.get(OrderModel, order.id).status == "paid"
    sub = db.get(SubscriptionModel, sub.id)
    assert sub.status == "active"
    assert sub.stripe_subscription_id == "sub_123"


def test_stripe_payment_failed(client, db, user, product):
    order = make_order(db, user, product)

    stripe_webhook(client, {
        "id": "evt_2",
        "type": "payment_intent.payment_failed",
        "data": {"object": {"id": "pi_1", "metadata": {"order_id": str(order.id)}}},
    })

    db.expire_all()
    assert db.get(OrderModel, order.id).status == "failed"


def test_stripe_unhandled_event_is_acknowledged(client):
    res = stripe_webhook(client, {"id": "evt_3", "type": "customer.created", "data": {"object": {}}})

    assert res.status_code == 200
    assert res.json()["received"] is True
    assert res.json()["order_id"] is None


def test_stripe_bad_signature(client, db, user, product):
    order = make_order(db, user, product)
    event = {
        "id": "evt_4",
        "type": "checkout.session.completed",
        "data": {"object": {"metadata": {"order_id": str(order.id)}}},
    }

    res = stripe_webhook(client, event, secret="whsec_wrong")

    assert res.status_code == 400
    db.expire_all()
    assert db.get(OrderModel, order.id).status == "pending"


def test_stripe_missing_signature(client):
    res = client.post("/api/stripe/webhook", content=b"{}", headers={"Content-Type": "application/json"})
    assert res.status_code == 400


def test_stripe_session_status(client, app, db, monkeypatch, user, product):
    order = make_order(db, user, product, status="paid", provider="stripe", reference="cs_test_7")
    app.dependency_overrides[deps.get_stripe_provider] = lambda: StripeProvider(
        api_key="sk_test_123", webhook_secret=STRIPE_WEBHOOK_SECRET
    )
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", lambda session_id: SimpleNamespace(
        id=session_id, status="complete", payment_status="paid", mode="payment"
    ))

    res = client.get("/api/stripe/status", params={"sessionId": "cs_test_7"}, headers=auth_headers(user))

    assert res.status_code == 200
    body = res.json()
    assert body["provider"] == "stripe"
    assert body["status"] == "paid"
    assert body["order_id"] == order.id
    assert body["raw"]["status"] == "complete"


def test_stripe_session_status_unknown_session(client, user):
    res = client.get("/api/stripe/status", params={"sessionId": "cs_missing"}, headers=auth_headers(user))
    assert res.status_code == 404


# TradeSafe GraphQL

class FakeGraphQLProvider(TradeSafeGraphQLProvider):
    def __init__(self):
        super().__init__(api_key="test-key", webhook_secret=TRADESAFE_WEBHOOK_SECRET, environment="test")
        self.calls = []

    def execute(self, query, variables, retry_safe=False):
        self.calls.append((query, variables))
        if "createUserToken" in query:
            return {"createUserToken": {"id": "u1", "token": f"token-{variables['input']['email']}"}}
        if "createTransaction" in query:
            return {"createTransaction": {"id": "txn_1", "state": "CREATED"}}
        if "createPaymentLink" in query:
            return {"createPaymentLink": {"id": "l1", "url": "https://pay.tradesafe.test/txn_1"}}
        return {"transaction": {"id": variables["id"], "state": "FUNDS_RECEIVED"}}


@pytest.fixture
def graphql_provider(app):
    provider = FakeGraphQLProvider()
    app.dependency_overrides[deps.get_tradesafe_graphql_provider] = lambda: provider
    return provider


def graphql_webhook(client, payload, signature="sig"):
    headers = {"Content-Type": "application/json"}
    if signature:
        headers["x-tradesafe-signature"] = signature
    return client.post("/api/tradesafe-graphql/webhook", content=json.dumps(payload).encode("utf-8"), headers=headers)


def test_graphql_checkout(client, db, graphql_provider, user, product):
    order = make_order(db, user, product)

    res = client.post("/api/tradesafe-graphql/checkout", json={"order_id": order.id}, headers=auth_headers(user))

    assert res.status_code == 200
    assert res.json()["reference"] == "txn_1"
    assert res.json()["redirect_url"] == "https://pay.tradesafe.test/txn_1"
    assert res.json()["status"] == "pending"

    transaction = next(v for q, v in graphql_provider.calls if "createTransaction" in q)["input"]
    assert transaction["value"] == 10000
    assert transaction["feeAllocation"] == "BUYER"
    assert transaction["parties"]["buyer"] == f"token-{user.email}"


def test_graphql_funded_marks_processing(client, db, graphql_provider, user, product):
    sub = make_subscription(db, user, make_pet(db, user), product)
    order = make_order(db, user, product, subscription=sub, provider="tradesafe-graphql", reference="txn_1")

    res = graphql_webhook(client, {"event": "transaction.funded", "transactionId": "txn_1"})

    assert res.status_code == 200
    db.expire_all()
    assert db.get(OrderModel, order.id).status == "processing"
    assert db.get(SubscriptionModel, sub.id).status == "active"


def test_graphql_cancelled(client, db, graphql_provider, user, product):
    order = make_order(db, user, product, provider="tradesafe-graphql", reference="txn_2")

    graphql_webhook(client, {"event": "transaction.cancelled", "transactionId": "txn_2"})

    db.expire_all()
    assert db.get(OrderModel, order.id).status == "canceled"


def test_graphql_other_events_are_acknowledged(client, graphql_provider):
    res = graphql_webhook(client, {"event": "transaction.created", "transactionId": "txn_3"})
    assert res.status_code == 200


def test_graphql_requires_signature_header(client, graphql_provider):
    res = graphql_webhook(client, {"event": "transaction.funded", "transactionId": "txn_1"}, signature=None)
    assert res.status_code == 400


def test_graphql_status_lookup(client, db, graphql_provider, user, product):
    make_order(db, user, product, provider="tradesafe-graphql", reference="txn_1")

    res = client.get("/api/tradesafe-graphql/status", params={"transactionId": "txn_1"}, headers=auth_headers(user))

    assert res.status_code == 200
    assert res.json()["status"] == "FUNDS_RECEIVED"


def test_graphql_late_funding_keeps_shipped_order(client, db, graphql_provider, user, product):
    order = make_order(db, user, product, status="shipped", provider="tradesafe-graphql", reference="txn_5")

    res = graphql_webhook(client, {"event": "transaction.funded", "transactionId": "txn_5"})

    assert res.status_code == 200
    assert res.json()["status"] == "shipped"
    db.expire_all()
    assert db.get(OrderModel, order.id).status == "shipped"


def test_graphql_state_names_are_not_events(client, db, graphql_provider, user, product):
    order = make_order(db, user, product, status="processing", provider="tradesafe-graphql", reference="txn_6")

    res = graphql_webhook(client, {"event": "declined", "transactionId": "txn_6"})

    assert res.status_code == 200
    assert res.json()["order_id"] is None
    db.expire_all()
    assert db.get(OrderModel, order.id).status == "processing"


def test_graphql_status_of_unknown_transaction(client, graphql_provider, user):
    res = client.get("/api/tradesafe-graphql/status", params={"transactionId": "txn_404"}, headers=auth_headers(user))

    assert res.status_code == 404
    assert not any("transaction(" in q for q, v in graphql_provider.calls)
