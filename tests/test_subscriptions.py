from datetime import date, timedelta

import pytest

from conftest import DELIVERY, auth_headers, make_pet, make_product, make_subscription, make_user
from kibbledrop.services import notification_service


@pytest.fixture
def pet(db, user):
    return make_pet(db, user)


def create(client, user, pet, product, **overrides):
    payload = dict(
        DELIVERY,
        pet_profile_id=pet.id,
        frequency="weekly",
        items=[{"product_id": product.id, "quantity": 2}],
    )
    payload.update(overrides)
    return client.post("/api/subscription", json=payload, headers=auth_headers(user))


def test_create_starts_pending_with_computed_date(client, user, pet, product):
    res = create(client, user, pet, product)

    assert res.status_code == 201
    sub = res.json()
    assert sub["status"] == "pending"
    assert sub["pet_name"] == "Rex"
    assert sub["next_delivery"] == (date.today() + timedelta(days=7)).isoformat()
    assert sub["skipped_deliveries"] == []
    assert sub["items"][0]["quantity"] == 2


def test_create_requires_fields(client, user, pet, product):
    res = create(client, user, pet, product, delivery_phone=None, frequency=None)

    assert res.status_code == 400
    assert "delivery_phone" in res.json()["detail"]
    assert "frequency" in res.json()["detail"]


def test_create_rejects_unknown_frequency(client, user, pet, product):
    assert create(client, user, pet, product, frequency="daily").status_code == 400


def test_create_needs_items(client, user, pet, product):
    assert create(client, user, pet, product, items=[]).status_code == 400


def test_create_for_someone_elses_pet(client, db, user, product):
    other = make_user(db, email="other@example.com")
    their_pet = make_pet(db, other, name="Whiskers", type="cat")

    assert create(client, user, their_pet, product).status_code == 404


def test_skip_delivery(client, user, pet, product):
    sub = create(client, user, pet, product, next_delivery="2030-01-10").json()

    res = client.post(f"/api/subscription/{sub['id']}/skip", headers=auth_headers(user))

    assert res.status_code == 200
    assert res.json()["next_delivery"] == "2030-01-17"
    assert res.json()["skipped_deliveries"] == ["2030-01-10"]

    res = client.post(f"/api/subscription/{sub['id']}/skip", headers=auth_headers(user))
    assert res.json()["next_delivery"] == "2030-01-24"
    assert res.json()["skipped_deliveries"] == ["2030-01-10", "2030-01-17"]


def test_skip_canceled_subscription(client, db, user, pet, product):
    sub = make_subscription(db, user, pet, product, status="canceled")

    res = client.post(f"/api/subscription/{sub.id}/skip", headers=auth_headers(user))
    assert res.status_code == 400


def test_frequency_change_counts_from_today(client, user, pet, product):
    sub = create(client, user, pet, product, frequency="monthly", next_delivery="2030-01-10").json()

    res = client.put(f"/api/subscription/{sub['id']}", json={"frequency": "weekly"}, headers=auth_headers(user))

    assert res.status_code == 200
    assert res.json()["frequency"] == "weekly"
    assert res.json()["next_delivery"] == (date.today() + timedelta(days=7)).isoformat()


def test_explicit_date_wins_over_frequency_change(client, user, pet, product):
    sub = create(client, user, pet, product).json()

    res = client.put(
        f"/api/subscription/{sub['id']}",
        json={"frequency": "bi-weekly", "next_delivery": "2031-05-01"},
        headers=auth_headers(user),
    )

    assert res.json()["frequency"] == "bi-weekly"
    assert res.json()["next_delivery"] == "2031-05-01"


def test_same_frequency_keeps_date(client, user, pet, product):
    sub = create(client, user, pet, product, next_delivery="2030-01-10").json()

    res = client.put(f"/api/subscription/{sub['id']}", json={"frequency": "weekly"}, headers=auth_headers(user))
    assert res.json()["next_delivery"] == "2030-01-10"


def test_invalid_status_update(client, user, pet, product):
    sub = create(client, user, pet, product).json()

    res = client.put(f"/api/subscription/{sub['id']}", json={"status": "paused"}, headers=auth_headers(user))
    assert res.status_code == 400


def test_cancel_is_stored_as_canceled(client, user, pet, product):
    sub = create(client, user, pet, product).json()

    res = client.put(f"/api/subscription/{sub['id']}", json={"status": "cancelled"}, headers=auth_headers(user))
    assert res.json()["status"] == "canceled"


def test_manual_activation_keeps_future_delivery(client, user, pet, product):
    sub = create(client, user, pet, product, next_delivery="2030-01-10").json()

    res = client.post("/api/subscription/activate", json={"subscription_id": sub["id"]}, headers=auth_headers(user))

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "active"
    assert body["activated_at"] is not None
    assert body["next_billing_date"] is not None
    assert body["next_delivery"] == "2030-01-10"


def test_activation_moves_past_delivery_forward(client, db, user, pet, product):
    sub = make_subscription(db, user, pet, product, next_delivery=date(2020, 1, 1))

    res = client.post("/api/subscription/activate", json={"subscription_id": sub.id}, headers=auth_headers(user))
    assert res.json()["next_delivery"] == (date.today() + timedelta(days=7)).isoformat()


def test_canceled_subscription_cannot_be_activated(client, db, user, pet, product):
    sub = make_subscription(db, user, pet, product, status="canceled")

    res = client.post("/api/subscription/activate", json={"subscription_id": sub.id}, headers=auth_headers(user))
    assert res.status_code == 400


def test_activate_without_subscription_id(client, user):
    res = client.post("/api/subscription/activate", json={}, headers=auth_headers(user))

    assert res.status_code == 400
    assert res.json()["detail"][0]["type"] == "missing"


def test_replace_items(client, db, user, pet, product):
    sub = create(client, user, pet, product).json()
    treats = make_product(db, name="Dental Treats", price="45.00", category="treats")

    res = client.put(
        f"/api/subscription/{sub['id']}/items",
        json={"items": [{"product_id": treats.id, "quantity": 4}]},
        headers=auth_headers(user),
    )

    assert res.status_code == 200
    assert [(i["product_id"], i["quantity"]) for i in res.json()["items"]] == [(treats.id, 4)]


def test_replace_items_with_unknown_product_keeps_old_items(client, user, pet, product):
    sub = create(client, user, pet, product).json()

    res = client.put(
        f"/api/subscription/{sub['id']}/items",
        json={"items": [{"product_id": 999, "quantity": 1}]},
        headers=auth_headers(user),
    )
    assert res.status_code == 404

    items = client.get(f"/api/subscription/{sub['id']}", headers=auth_headers(user)).json()["items"]
    assert [i["product_id"] for i in items] == [product.id]


def test_subscriptions_are_private(client, db, user, pet, product):
    sub = create(client, user, pet, product).json()
    other = make_user(db, email="other@example.com")
    headers = auth_headers(other)

    assert client.get(f"/api/subscription/{sub['id']}", headers=headers).status_code == 404
    assert client.put(f"/api/subscription/{sub['id']}", json={"status": "canceled"}, headers=headers).status_code == 404
    assert client.delete(f"/api/subscription/{sub['id']}", headers=headers).status_code == 404
    assert client.get("/api/subscription", headers=headers).json() == []


def test_delete_subscription(client, user, pet, product):
    sub = create(client, user, pet, product).json()
    headers = auth_headers(user)

    assert client.delete(f"/api/subscription/{sub['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/subscription/{sub['id']}", headers=headers).status_code == 404


def test_broken_mail_queue_does_not_undo_status_change(client, monkeypatch, user, pet, product):
    sub = create(client, user, pet, product).json()

    def boom(*args, **kwargs):
        raise ConnectionError("broker down")

    monkeypatch.setattr(notification_service.send_subscription_status_task, "delay", boom)

    res = client.put(f"/api/subscription/{sub['id']}", json={"status": "canceled"}, headers=auth_headers(user))

    assert res.status_code == 200
    assert res.json()["status"] == "canceled"
