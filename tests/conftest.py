import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RESEND_API_KEY"] = ""
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="kibbledrop-uploads-")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kibbledrop.celery_worker import celery_app
from kibbledrop.api import create_app
from kibbledrop.api import deps
from kibbledrop.data.database import Base, get_db, make_engine
from kibbledrop.data.models import (
    UserModel,
    ProductModel,
    WeightVariantModel,
    PetProfileModel,
    SubscriptionModel,
    SubscriptionItemModel,
)
from kibbledrop.services.auth_service import create_access_token, hash_password
from kibbledrop.services.payments.stripe_provider import StripeProvider
from kibbledrop.services.payments.tradesafe_provider import TradeSafeProvider

celery_app.conf.task_always_eager = True

STRIPE_WEBHOOK_SECRET = "whsec_test_secret"
TRADESAFE_WEBHOOK_SECRET = "tradesafe-test-secret"


class FakeEventGuard:
    def __init__(self):
        self.seen = set()

    def first_delivery(self, provider, event_id):
        key = (provider, event_id)
        if key in self.seen:
            return False
        self.seen.add(key)
        return True

    def forget(self, provider, event_id):
        self.seen.discard((provider, event_id))


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def event_guard():
    return FakeEventGuard()


@pytest.fixture
def stripe_provider():
    return StripeProvider(api_key="", webhook_secret=STRIPE_WEBHOOK_SECRET)


@pytest.fixture
def tradesafe_provider():
    return TradeSafeProvider(
        client_id="",
        client_secret="",
        webhook_secret=TRADESAFE_WEBHOOK_SECRET,
        environment="development",
    )


@pytest.fixture
def app(session_factory, event_guard, stripe_provider, tradesafe_provider):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_event_guard] = lambda: event_guard
    app.dependency_overrides[deps.get_stripe_provider] = lambda: stripe_provider
    app.dependency_overrides[deps.get_tradesafe_provider] = lambda: tradesafe_provider
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


# helpers

def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email, user.role)}"}


def make_user(db, email="owner@example.com", role="customer", password="Secret123", name="Pet Owner"):
    user = UserModel(email=email, name=name, password_hash=hash_password(password), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_product(db, name="Chicken Kibble", price="100.00", pet_type="dog", category="dry-food", variants=()):
    product = ProductModel(
        name=name,
        description=f"{name} description",
        price=Decimal(price),
        category=category,
        pet_type=pet_type,
    )
    product.variants = [WeightVariantModel(weight=w, price=Decimal(p)) for w, p in variants]
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def make_pet(db, user, name="Rex", type="dog"):
    pet = PetProfileModel(user_id=user.id, name=name, type=type, health_tags=[])
    db.add(pet)
    db.commit()
    db.refresh(pet)
    return pet


def make_subscription(db, user, pet, product, status="pending", frequency="weekly", next_delivery=None):
    sub = SubscriptionModel(
        user_id=user.id,
        pet_profile_id=pet.id,
        frequency=frequency,
        status=status,
        next_delivery=next_delivery or date(2030, 1, 10),
        skipped_deliveries=[],
        delivery_name="Pet Owner",
        delivery_phone="0820000000",
        delivery_address="1 Main Road",
        city="Cape Town",
        postal_code="8001",
    )
    sub.items = [SubscriptionItemModel(product_id=product.id, quantity=1)]
    db.add(sub)
    db.commit()
    db.refresh(sub)
    return sub


DELIVERY = {
    "delivery_name": "Pet Owner",
    "delivery_phone": "0820000000",
    "delivery_address": "1 Main Road",
    "city": "Cape Town",
    "postal_code": "8001",
}


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def admin(db):
    return make_user(db, email="admin@kibbledrop.com", role="admin", name="Admin")


@pytest.fixture
def product(db):
    return make_product(db)
