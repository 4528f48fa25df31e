# kibbledrop/services/subscription_service.py
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable
from sqlalchemy.orm import Session

from kibbledrop.data.models.subscription import SubscriptionModel, SubscriptionItemModel
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain import scheduling, statuses
from kibbledrop.domain.errors import NotFoundError
from kibbledrop.domain.schemas import SubscriptionCreate, SubscriptionUpdate, SubscriptionItemIn
from kibbledrop.repos.subscription_repo import SubscriptionRepo
from kibbledrop.repos.pet_repo import PetRepo
from kibbledrop.repos.product_repo import ProductRepo
from kibbledrop.services.notification_service import NotificationService
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

DELIVERY_FIELDS = ("delivery_name", "delivery_phone", "delivery_address", "city", "postal_code")
BILLING_PERIOD = timedelta(days=30)


def activate_subscription(subscription: SubscriptionModel, today: date | None = None):
    """pending -> active: stamps billing dates and makes sure a future delivery is scheduled."""
    now = datetime.now(timezone.utc)
    today = today or now.date()

    subscription.status = statuses.SUB_ACTIVE
    subscription.activated_at = now
    subscription.next_billing_date = now + BILLING_PERIOD
    if subscription.next_delivery is None or subscription.next_delivery < today:
        subscription.next_delivery = scheduling.advance(today, subscription.frequency)


def item_names(subscription: SubscriptionModel) -> list[str]:
    return [f"{i.quantity} x {i.product.name}" for i in subscription.items if i.product]


def notify_status(notifier: NotificationService, subscription: SubscriptionModel):
    user = subscription.user
    notifier.send_subscription_status(
        user.email,
        user.name,
        subscription.id,
        subscription.status,
        item_names(subscription),
        subscription.next_delivery.isoformat() if subscription.next_delivery else None,
    )


class SubscriptionService:
    """
    Recurring deliveries.

    next_delivery is bookkeeping only: it moves forward on create, skip,
    frequency change and activation, nothing here dispatches a delivery.
    Status changes and item replacements send an email after the commit;
    a failure there is logged and does not undo the change.
    """

    def __init__(self, db: Session, today: Callable[[], date] = date.today):
        self.repo = SubscriptionRepo(db)
        self.pets = PetRepo(db)
        self.products = ProductRepo(db)
        self.notification_service = NotificationService()
        self.today = today

    def list_subscriptions(self, user: UserModel) -> list[dict]:
        return [self.view(s) for s in self.repo.list_for_user(user.id)]

    def get_subscription(self, user: UserModel, subscription_id: int) -> SubscriptionModel:
        subscription = self.repo.get_subscription(subscription_id)
        if not subscription or subscription.user_id != user.id:
            raise NotFoundError("Subscription not found")
        return subscription

    def create_subscription(self, user: UserModel, payload: SubscriptionCreate) -> SubscriptionModel:
        missing = [f for f in ("pet_profile_id", "frequency") + DELIVERY_FIELDS if not getattr(payload, f)]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")
        self._check_frequency(payload.frequency)
        if not payload.items:
            raise ValueError("Subscription must contain at least one item")

        pet = self.pets.get_pet(payload.pet_profile_id)
        if not pet or pet.user_id != user.id:
            raise NotFoundError("Pet profile not found")

        subscription = SubscriptionModel(
            user_id=user.id,
            pet_profile_id=pet.id,
            frequency=payload.frequency,
            status=statuses.SUB_PENDING,
            next_delivery=payload.next_delivery or scheduling.advance(self.today(), payload.frequency),
            skipped_deliveries=[],
            instructions=payload.instructions,
            **{f: getattr(payload, f) for f in DELIVERY_FIELDS},
        )
        subscription.items = self._build_items(payload.items)

        try:
            self.repo.add(subscription)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        self.repo.refresh(subscription)
        logger.info(
            f"Subscription {subscription.id} created for user {user.id} "
            f"({subscription.frequency}, next delivery {subscription.next_delivery})"
        )

        self.notification_service.send_subscription_confirmation(
            user.email,
            user.name,
            subscription.id,
            subscription.frequency,
            item_names(subscription),
            subscription.next_delivery.isoformat(),
        )
        return subscription

    def update_subscription(self, user: UserModel, subscription_id: int, payload: SubscriptionUpdate) -> SubscriptionModel:
        subscription = self.get_subscription(user, subscription_id)
        previous_status = subscription.status
        data = payload.model_dump(exclude_unset=True)

        frequency = data.pop("frequency", None)
        if frequency and frequency != subscription.frequency:
            self._check_frequency(frequency)
            subscription.frequency = frequency
            subscription.next_delivery = scheduling.reschedule_for_frequency(frequency, self.today())
            logger.info(f"Subscription {subscription.id} frequency -> {frequency}, next delivery {subscription.next_delivery}")

        # an explicit date always wins over the computed one
        custom_date = data.pop("next_delivery", None)
        if custom_date is not None:
            subscription.next_delivery = custom_date

        status = data.pop("status", None)
        if status is not None:
            status = statuses.normalize(status)
            if status not in statuses.SUBSCRIPTION_STATUSES:
                raise ValueError(f"Invalid status, expected one of {', '.join(statuses.SUBSCRIPTION_STATUSES)}")
            if status == statuses.SUB_ACTIVE and previous_status == statuses.SUB_PENDING:
                activate_subscription(subscription, self.today())
            else:
                subscription.status = status

        for field, value in data.items():
            if field in DELIVERY_FIELDS and not value:
                raise ValueError(f"{field} cannot be empty")
            setattr(subscription, field, value)

        self.repo.commit()
        self.repo.refresh(subscription)

        if subscription.status != previous_status:
            logger.info(f"Subscription {subscription.id} status {previous_status} -> {subscription.status}")
            notify_status(self.notification_service, subscription)
        return subscription

    def skip_delivery(self, user: UserModel, subscription_id: int) -> SubscriptionModel:
        subscription = self.get_subscription(user, subscription_id)
        if subscription.status == statuses.SUB_CANCELED:
            raise ValueError("Cannot skip a delivery of a canceled subscription")
        if subscription.next_delivery is None:
            raise ValueError("Subscription has no scheduled delivery")

        skipped_date = subscription.next_delivery
        subscription.next_delivery, subscription.skipped_deliveries = scheduling.skip(
            skipped_date, subscription.skipped_deliveries, subscription.frequency
        )
        self.repo.commit()
        self.repo.refresh(subscription)

        logger.info(f"Subscription {subscription.id} skipped {skipped_date}, next delivery {subscription.next_delivery}")
        return subscription

    def replace_items(self, user: UserModel, subscription_id: int, items: list[SubscriptionItemIn]) -> SubscriptionModel:
        subscription = self.get_subscription(user, subscription_id)
        if not items:
            raise ValueError("Subscription must contain at least one item")

        try:
            subscription.items = self._build_items(items)
            self.repo.db.flush()
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        self.repo.refresh(subscription)
        logger.info(f"Subscription {subscription.id} items replaced ({len(subscription.items)})")
        notify_status(self.notification_service, subscription)
        return subscription

    def activate(self, user: UserModel, subscription_id: int) -> SubscriptionModel:
        subscription = self.get_subscription(user, subscription_id)
        if subscription.status == statuses.SUB_ACTIVE:
            return subscription
        if subscription.status != statuses.SUB_PENDING:
            raise ValueError(f"Subscription with status '{subscription.status}' cannot be activated")

        activate_subscription(subscription, self.today())
        self.repo.commit()
        self.repo.refresh(subscription)

        logger.info(f"Subscription {subscription.id} activated")
        notify_status(self.notification_service, subscription)
        return subscription

    def delete_subscription(self, user: UserModel, subscription_id: int):
        subscription = self.get_subscription(user, subscription_id)
        self.repo.delete(subscription)
        self.repo.commit()
        logger.info(f"Subscription {subscription_id} deleted by user {user.id}")

    @staticmethod
    def view(subscription: SubscriptionModel) -> dict:
        items = []
        total = Decimal("0.00")
        for i in subscription.items:
            price = Decimal(i.product.price)
            total += price * i.quantity
            items.append(
                {"id": i.id, "product_id": i.product_id, "name": i.product.name, "price": price, "quantity": i.quantity}
            )

        view = {c: getattr(subscription, c) for c in (
            "id", "user_id", "pet_profile_id", "frequency", "status", "next_delivery",
            "delivery_name", "delivery_phone", "delivery_address", "city", "postal_code",
            "instructions", "stripe_subscription_id", "activated_at", "next_billing_date", "created_at",
        )}
        view.update(
            pet_name=subscription.pet_profile.name if subscription.pet_profile else None,
            skipped_deliveries=list(subscription.skipped_deliveries or []),
            items=items,
            total=total,
        )
        return view

    @staticmethod
    def _check_frequency(frequency: str):
        if frequency not in scheduling.FREQUENCIES:
            raise ValueError(f"Invalid frequency, expected one of {', '.join(scheduling.FREQUENCIES)}")

    def _build_items(self, items: list[SubscriptionItemIn]) -> list[SubscriptionItemModel]:
        products = self.products.get_many(i.product_id for i in items)
        missing = [i.product_id for i in items if i.product_id not in products]
        if missing:
            raise NotFoundError(f"Product {missing[0]} not found")
        return [SubscriptionItemModel(product_id=i.product_id, quantity=i.quantity) for i in items]
