# kibbledrop/repos/subscription_repo.py
from datetime import date
from sqlalchemy import select, func

from kibbledrop.data.models.subscription import SubscriptionModel
from kibbledrop.domain.statuses import SUB_ACTIVE
from kibbledrop.repos.base import BaseRepo


class SubscriptionRepo(BaseRepo):
    def get_subscription(self, subscription_id: int) -> SubscriptionModel | None:
        return self.db.get(SubscriptionModel, subscription_id)

    def list_for_user(self, user_id: int) -> list[SubscriptionModel]:
        return list(
            self.db.execute(
                select(SubscriptionModel)
                .where(SubscriptionModel.user_id == user_id)
                .order_by(SubscriptionModel.created_at.desc(), SubscriptionModel.id.desc())
            ).scalars().all()
        )

    def count_by_status(self, status: str, user_id: int | None = None) -> int:
        stmt = select(func.count(SubscriptionModel.id)).where(SubscriptionModel.status == status)
        if user_id is not None:
            stmt = stmt.where(SubscriptionModel.user_id == user_id)
        return self.db.execute(stmt).scalar_one()

    def count_for_pet(self, pet_profile_id: int) -> int:
        return self.db.execute(
            select(func.count(SubscriptionModel.id)).where(
                SubscriptionModel.pet_profile_id == pet_profile_id
            )
        ).scalar_one()

    def active_due_on(self, day: date) -> list[SubscriptionModel]:
        return list(
            self.db.execute(
                select(SubscriptionModel).where(
                    SubscriptionModel.status == SUB_ACTIVE,
                    SubscriptionModel.next_delivery == day,
                )
            ).scalars().all()
        )

    def list_for_pet(self, pet_profile_id: int) -> list[SubscriptionModel]:
        return list(
            self.db.execute(
                select(SubscriptionModel).where(SubscriptionModel.pet_profile_id == pet_profile_id)
            ).scalars().all()
        )
