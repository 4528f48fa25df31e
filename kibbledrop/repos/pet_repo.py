# kibbledrop/repos/pet_repo.py
from sqlalchemy import select, func

from kibbledrop.data.models.pet import PetProfileModel
from kibbledrop.repos.base import BaseRepo


class PetRepo(BaseRepo):
    def get_pet(self, pet_id: int) -> PetProfileModel | None:
        return self.db.get(PetProfileModel, pet_id)

    def list_for_user(self, user_id: int) -> list[PetProfileModel]:
        return list(
            self.db.execute(
                select(PetProfileModel)
                .where(PetProfileModel.user_id == user_id)
                .order_by(PetProfileModel.id)
            ).scalars().all()
        )

    def count_for_user(self, user_id: int) -> int:
        return self.db.execute(
            select(func.count(PetProfileModel.id)).where(PetProfileModel.user_id == user_id)
        ).scalar_one()
