# kibbledrop/repos/user_repo.py
from sqlalchemy import select, func

from kibbledrop.data.models.user import UserModel
from kibbledrop.repos.base import BaseRepo


class UserRepo(BaseRepo):
    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def get_by_email(self, email: str) -> UserModel | None:
        return self.db.execute(
            select(UserModel).where(func.lower(UserModel.email) == email.lower())
        ).scalar_one_or_none()

    def list_users(self) -> list[UserModel]:
        return list(
            self.db.execute(select(UserModel).order_by(UserModel.created_at.desc())).scalars().all()
        )

    def count(self) -> int:
        return self.db.execute(select(func.count(UserModel.id))).scalar_one()
