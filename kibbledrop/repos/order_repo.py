# kibbledrop/repos/order_repo.py
from decimal import Decimal
from sqlalchemy import select, func

from kibbledrop.data.models.order import OrderModel
from kibbledrop.domain.statuses import PAID_STATUSES
from kibbledrop.repos.base import BaseRepo


class OrderRepo(BaseRepo):
    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_by_reference(self, provider: str, reference: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(
                OrderModel.payment_provider == provider,
                OrderModel.payment_reference == reference,
            )
            .order_by(OrderModel.id.desc())
        ).scalars().first()

    def list_for_user(self, user_id: int, limit: int | None = None) -> list[OrderModel]:
        stmt = (
            select(OrderModel)
            .where(OrderModel.user_id == user_id)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def list_orders(self, status: str | None = None) -> list[OrderModel]:
        stmt = select(OrderModel)
        if status:
            stmt = stmt.where(OrderModel.status == status)
        stmt = stmt.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        return list(self.db.execute(stmt).scalars().all())

    def count_for_user(self, user_id: int) -> int:
        return self.db.execute(
            select(func.count(OrderModel.id)).where(OrderModel.user_id == user_id)
        ).scalar_one()

    def count_by_status(self) -> dict[str, int]:
        rows = self.db.execute(
            select(OrderModel.status, func.count(OrderModel.id)).group_by(OrderModel.status)
        ).all()
        return {status: count for status, count in rows}

    def revenue(self) -> Decimal:
        value = self.db.execute(
            select(func.coalesce(func.sum(OrderModel.total), 0)).where(
                OrderModel.status.in_(PAID_STATUSES)
            )
        ).scalar_one()
        return Decimal(str(value))
