# kibbledrop/repos/product_repo.py
from sqlalchemy import select, update, delete, func

from kibbledrop.data.models.product import ProductModel, WeightVariantModel
from kibbledrop.data.models.cart_item import CartItemModel
from kibbledrop.data.models.order import OrderItemModel
from kibbledrop.data.models.subscription import SubscriptionModel, SubscriptionItemModel
from kibbledrop.domain.statuses import SUB_CANCELED
from kibbledrop.repos.base import BaseRepo


class ProductRepo(BaseRepo):
    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_many(self, product_ids) -> dict[int, ProductModel]:
        ids = set(product_ids)
        if not ids:
            return {}
        rows = self.db.execute(select(ProductModel).where(ProductModel.id.in_(ids))).scalars().all()
        return {p.id: p for p in rows}

    def list_products(
        self,
        pet_type: str | None = None,
        category: str | None = None,
        featured: bool | None = None,
    ) -> list[ProductModel]:
        stmt = select(ProductModel)
        if pet_type:
            stmt = stmt.where(ProductModel.pet_type == pet_type)
        if category:
            stmt = stmt.where(ProductModel.category == category)
        if featured is not None:
            stmt = stmt.where(ProductModel.featured == featured)
        stmt = stmt.order_by(ProductModel.created_at.desc(), ProductModel.id.desc())
        return list(self.db.execute(stmt).scalars().all())

    def get_variant(self, product_id: int, weight: str) -> WeightVariantModel | None:
        return self.db.execute(
            select(WeightVariantModel).where(
                WeightVariantModel.product_id == product_id,
                WeightVariantModel.weight == weight,
            )
        ).scalar_one_or_none()

    def subscription_reference_count(self, product_id: int) -> int:
        """Items of subscriptions that are still pending or active."""
        return self.db.execute(
            select(func.count(SubscriptionItemModel.id))
            .join(SubscriptionModel, SubscriptionItemModel.subscription_id == SubscriptionModel.id)
            .where(
                SubscriptionItemModel.product_id == product_id,
                SubscriptionModel.status != SUB_CANCELED,
            )
        ).scalar_one()

    def detach_product(self, product_id: int):
        # canceled subscriptions and carts lose the line, order history keeps its snapshot
        canceled_items = select(SubscriptionItemModel.id).join(
            SubscriptionModel, SubscriptionItemModel.subscription_id == SubscriptionModel.id
        ).where(
            SubscriptionItemModel.product_id == product_id,
            SubscriptionModel.status == SUB_CANCELED,
        )
        self.db.execute(
            delete(SubscriptionItemModel)
            .where(SubscriptionItemModel.id.in_(canceled_items))
            .execution_options(synchronize_session=False)
        )
        self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.product_id == product_id)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(
            update(OrderItemModel)
            .where(OrderItemModel.product_id == product_id)
            .values(product_id=None)
            .execution_options(synchronize_session=False)
        )

    def count(self) -> int:
        return self.db.execute(select(func.count(ProductModel.id))).scalar_one()
