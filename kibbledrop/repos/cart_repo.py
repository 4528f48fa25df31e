# kibbledrop/repos/cart_repo.py
from sqlalchemy import select

from kibbledrop.data.models.cart import CartModel
from kibbledrop.data.models.cart_item import CartItemModel
from kibbledrop.repos.base import BaseRepo


class CartRepo(BaseRepo):
    def get_cart_by_user(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    def get_cart_items(self, cart_id: int) -> list[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel).where(CartItemModel.cart_id == cart_id).order_by(CartItemModel.id)
            ).scalars().all()
        )

    def get_cart_item(self, cart_id: int, product_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def get_item(self, item_id: int) -> CartItemModel | None:
        return self.db.get(CartItemModel, item_id)

    def clear(self, cart_id: int) -> int:
        items = self.get_cart_items(cart_id)
        for item in items:
            self.db.delete(item)
        self.db.flush()
        return len(items)
