# kibbledrop/services/cart_service.py
from decimal import Decimal
from typing import Dict, Any
from sqlalchemy.orm import Session

from kibbledrop.data.models.cart import CartModel
from kibbledrop.data.models.cart_item import CartItemModel
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.errors import NotFoundError
from kibbledrop.repos.cart_repo import CartRepo
from kibbledrop.repos.product_repo import ProductRepo
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

EMPTY_CART = {"items": [], "total": Decimal("0.00")}


class CartService:
    """
    Per-user cart.
    commands (add, update, remove, clear) change state and return the fresh view,
    get is read-only apart from creating the cart on first use.
    Totals always use the live product price.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    #query
    def get_cart(self, user: UserModel | None) -> Dict[str, Any]:
        if user is None:
            return dict(EMPTY_CART, items=[])

        cart = self._get_or_create(user.id)
        self.repo.commit()
        return self._view(cart)

    #commands
    def add_item(self, user: UserModel, product_id: int, quantity: int = 1) -> Dict[str, Any]:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        product = self.products.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")

        cart = self._get_or_create(user.id)
        existing = self.repo.get_cart_item(cart.id, product_id)

        if existing:
            logger.info(
                f"Product {product_id} already in cart {cart.id}, "
                f"quantity {existing.quantity} -> {existing.quantity + quantity}"
            )
            existing.quantity += quantity
        else:
            logger.info(f"Adding product {product_id} x{quantity} to cart {cart.id}")
            self.repo.add(CartItemModel(cart_id=cart.id, product_id=product_id, quantity=quantity))

        self.repo.commit()
        return self._view(cart)

    def update_item(self, user: UserModel, item_id: int, quantity: int) -> Dict[str, Any]:
        if quantity < 0:
            raise ValueError("Quantity cannot be negative")

        cart = self._get_or_create(user.id)
        item = self._owned_item(cart, item_id)

        if quantity == 0:
            logger.info(f"Quantity 0, removing item {item_id} from cart {cart.id}")
            self.repo.delete(item)
        else:
            item.quantity = quantity

        self.repo.commit()
        return self._view(cart)

    def remove_item(self, user: UserModel, item_id: int) -> Dict[str, Any]:
        cart = self._get_or_create(user.id)
        item = self._owned_item(cart, item_id)

        logger.info(f"Removing item {item_id} from cart {cart.id}")
        self.repo.delete(item)
        self.repo.commit()
        return self._view(cart)

    def clear(self, user: UserModel) -> Dict[str, Any]:
        cart = self._get_or_create(user.id)
        removed = self.repo.clear(cart.id)
        self.repo.commit()
        logger.info(f"Cart {cart.id} cleared ({removed} lines)")
        return self._view(cart)

    def _get_or_create(self, user_id: int) -> CartModel:
        cart = self.repo.get_cart_by_user(user_id)
        if cart is None:
            cart = self.repo.add(CartModel(user_id=user_id))
            logger.info(f"Created cart {cart.id} for user {user_id}")
        return cart

    def _owned_item(self, cart: CartModel, item_id: int) -> CartItemModel:
        item = self.repo.get_item(item_id)
        if not item or item.cart_id != cart.id:
            raise NotFoundError("Cart item not found")
        return item

    def _view(self, cart: CartModel) -> Dict[str, Any]:
        lines = []
        total = Decimal("0.00")
        for item in self.repo.get_cart_items(cart.id):
            product = item.product
            price = Decimal(product.price)
            total += price * item.quantity
            lines.append(
                {
                    "id": item.id,
                    "product_id": product.id,
                    "name": product.name,
                    "price": price,
                    "quantity": item.quantity,
                    "image": product.image,
                    "category": product.category,
                    "pet_type": product.pet_type,
                }
            )
        return {"items": lines, "total": total}
