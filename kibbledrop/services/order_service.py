# kibbledrop/services/order_service.py
from decimal import Decimal
from sqlalchemy.orm import Session

from kibbledrop.data.models.order import OrderModel, OrderItemModel
from kibbledrop.data.models.subscription import SubscriptionModel
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain import statuses
from kibbledrop.domain.errors import NotFoundError
from kibbledrop.domain.schemas import OrderCreate, AdminOrderUpdate
from kibbledrop.repos.order_repo import OrderRepo
from kibbledrop.repos.cart_repo import CartRepo
from kibbledrop.repos.product_repo import ProductRepo
from kibbledrop.services.notification_service import NotificationService
from kibbledrop.utils.settings import EXPRESS_SHIPPING_FEE
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

DELIVERY_FIELDS = ("delivery_name", "delivery_phone", "delivery_address", "city", "postal_code")
DELIVERY_METHODS = ("standard", "express")
DEFAULT_CANCEL_REASON = "Order canceled by admin"


def shipping_for(method: str) -> Decimal:
    return EXPRESS_SHIPPING_FEE if method == "express" else Decimal("0.00")


def order_email_payload(order: OrderModel) -> dict:
    """Plain JSON for the celery task."""
    return {
        "id": order.id,
        "customer_name": order.delivery_name or (order.user.name if order.user else None),
        "items": [
            {"name": i.product_name, "quantity": i.quantity, "price": str(i.price)}
            for i in order.items
        ],
        "subtotal": str(order.subtotal),
        "shipping": str(order.shipping),
        "total": str(order.total),
    }


class OrderService:
    """
    One-time orders.

    Unit prices are copied from the catalog when the order is created, so
    later price changes never touch existing orders. The order row and its
    items are written in one commit.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)
        self.carts = CartRepo(db)
        self.products = ProductRepo(db)
        self.notification_service = NotificationService()

    def create_order(self, user: UserModel, payload: OrderCreate) -> OrderModel:
        """
        Use Case: place an order.

        1. items come from the payload or, when omitted, from the user's cart
        2. prices are snapshotted from the product (or the chosen weight variant)
        3. order + items (+ cart clear) commit together
        4. confirmation email is queued
        """
        missing = [f for f in DELIVERY_FIELDS if not getattr(payload, f)]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")
        if payload.delivery_method not in DELIVERY_METHODS:
            raise ValueError(f"Invalid delivery method, expected one of {', '.join(DELIVERY_METHODS)}")

        cart = None
        if payload.items is None:
            cart = self.carts.get_cart_by_user(user.id)
            lines = [
                {"product_id": i.product_id, "quantity": i.quantity, "weight": None}
                for i in (self.carts.get_cart_items(cart.id) if cart else [])
            ]
        else:
            lines = [i.model_dump() for i in payload.items]

        if not lines:
            raise ValueError("Order must contain at least one item")

        items = [self._priced_item(line) for line in lines]
        subtotal = sum((i.price * i.quantity for i in items), Decimal("0.00"))
        shipping = shipping_for(payload.delivery_method)

        order = OrderModel(
            user_id=user.id,
            status=statuses.PENDING,
            subtotal=subtotal,
            shipping=shipping,
            total=subtotal + shipping,
            delivery_method=payload.delivery_method,
            instructions=payload.instructions,
            **{f: getattr(payload, f) for f in DELIVERY_FIELDS},
        )
        order.items = items

        try:
            self.repo.add(order)
            if cart is not None:
                self.carts.clear(cart.id)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        self.repo.refresh(order)
        logger.info(f"Order {order.id} created for user {user.id}, total {order.total}")

        self.notification_service.send_order_confirmation(user.email, order_email_payload(order))
        return order

    def create_subscription_order(self, subscription: SubscriptionModel) -> OrderModel:
        """Payment order for a subscription, priced live from its items."""
        items = [
            self._priced_item({"product_id": i.product_id, "quantity": i.quantity, "weight": None})
            for i in subscription.items
        ]
        if not items:
            raise ValueError("Subscription has no items")

        subtotal = sum((i.price * i.quantity for i in items), Decimal("0.00"))
        order = OrderModel(
            user_id=subscription.user_id,
            subscription_id=subscription.id,
            status=statuses.PENDING,
            subtotal=subtotal,
            shipping=Decimal("0.00"),
            total=subtotal,
            delivery_method="standard",
            instructions=subscription.instructions,
            **{f: getattr(subscription, f) for f in DELIVERY_FIELDS},
        )
        order.items = items

        try:
            self.repo.add(order)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        self.repo.refresh(order)
        logger.info(f"Order {order.id} created for subscription {subscription.id}")
        return order

    def list_orders(self, user: UserModel) -> list[OrderModel]:
        return self.repo.list_for_user(user.id)

    def get_order(self, user: UserModel, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order or order.user_id != user.id:
            raise NotFoundError("Order not found")
        return order

    # admin

    def admin_list(self, status: str | None = None) -> list[OrderModel]:
        return self.repo.list_orders(statuses.normalize(status) if status else None)

    def admin_get(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def admin_update(self, order_id: int, payload: AdminOrderUpdate) -> OrderModel:
        order = self.admin_get(order_id)
        previous = order.status

        if payload.status is not None:
            status = statuses.normalize(payload.status)
            if status not in statuses.ORDER_STATUSES:
                raise ValueError(f"Invalid status, expected one of {', '.join(statuses.ORDER_STATUSES)}")
            order.status = status
        if payload.tracking_number is not None:
            order.tracking_number = payload.tracking_number
        if payload.estimated_delivery is not None:
            order.estimated_delivery = payload.estimated_delivery

        self.repo.commit()
        self.repo.refresh(order)
        logger.info(f"Admin updated order {order.id}: {previous} -> {order.status}")

        if order.status != previous:
            self.notification_service.send_order_status(
                order.user.email, order.user.name, order.id, order.status, order.tracking_number
            )
        return order

    def admin_cancel(self, order_id: int, reason: str | None = None) -> OrderModel:
        order = self.admin_get(order_id)
        if not statuses.is_cancellable(order.status):
            raise ValueError(f"Order with status '{order.status}' cannot be canceled")

        order.status = statuses.CANCELED
        order.cancel_reason = reason or DEFAULT_CANCEL_REASON
        self.repo.commit()
        self.repo.refresh(order)
        logger.info(f"Admin canceled order {order.id}: {order.cancel_reason}")

        self.notification_service.send_order_status(
            order.user.email, order.user.name, order.id, order.status, reason=order.cancel_reason
        )
        return order

    def _priced_item(self, line: dict) -> OrderItemModel:
        product = self.products.get_product(line["product_id"])
        if not product:
            raise NotFoundError(f"Product {line['product_id']} not found")
        if line["quantity"] < 1:
            raise ValueError("Quantity must be at least 1")

        price = Decimal(product.price)
        name = product.name
        if line.get("weight"):
            variant = self.products.get_variant(product.id, line["weight"])
            if not variant:
                raise ValueError(f"{product.name} is not available in {line['weight']}")
            if not variant.in_stock:
                raise ValueError(f"{product.name} ({variant.weight}) is out of stock")
            price = Decimal(variant.price)
            name = f"{product.name} ({variant.weight})"

        return OrderItemModel(
            product_id=product.id,
            product_name=name,
            quantity=line["quantity"],
            price=price,
        )
