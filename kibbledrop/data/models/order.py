# kibbledrop/data/models/order.py
from sqlalchemy import Column, Integer, ForeignKey, String, Text, DateTime, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from kibbledrop.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=True)

    # pending, payment_pending, processing, paid, shipped, completed, canceled, failed
    status = Column(String, nullable=False, default="pending")
    subtotal = Column(Numeric(10, 2), nullable=False)
    shipping = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    delivery_name = Column(String, nullable=True)
    delivery_phone = Column(String, nullable=True)
    delivery_address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)
    instructions = Column(Text, nullable=True)
    delivery_method = Column(String, nullable=False, default="standard")

    payment_provider = Column(String, nullable=True)
    payment_reference = Column(String, nullable=True, index=True)
    payment_status = Column(String, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    transaction_id = Column(String, nullable=True)

    tracking_number = Column(String, nullable=True)
    estimated_delivery = Column(DateTime(timezone=True), nullable=True)
    cancel_reason = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    user = relationship("UserModel", back_populates="orders")
    subscription = relationship("SubscriptionModel")
    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    # nulled when the product is deleted, the snapshot stays
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    product_name = Column(String, nullable=False)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    order = relationship("OrderModel", back_populates="items")
    product = relationship("ProductModel")
