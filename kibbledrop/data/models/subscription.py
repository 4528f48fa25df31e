# kibbledrop/data/models/subscription.py
from sqlalchemy import Column, Integer, ForeignKey, String, Text, Date, DateTime, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from kibbledrop.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class SubscriptionModel(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    pet_profile_id = Column(Integer, ForeignKey("pet_profiles.id"), nullable=False)

    frequency = Column(String, nullable=False)  # weekly, bi-weekly, tri-weekly, monthly, custom
    status = Column(String, nullable=False, default="pending")  # pending, active, canceled
    next_delivery = Column(Date, nullable=True)
    skipped_deliveries = Column(JSON, nullable=False, default=list)

    delivery_name = Column(String, nullable=False)
    delivery_phone = Column(String, nullable=False)
    delivery_address = Column(String, nullable=False)
    city = Column(String, nullable=False)
    postal_code = Column(String, nullable=False)
    instructions = Column(Text, nullable=True)

    stripe_subscription_id = Column(String, nullable=True)
    activated_at = Column(DateTime(timezone=True), nullable=True)
    next_billing_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    user = relationship("UserModel", back_populates="subscriptions")
    pet_profile = relationship("PetProfileModel")
    items = relationship(
        "SubscriptionItemModel",
        back_populates="subscription",
        cascade="all, delete-orphan",
        order_by="SubscriptionItemModel.id",
    )


class SubscriptionItemModel(Base):
    __tablename__ = "subscription_items"

    id = Column(Integer, primary_key=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    subscription = relationship("SubscriptionModel", back_populates="items")
    product = relationship("ProductModel")
