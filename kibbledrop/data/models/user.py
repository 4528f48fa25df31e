# kibbledrop/data/models/user.py
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from kibbledrop.data.database import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)

    role = Column(String, nullable=False, default="customer")  # customer, admin
    status = Column(String, nullable=False, default="active")  # active, suspended
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    pets = relationship("PetProfileModel", back_populates="user")
    orders = relationship("OrderModel", back_populates="user")
    subscriptions = relationship("SubscriptionModel", back_populates="user")
