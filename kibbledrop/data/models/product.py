# kibbledrop/data/models/product.py
from sqlalchemy import Column, Integer, ForeignKey, String, Text, Boolean, DateTime, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from kibbledrop.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String, nullable=False, index=True)
    pet_type = Column(String, nullable=False, index=True)
    image = Column(String, nullable=True)

    brand = Column(String, nullable=True)
    weight = Column(String, nullable=True)
    species = Column(String, nullable=True)
    life_stage = Column(String, nullable=True)
    product_type = Column(String, nullable=True)
    food_type = Column(String, nullable=True)

    # nutrition facts, free text as printed on the bag ("26%", "3650 kcal/kg")
    protein = Column(String, nullable=True)
    fat = Column(String, nullable=True)
    fiber = Column(String, nullable=True)
    moisture = Column(String, nullable=True)
    calories = Column(String, nullable=True)
    omega6 = Column(String, nullable=True)
    ingredients = Column(Text, nullable=True)
    feeding_guide_adult = Column(Text, nullable=True)
    feeding_guide_puppy = Column(Text, nullable=True)

    featured = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    variants = relationship(
        "WeightVariantModel",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="WeightVariantModel.id",
    )


class WeightVariantModel(Base):
    __tablename__ = "weight_variants"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    weight = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    in_stock = Column(Boolean, nullable=False, default=True)

    product = relationship("ProductModel", back_populates="variants")
