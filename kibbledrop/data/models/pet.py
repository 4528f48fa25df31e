# kibbledrop/data/models/pet.py
from sqlalchemy import Column, Integer, ForeignKey, String, Text, Date, Float, DateTime, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from kibbledrop.data.database import Base


class PetProfileModel(Base):
    __tablename__ = "pet_profiles"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    breed = Column(String, nullable=True)
    birthday = Column(Date, nullable=True)
    weight = Column(Float, nullable=True)
    health_tags = Column(JSON, nullable=False, default=list)

    # base64 data URIs
    image = Column(Text, nullable=True)
    vaccination_card = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    user = relationship("UserModel", back_populates="pets")
