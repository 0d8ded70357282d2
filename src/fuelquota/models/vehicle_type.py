"""Vehicle type catalog model."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base
from .fuel_type import FuelType
from .litres import Litres


class VehicleType(Base):
    """Template that fixes the weekly allowance and fuel kind for a class of vehicles."""

    __tablename__ = "vehicle_types"
    __table_args__ = (
        UniqueConstraint("name", name="vehicle_types_name_unique"),
        CheckConstraint("weekly_quota > 0", name="vehicle_types_weekly_quota_positive"),
    )

    vehicle_type_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    fuel_type = Column(Enum(FuelType, name="fuel_type"), nullable=False)
    weekly_quota = Column(Litres(), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    vehicles = relationship("Vehicle", back_populates="vehicle_type")
