"""Vehicle model carrying the weekly quota account."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..core.database import Base
from .fuel_type import FuelType
from .litres import Litres


class Vehicle(Base):
    """Registered vehicle and its mutable remaining allowance.

    ``weekly_allowance`` is copied from the vehicle type at registration and is
    not re-synced when the type changes. ``remaining`` is only lowered by the
    dispense path and raised back by the weekly reset.
    """

    __tablename__ = "vehicles"
    __table_args__ = (
        UniqueConstraint("vehicle_number", name="vehicles_vehicle_number_unique"),
        UniqueConstraint("chassis_number", name="vehicles_chassis_number_unique"),
        UniqueConstraint("qr_token", name="vehicles_qr_token_unique"),
        CheckConstraint("remaining >= 0", name="vehicles_remaining_non_negative"),
        CheckConstraint("weekly_allowance > 0", name="vehicles_weekly_allowance_positive"),
    )

    vehicle_id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_number = Column(String(20), nullable=False)
    chassis_number = Column(String(50), nullable=False)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.vehicle_type_id", ondelete="RESTRICT"), nullable=False)
    owner_id = Column(Integer, ForeignKey("owners.owner_id", ondelete="RESTRICT"), nullable=False)
    fuel_type = Column(Enum(FuelType, name="fuel_type"), nullable=False)
    weekly_allowance = Column(Litres(), nullable=False)
    remaining = Column(Litres(), nullable=False)
    qr_payload = Column(Text)
    qr_token = Column(String(36))
    verified = Column(Boolean, nullable=False, default=False)
    last_reset_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    vehicle_type = relationship("VehicleType", back_populates="vehicles")
    owner = relationship("Owner", back_populates="vehicles")
    transactions = relationship("DispenseTransaction", back_populates="vehicle")
