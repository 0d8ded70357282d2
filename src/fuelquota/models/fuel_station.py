"""Fuel station model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base


class FuelStation(Base):
    __tablename__ = "fuel_stations"
    __table_args__ = (
        UniqueConstraint("contact_number", name="fuel_stations_contact_number_unique"),
    )

    station_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    location = Column(String(200), nullable=False)
    owner_name = Column(String(100), nullable=False)
    contact_number = Column(String(10), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    distributions = relationship("FuelDistribution", back_populates="station")
    inventory = relationship("FuelInventory", back_populates="station")
