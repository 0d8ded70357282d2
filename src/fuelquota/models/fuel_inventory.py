"""Per-station running stock model."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base
from .fuel_type import FuelType
from .litres import Litres


class FuelInventory(Base):
    """Stock level for one (station, fuel type) pair."""

    __tablename__ = "fuel_inventory"
    __table_args__ = (
        UniqueConstraint("station_id", "fuel_type", name="fuel_inventory_station_fuel_unique"),
        CheckConstraint("amount >= 0", name="fuel_inventory_amount_non_negative"),
    )

    inventory_id = Column(Integer, primary_key=True, autoincrement=True)
    station_id = Column(Integer, ForeignKey("fuel_stations.station_id", ondelete="CASCADE"), nullable=False)
    fuel_type = Column(Enum(FuelType, name="fuel_type"), nullable=False)
    amount = Column(Litres(), nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    station = relationship("FuelStation", back_populates="inventory")
