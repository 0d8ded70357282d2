"""Bulk fuel shipment model."""

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base
from .fuel_type import FuelType
from .litres import Litres


class DistributionStatus(str, enum.Enum):
    """Lifecycle states of a shipment."""

    PENDING = "PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class FuelDistribution(Base):
    """Shipment of bulk fuel to a station."""

    __tablename__ = "fuel_distributions"
    __table_args__ = (
        UniqueConstraint("reference", name="fuel_distributions_reference_unique"),
        CheckConstraint("amount > 0", name="fuel_distributions_amount_positive"),
    )

    distribution_id = Column(Integer, primary_key=True, autoincrement=True)
    station_id = Column(Integer, ForeignKey("fuel_stations.station_id", ondelete="RESTRICT"), nullable=False, index=True)
    fuel_type = Column(Enum(FuelType, name="fuel_type"), nullable=False)
    amount = Column(Litres(), nullable=False)
    status = Column(
        Enum(DistributionStatus, name="distribution_status"),
        nullable=False,
        default=DistributionStatus.PENDING,
    )
    reference = Column(String(40), nullable=False)
    notes = Column(Text)
    distribution_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime)

    station = relationship("FuelStation", back_populates="distributions")
