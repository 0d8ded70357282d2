"""Record of each granted fuel debit."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base
from .litres import Litres


class DispenseTransaction(Base):
    """Immutable row written for every successful dispense."""

    __tablename__ = "dispense_transactions"
    __table_args__ = (
        UniqueConstraint("idempotency_key", name="dispense_transactions_idempotency_key_unique"),
        CheckConstraint("amount > 0", name="dispense_transactions_amount_positive"),
        CheckConstraint("remaining_after >= 0", name="dispense_transactions_remaining_non_negative"),
    )

    transaction_id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.vehicle_id", ondelete="RESTRICT"), nullable=False, index=True)
    station_id = Column(Integer, ForeignKey("fuel_stations.station_id", ondelete="SET NULL"))
    amount = Column(Litres(), nullable=False)
    remaining_after = Column(Litres(), nullable=False)
    idempotency_key = Column(String(100))
    request_fingerprint = Column(String(64))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    vehicle = relationship("Vehicle", back_populates="transactions")
