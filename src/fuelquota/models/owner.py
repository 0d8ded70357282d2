"""Vehicle owner model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base


class Owner(Base):
    """Identity holder that may register several vehicles."""

    __tablename__ = "owners"
    __table_args__ = (
        UniqueConstraint("nic", name="owners_nic_unique"),
        UniqueConstraint("email", name="owners_email_unique"),
        UniqueConstraint("qr_identifier", name="owners_qr_identifier_unique"),
    )

    owner_id = Column(Integer, primary_key=True, autoincrement=True)
    nic = Column(String(20), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20))
    address = Column(String(255))
    qr_identifier = Column(String(36))
    email_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    vehicles = relationship("Vehicle", back_populates="owner")

    @property
    def qr_content(self):
        """Text encoded in the owner's QR code, once one has been issued."""

        if not self.qr_identifier:
            return None
        return f"FUELQUOTA:{self.qr_identifier}:{self.nic}"
