"""One-time verification code model."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String, UniqueConstraint

from ..core.database import Base


class OtpPurpose(str, enum.Enum):
    """State transition a code is allowed to unlock."""

    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    LOGIN_VERIFICATION = "LOGIN_VERIFICATION"
    QR_CODE_GENERATION = "QR_CODE_GENERATION"


class OtpRecord(Base):
    """At most one live code per (email, purpose)."""

    __tablename__ = "otp_records"
    __table_args__ = (
        UniqueConstraint("email", "purpose", name="otp_records_email_purpose_unique"),
    )

    otp_id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False)
    purpose = Column(Enum(OtpPurpose, name="otp_purpose"), nullable=False)
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
