"""One-time verification codes keyed by (email, purpose)."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..core.database import dialect_insert
from ..core.errors import DeliveryFailed, NotFound, OtpExpired, OtpMismatch
from ..models import OtpPurpose, OtpRecord
from ..utils.datetime import as_naive_utc
from ..utils.validation import normalize_email
from .notifications import DeliveryChannel

logger = logging.getLogger(__name__)

DEFAULT_TTL_MINUTES = 5

_SUBJECTS = {
    OtpPurpose.EMAIL_VERIFICATION: "Verify your email address",
    OtpPurpose.LOGIN_VERIFICATION: "Your login code",
    OtpPurpose.QR_CODE_GENERATION: "Confirm your QR code request",
}


def generate_code() -> str:
    """Uniformly random six-digit code without a leading zero."""

    return str(100000 + secrets.randbelow(900000))


def issue(
    session: Session,
    *,
    email: str,
    purpose: OtpPurpose,
    channel: DeliveryChannel,
    ttl_minutes: int = DEFAULT_TTL_MINUTES,
    now: datetime | None = None,
) -> OtpRecord:
    """Replace any code for ``(email, purpose)`` and send the new one.

    When delivery fails the session is rolled back, so the caller's pending
    writes are discarded together with the code, and :class:`DeliveryFailed`
    is raised.
    """

    address = normalize_email(email)
    current_time = as_naive_utc(now)

    stmt = dialect_insert(session, OtpRecord).values(
        email=address,
        purpose=purpose,
        code=generate_code(),
        expires_at=current_time + timedelta(minutes=ttl_minutes),
        verified=False,
        created_at=current_time,
    )
    # Insert or replace atomically on (email, purpose).
    stmt = stmt.on_conflict_do_update(
        index_elements=["email", "purpose"],
        set_={
            "code": stmt.excluded.code,
            "expires_at": stmt.excluded.expires_at,
            "verified": False,
            "created_at": stmt.excluded.created_at,
        },
    )
    session.execute(stmt)
    record = _find(session, address, purpose, refresh=True)

    message = f"Your verification code is {record.code}. It expires in {ttl_minutes} minutes."
    try:
        channel.send(address, message, subject=_SUBJECTS.get(purpose))
    except Exception as exc:
        session.rollback()
        logger.warning("otp delivery failed email=%s purpose=%s: %s", address, purpose.value, exc)
        raise DeliveryFailed(f"Could not deliver verification code to {address}.") from exc

    logger.info("otp issued email=%s purpose=%s expires_at=%s", address, purpose.value, record.expires_at.isoformat())
    return record


def _find(
    session: Session, email: str, purpose: OtpPurpose, *, lock: bool = False, refresh: bool = False
) -> Optional[OtpRecord]:
    stmt = select(OtpRecord).where(OtpRecord.email == email, OtpRecord.purpose == purpose)
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    if lock:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def verify(
    session: Session,
    *,
    email: str,
    code: str,
    purpose: OtpPurpose,
    now: datetime | None = None,
) -> bool:
    """Check ``code`` against the live record and mark it verified.

    An already verified code may be presented again until it expires.
    """

    address = normalize_email(email)
    current_time = as_naive_utc(now)

    record = _find(session, address, purpose, lock=True)
    if record is None:
        raise NotFound(f"No verification code found for {address}.")
    if record.is_expired(current_time):
        raise OtpExpired("Verification code has expired.")
    candidate = (code or "").strip()
    if not (len(candidate) == 6 and candidate.isascii() and candidate.isdigit()):
        raise OtpMismatch("Verification code is incorrect.")
    if not secrets.compare_digest(record.code, candidate):
        raise OtpMismatch("Verification code is incorrect.")

    if not record.verified:
        record.verified = True
        session.flush()
        logger.info("otp verified email=%s purpose=%s", address, purpose.value)
    return True


def is_verified(session: Session, *, email: str, purpose: OtpPurpose, now: datetime | None = None) -> bool:
    """True when a verified, unexpired code exists for ``(email, purpose)``."""

    record = _find(session, normalize_email(email), purpose)
    if record is None:
        return False
    return bool(record.verified) and not record.is_expired(as_naive_utc(now))


def purge_expired(session: Session, *, now: datetime | None = None) -> int:
    result = session.execute(delete(OtpRecord).where(OtpRecord.expires_at < as_naive_utc(now)))
    return result.rowcount or 0
