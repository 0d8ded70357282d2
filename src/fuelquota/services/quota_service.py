"""Quota account store: the remaining weekly allowance of each vehicle."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..core.errors import InsufficientQuota, InvalidArgument, NotFound
from ..models import Vehicle
from ..utils.datetime import as_naive_utc, utcnow
from ..utils.validation import require_positive

logger = logging.getLogger(__name__)


def get_vehicle(session: Session, vehicle_key: str, *, refresh: bool = False) -> Vehicle:
    """Load a vehicle by its registration number.

    ``refresh`` re-reads the row even if it is already in the identity map,
    which is needed after a bulk ``UPDATE`` issued with synchronisation off.
    """

    if not vehicle_key or not vehicle_key.strip():
        raise InvalidArgument("Vehicle number is required.")
    stmt = select(Vehicle).where(Vehicle.vehicle_number == vehicle_key.strip())
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    vehicle = session.execute(stmt).scalar_one_or_none()
    if vehicle is None:
        raise NotFound(f"Vehicle {vehicle_key} not found")
    return vehicle


def get_remaining(session: Session, vehicle_key: str) -> Decimal:
    """Current remaining allowance for ``vehicle_key``."""

    return get_vehicle(session, vehicle_key).remaining


def try_debit(session: Session, vehicle_key: str, amount) -> Decimal:
    """Atomically subtract ``amount`` if the account can cover it.

    The check and the write are one conditional ``UPDATE``; two concurrent
    debits whose sum exceeds the balance can never both match the predicate.
    Returns the new remaining balance.
    """

    value = require_positive(amount, "Debit amount")
    key = (vehicle_key or "").strip()
    if not key:
        raise InvalidArgument("Vehicle number is required.")

    stmt = (
        update(Vehicle)
        .where(Vehicle.vehicle_number == key, Vehicle.remaining >= value)
        .values(remaining=Vehicle.remaining - value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)

    if result.rowcount == 0:
        vehicle = get_vehicle(session, key, refresh=True)
        remaining = vehicle.remaining
        logger.info("debit rejected vehicle=%s requested=%s remaining=%s", key, value, remaining)
        raise InsufficientQuota(
            f"Requested {value} L exceeds remaining quota of {remaining} L.",
            remaining=remaining,
        )

    vehicle = get_vehicle(session, key, refresh=True)
    return vehicle.remaining


def reset_vehicle(session: Session, vehicle_key: str, *, now: datetime | None = None) -> Vehicle:
    """Restore a single vehicle's allowance to its weekly ceiling."""

    vehicle = get_vehicle(session, vehicle_key)
    vehicle.remaining = vehicle.weekly_allowance
    vehicle.last_reset_at = as_naive_utc(now)
    session.flush()
    return vehicle


def reset_all(session: Session, *, now: datetime | None = None) -> dict[str, int]:
    """Set every vehicle's remaining allowance back to its weekly allowance.

    A debit that commits before this statement is overwritten; one that
    commits after is applied to the fresh balance.
    """

    current_time = as_naive_utc(now)
    stmt = (
        update(Vehicle)
        .values(remaining=Vehicle.weekly_allowance, last_reset_at=current_time, updated_at=current_time)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    summary = {"vehicles_reset": result.rowcount or 0}
    logger.info("weekly quota reset applied at %s: %s", current_time.isoformat(), summary)
    return summary
