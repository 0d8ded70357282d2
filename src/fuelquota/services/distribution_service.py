"""Distribution state machine for bulk fuel shipments to stations."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.errors import Conflict, InvalidArgument, InvalidTransition, NotFound
from ..models import DistributionStatus, FuelDistribution, FuelType, Litres
from ..utils.datetime import as_naive_utc
from ..utils.validation import parse_fuel_type, require_positive, to_amount
from . import inventory_service, station_service
from .notifications import EventPublisher

logger = logging.getLogger(__name__)

DISTRIBUTION_CREATED = "distribution.created"
REFERENCE_ATTEMPTS = 5

ALLOWED_TRANSITIONS: dict[DistributionStatus, frozenset[DistributionStatus]] = {
    DistributionStatus.PENDING: frozenset({DistributionStatus.IN_TRANSIT, DistributionStatus.CANCELLED}),
    DistributionStatus.IN_TRANSIT: frozenset({DistributionStatus.DELIVERED, DistributionStatus.CANCELLED}),
    DistributionStatus.DELIVERED: frozenset(),
    DistributionStatus.CANCELLED: frozenset(),
}


def parse_status(value) -> DistributionStatus:
    if isinstance(value, DistributionStatus):
        return value
    try:
        return DistributionStatus(str(value).strip().upper())
    except ValueError as exc:
        raise InvalidArgument(f"Invalid distribution status: {value}") from exc


def _generate_reference(session: Session, now: datetime) -> str:
    for _ in range(REFERENCE_ATTEMPTS):
        candidate = f"DIST-{now:%Y%m%d}-{secrets.token_hex(4).upper()}"
        taken = session.execute(
            select(FuelDistribution.distribution_id).where(FuelDistribution.reference == candidate)
        ).scalar_one_or_none()
        if taken is None:
            return candidate
    raise Conflict("Could not allocate a unique distribution reference.")


def _event_payload(distribution: FuelDistribution) -> dict:
    return {
        "distributionId": distribution.distribution_id,
        "stationId": distribution.station_id,
        "stationName": distribution.station.name,
        "fuelType": distribution.fuel_type.value,
        "amount": str(to_amount(distribution.amount)),
        "reference": distribution.reference,
        "timestamp": distribution.distribution_date.isoformat(),
    }


def create_distribution(
    session: Session,
    *,
    station_id: int,
    fuel_type,
    amount,
    notes: Optional[str] = None,
    publisher: EventPublisher | None = None,
    now: datetime | None = None,
) -> FuelDistribution:
    """Record a new shipment in ``PENDING`` and announce it.

    Publishing is best-effort: a failed publish is logged and the shipment
    is still created.
    """

    value = require_positive(amount, "Distribution amount")
    kind = parse_fuel_type(fuel_type)
    station = station_service.get_station(session, station_id)
    current_time = as_naive_utc(now)

    distribution = FuelDistribution(
        station=station,
        fuel_type=kind,
        amount=value,
        status=DistributionStatus.PENDING,
        reference=_generate_reference(session, current_time),
        notes=notes,
        distribution_date=current_time,
    )
    session.add(distribution)
    session.flush()
    logger.info(
        "distribution created id=%s ref=%s station=%s fuel=%s amount=%s",
        distribution.distribution_id,
        distribution.reference,
        station_id,
        kind.value,
        value,
    )

    if publisher is not None:
        try:
            publisher.publish(DISTRIBUTION_CREATED, _event_payload(distribution))
        except Exception:
            logger.exception("failed to publish %s for %s", DISTRIBUTION_CREATED, distribution.reference)

    return distribution


def get_distribution(session: Session, distribution_id: int) -> FuelDistribution:
    distribution = session.get(FuelDistribution, distribution_id)
    if distribution is None:
        raise NotFound(f"Distribution {distribution_id} not found")
    return distribution


def set_status(
    session: Session,
    *,
    distribution_id: int,
    status,
    now: datetime | None = None,
) -> FuelDistribution:
    """Move a shipment to ``status``.

    Re-applying the current status is a no-op. Reaching ``DELIVERED`` stamps
    the completion time and adds the amount to the station's inventory.
    """

    target = parse_status(status)
    stmt = (
        select(FuelDistribution)
        .where(FuelDistribution.distribution_id == distribution_id)
        .with_for_update()
    )
    distribution = session.execute(stmt).scalar_one_or_none()
    if distribution is None:
        raise NotFound(f"Distribution {distribution_id} not found")

    current = distribution.status
    if current == target:
        return distribution
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(f"Cannot move distribution from {current.value} to {target.value}.")

    distribution.status = target
    if target == DistributionStatus.DELIVERED:
        distribution.completed_at = as_naive_utc(now)
        inventory_service.restock(
            session,
            station_id=distribution.station_id,
            fuel_type=distribution.fuel_type,
            amount=distribution.amount,
        )
    session.flush()
    logger.info("distribution %s moved %s -> %s", distribution.reference, current.value, target.value)
    return distribution


def list_for_station(
    session: Session,
    *,
    station_id: int,
    status=None,
    limit: int = 50,
    offset: int = 0,
) -> Sequence[FuelDistribution]:
    """Shipments for one station, newest first."""

    station_service.get_station(session, station_id)
    stmt = select(FuelDistribution).where(FuelDistribution.station_id == station_id)
    if status is not None:
        stmt = stmt.where(FuelDistribution.status == parse_status(status))
    stmt = (
        stmt.order_by(FuelDistribution.distribution_date.desc(), FuelDistribution.distribution_id.desc())
        .limit(limit)
        .offset(offset)
    )
    return session.execute(stmt).scalars().all()


def list_recent(session: Session, *, limit: int = 20) -> Sequence[FuelDistribution]:
    stmt = (
        select(FuelDistribution)
        .order_by(FuelDistribution.distribution_date.desc(), FuelDistribution.distribution_id.desc())
        .limit(limit)
    )
    return session.execute(stmt).scalars().all()


def get_by_reference(session: Session, reference: str) -> FuelDistribution:
    stmt = select(FuelDistribution).where(FuelDistribution.reference == reference)
    distribution = session.execute(stmt).scalar_one_or_none()
    if distribution is None:
        raise NotFound(f"Distribution {reference} not found")
    return distribution


def stats_by_fuel_type(session: Session) -> dict[str, Decimal]:
    """Total delivered volume per fuel type; every fuel type is present."""

    stmt = (
        select(
            FuelDistribution.fuel_type,
            func.coalesce(func.sum(FuelDistribution.amount), 0, type_=Litres()),
        )
        .where(FuelDistribution.status == DistributionStatus.DELIVERED)
        .group_by(FuelDistribution.fuel_type)
    )
    totals = {kind.value: Decimal("0.00") for kind in FuelType}
    for kind, total in session.execute(stmt).all():
        totals[kind.value] = total
    return totals
