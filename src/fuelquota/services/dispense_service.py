"""Dispense engine: resolve a scanned credential and debit the vehicle quota."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import Conflict, InsufficientQuota
from ..models import DispenseTransaction, Vehicle
from ..utils.datetime import as_naive_utc
from ..utils.validation import require_positive, to_amount
from . import quota_service, station_service
from .credential_resolvers import CredentialResolver
from .notifications import DeliveryChannel

logger = logging.getLogger(__name__)

DEFAULT_DEDUP_SECONDS = 600


class QuotaExceeded(InsufficientQuota):
    """Dispense request larger than the vehicle's remaining allowance."""


@dataclass(frozen=True)
class OwnerSummary:
    nic: str
    first_name: str
    last_name: str
    phone: Optional[str]


@dataclass(frozen=True)
class VehicleSnapshot:
    vehicle_id: int
    vehicle_number: str
    fuel_type: str
    remaining: Decimal
    weekly_allowance: Decimal
    vehicle_type: str
    owner: OwnerSummary
    transaction_id: Optional[int] = None
    replayed: bool = False


def snapshot(
    vehicle: Vehicle,
    *,
    remaining=None,
    transaction_id: Optional[int] = None,
    replayed: bool = False,
) -> VehicleSnapshot:
    owner = vehicle.owner
    return VehicleSnapshot(
        vehicle_id=vehicle.vehicle_id,
        vehicle_number=vehicle.vehicle_number,
        fuel_type=vehicle.fuel_type.value,
        remaining=to_amount(vehicle.remaining if remaining is None else remaining),
        weekly_allowance=to_amount(vehicle.weekly_allowance),
        vehicle_type=vehicle.vehicle_type.name,
        owner=OwnerSummary(
            nic=owner.nic,
            first_name=owner.first_name,
            last_name=owner.last_name,
            phone=owner.phone,
        ),
        transaction_id=transaction_id,
        replayed=replayed,
    )


def _fingerprint(credential: str, amount: Decimal) -> str:
    raw = f"{credential.strip()}|{amount}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _find_by_key(session: Session, idempotency_key: str) -> DispenseTransaction | None:
    stmt = select(DispenseTransaction).where(DispenseTransaction.idempotency_key == idempotency_key)
    return session.execute(stmt).scalar_one_or_none()


def _replay(txn: DispenseTransaction, fingerprint: str) -> VehicleSnapshot:
    if txn.request_fingerprint != fingerprint:
        raise Conflict("Idempotency key was already used for a different dispense request.")
    logger.info("dispense replayed txn=%s vehicle=%s", txn.transaction_id, txn.vehicle.vehicle_number)
    return snapshot(txn.vehicle, remaining=txn.remaining_after, transaction_id=txn.transaction_id, replayed=True)


def _notify_owner(channel: DeliveryChannel, vehicle: Vehicle, amount: Decimal, remaining: Decimal) -> None:
    phone = vehicle.owner.phone
    if not phone:
        return
    message = (
        f"Fuel pumped: {amount} L for vehicle {vehicle.vehicle_number}. "
        f"Remaining weekly quota: {remaining} L."
    )
    try:
        channel.send(phone, message)
    except Exception:
        logger.exception("dispense SMS to owner of %s failed", vehicle.vehicle_number)


def dispense(
    session: Session,
    *,
    credential: str,
    amount,
    resolver: CredentialResolver,
    sms_channel: DeliveryChannel | None = None,
    station_id: Optional[int] = None,
    idempotency_key: Optional[str] = None,
    dedup_seconds: int = DEFAULT_DEDUP_SECONDS,
    now: datetime | None = None,
) -> VehicleSnapshot:
    """Debit ``amount`` litres from the vehicle identified by ``credential``.

    With an ``idempotency_key`` a repeat of the same request inside
    ``dedup_seconds`` returns the original result instead of debiting again.
    The SMS receipt is best-effort and never changes the outcome.
    """

    value = require_positive(amount, "Dispense amount")
    current_time = as_naive_utc(now)
    fingerprint = _fingerprint(credential or "", value)

    if idempotency_key:
        existing = _find_by_key(session, idempotency_key)
        if existing is not None:
            if existing.created_at >= current_time - timedelta(seconds=dedup_seconds):
                return _replay(existing, fingerprint)
            session.execute(
                update(DispenseTransaction)
                .where(DispenseTransaction.transaction_id == existing.transaction_id)
                .values(idempotency_key=None)
                .execution_options(synchronize_session=False)
            )
            session.expire(existing)

    if station_id is not None:
        station_service.get_station(session, station_id)

    vehicle_key = resolver.resolve(session, credential)

    try:
        new_remaining = quota_service.try_debit(session, vehicle_key, value)
    except InsufficientQuota as exc:
        raise QuotaExceeded(exc.detail, remaining=exc.remaining) from exc

    vehicle = quota_service.get_vehicle(session, vehicle_key)
    txn = DispenseTransaction(
        vehicle_id=vehicle.vehicle_id,
        station_id=station_id,
        amount=value,
        remaining_after=new_remaining,
        idempotency_key=idempotency_key,
        request_fingerprint=fingerprint if idempotency_key else None,
        created_at=current_time,
    )
    session.add(txn)
    try:
        session.flush()
    except IntegrityError:
        # Another request with the same key won the race; its debit stands, ours is undone.
        session.rollback()
        winner = _find_by_key(session, idempotency_key) if idempotency_key else None
        if winner is None:
            raise
        return _replay(winner, fingerprint)

    logger.info(
        "dispensed vehicle=%s amount=%s remaining=%s station=%s txn=%s",
        vehicle_key,
        value,
        new_remaining,
        station_id,
        txn.transaction_id,
    )

    if sms_channel is not None:
        _notify_owner(sms_channel, vehicle, value, new_remaining)

    return snapshot(vehicle, remaining=new_remaining, transaction_id=txn.transaction_id)


def lookup_vehicle(session: Session, *, credential: str, resolver: CredentialResolver) -> VehicleSnapshot:
    """Resolve a credential and report the vehicle's quota without debiting."""

    vehicle_key = resolver.resolve(session, credential)
    return snapshot(quota_service.get_vehicle(session, vehicle_key))


def list_transactions(
    session: Session,
    *,
    vehicle_number: str,
    limit: int = 50,
    offset: int = 0,
) -> Sequence[DispenseTransaction]:
    vehicle = quota_service.get_vehicle(session, vehicle_number)
    stmt = (
        select(DispenseTransaction)
        .where(DispenseTransaction.vehicle_id == vehicle.vehicle_id)
        .order_by(DispenseTransaction.created_at.desc(), DispenseTransaction.transaction_id.desc())
        .limit(limit)
        .offset(offset)
    )
    return session.execute(stmt).scalars().all()
