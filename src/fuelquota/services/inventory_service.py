"""Inventory ledger: running stock per (station, fuel type)."""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..core.database import dialect_insert
from ..core.errors import InsufficientStock, InvalidArgument
from ..models import FuelInventory, FuelType
from ..utils.datetime import utcnow
from ..utils.validation import MAX_AMOUNT, parse_fuel_type, require_non_negative
from . import station_service

logger = logging.getLogger(__name__)


def _select_row(station_id: int, fuel_type: FuelType):
    return select(FuelInventory).where(
        FuelInventory.station_id == station_id,
        FuelInventory.fuel_type == fuel_type,
    )


def _ensure_row(session: Session, station_id: int, fuel_type: FuelType) -> None:
    """Create a zero-stock row the first time a key is touched."""

    station_service.get_station(session, station_id)
    stmt = dialect_insert(session, FuelInventory).values(
        station_id=station_id, fuel_type=fuel_type, amount=0, updated_at=utcnow()
    )
    session.execute(stmt.on_conflict_do_nothing(index_elements=["station_id", "fuel_type"]))


def _reload(session: Session, station_id: int, fuel_type: FuelType) -> FuelInventory:
    stmt = _select_row(station_id, fuel_type).execution_options(populate_existing=True)
    return session.execute(stmt).scalar_one()


def get_inventory(session: Session, *, station_id: int, fuel_type) -> FuelInventory:
    kind = parse_fuel_type(fuel_type)
    _ensure_row(session, station_id, kind)
    return _reload(session, station_id, kind)


def set_amount(session: Session, *, station_id: int, fuel_type, amount) -> FuelInventory:
    """Overwrite the stock level."""

    value = require_non_negative(amount, "Inventory amount")
    kind = parse_fuel_type(fuel_type)
    _ensure_row(session, station_id, kind)
    session.execute(
        update(FuelInventory)
        .where(FuelInventory.station_id == station_id, FuelInventory.fuel_type == kind)
        .values(amount=value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    logger.info("inventory set station=%s fuel=%s amount=%s", station_id, kind.value, value)
    return _reload(session, station_id, kind)


def consume(session: Session, *, station_id: int, fuel_type, amount) -> FuelInventory:
    """Decrease stock, failing if it would drop below zero."""

    value = require_non_negative(amount, "Consumption amount")
    kind = parse_fuel_type(fuel_type)
    _ensure_row(session, station_id, kind)
    result = session.execute(
        update(FuelInventory)
        .where(
            FuelInventory.station_id == station_id,
            FuelInventory.fuel_type == kind,
            FuelInventory.amount >= value,
        )
        .values(amount=FuelInventory.amount - value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    inventory = _reload(session, station_id, kind)
    if result.rowcount == 0:
        available = inventory.amount
        raise InsufficientStock(
            f"Insufficient {kind.value} stock at station {station_id}: {available} available.",
            available=available,
        )
    logger.info("inventory consumed station=%s fuel=%s amount=%s", station_id, kind.value, value)
    return inventory


def restock(session: Session, *, station_id: int, fuel_type, amount) -> FuelInventory:
    """Increase stock, used when a distribution is delivered."""

    value = require_non_negative(amount, "Restock amount")
    kind = parse_fuel_type(fuel_type)
    _ensure_row(session, station_id, kind)
    result = session.execute(
        update(FuelInventory)
        .where(
            FuelInventory.station_id == station_id,
            FuelInventory.fuel_type == kind,
            FuelInventory.amount <= MAX_AMOUNT - value,
        )
        .values(amount=FuelInventory.amount + value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InvalidArgument(f"Restocking {value} L would exceed the maximum stock of {MAX_AMOUNT} L.")
    logger.info("inventory restocked station=%s fuel=%s amount=%s", station_id, kind.value, value)
    return _reload(session, station_id, kind)


def list_inventory(session: Session, *, station_id: int) -> Sequence[FuelInventory]:
    station_service.get_station(session, station_id)
    stmt = (
        select(FuelInventory)
        .where(FuelInventory.station_id == station_id)
        .order_by(FuelInventory.fuel_type.asc())
    )
    return session.execute(stmt).scalars().all()
