"""Fuel station registration and lookup."""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import Conflict, InvalidArgument, NotFound
from ..models import FuelStation

logger = logging.getLogger(__name__)

CONTACT_NUMBER_PATTERN = re.compile(r"^0[0-9]{9}$")


def get_station(session: Session, station_id: int) -> FuelStation:
    station = session.get(FuelStation, station_id)
    if station is None:
        raise NotFound(f"Fuel station {station_id} not found")
    return station


def create_station(
    session: Session,
    *,
    name: str,
    location: str,
    owner_name: str,
    contact_number: str,
) -> FuelStation:
    if not name or not name.strip():
        raise InvalidArgument("Station name is required.")
    if not CONTACT_NUMBER_PATTERN.match(contact_number or ""):
        raise InvalidArgument("Contact number must be 10 digits starting with 0.")

    duplicate = session.execute(
        select(FuelStation.station_id).where(FuelStation.contact_number == contact_number)
    ).scalar_one_or_none()
    if duplicate is not None:
        raise Conflict(f"A station with contact number {contact_number} already exists.")

    station = FuelStation(
        name=name.strip(),
        location=location.strip(),
        owner_name=owner_name.strip(),
        contact_number=contact_number,
        is_active=True,
    )
    session.add(station)
    session.flush()
    logger.info("station registered id=%s name=%s", station.station_id, station.name)
    return station


def list_stations(session: Session, *, active: Optional[bool] = None) -> Sequence[FuelStation]:
    stmt = select(FuelStation).order_by(FuelStation.name.asc())
    if active is not None:
        stmt = stmt.where(FuelStation.is_active.is_(active))
    return session.execute(stmt).scalars().all()


def set_active(session: Session, station_id: int, *, active: bool) -> FuelStation:
    station = get_station(session, station_id)
    station.is_active = active
    session.flush()
    return station
