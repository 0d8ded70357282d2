"""Vehicle type catalog: allowance templates for classes of vehicles."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.errors import Conflict, InvalidArgument, NotFound
from ..models import Vehicle, VehicleType
from ..utils.validation import parse_fuel_type, require_positive

logger = logging.getLogger(__name__)


def get_vehicle_type(session: Session, vehicle_type_id: int) -> VehicleType:
    vehicle_type = session.get(VehicleType, vehicle_type_id)
    if vehicle_type is None:
        raise NotFound(f"Vehicle type {vehicle_type_id} not found")
    return vehicle_type


def get_vehicle_type_by_name(session: Session, name: str) -> VehicleType:
    stmt = select(VehicleType).where(func.lower(VehicleType.name) == name.strip().lower())
    vehicle_type = session.execute(stmt).scalar_one_or_none()
    if vehicle_type is None:
        raise NotFound(f"Vehicle type '{name}' not found")
    return vehicle_type


def resolve_vehicle_type_ref(session: Session, *, kind: str, value) -> VehicleType:
    """Resolve a ``{"kind": "id" | "name", "value": ...}`` reference.

    Names are matched case-insensitively.
    """

    if kind == "id":
        try:
            return get_vehicle_type(session, int(value))
        except (TypeError, ValueError) as exc:
            raise InvalidArgument(f"Invalid vehicle type id: {value}") from exc
    if kind == "name":
        if not isinstance(value, str) or not value.strip():
            raise InvalidArgument("Vehicle type name is required.")
        return get_vehicle_type_by_name(session, value)
    raise InvalidArgument(f"Unsupported vehicle type reference kind: {kind}")


def _ensure_unique_name(session: Session, name: str, *, exclude_id: Optional[int] = None) -> None:
    stmt = select(VehicleType.vehicle_type_id).where(func.lower(VehicleType.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(VehicleType.vehicle_type_id != exclude_id)
    if session.execute(stmt).first() is not None:
        raise Conflict(f"Vehicle type '{name}' already exists.")


def create_vehicle_type(
    session: Session,
    *,
    name: str,
    fuel_type,
    weekly_quota,
    description: Optional[str] = None,
) -> VehicleType:
    clean_name = (name or "").strip()
    if not clean_name:
        raise InvalidArgument("Vehicle type name is required.")
    _ensure_unique_name(session, clean_name)

    vehicle_type = VehicleType(
        name=clean_name,
        description=description,
        fuel_type=parse_fuel_type(fuel_type),
        weekly_quota=require_positive(weekly_quota, "Weekly quota"),
    )
    session.add(vehicle_type)
    session.flush()
    logger.info("vehicle type created id=%s name=%s", vehicle_type.vehicle_type_id, vehicle_type.name)
    return vehicle_type


def update_vehicle_type(
    session: Session,
    vehicle_type_id: int,
    *,
    name: Optional[str] = None,
    fuel_type=None,
    weekly_quota=None,
    description: Optional[str] = None,
) -> VehicleType:
    """Update a template. Existing vehicles keep the allowance they were registered with."""

    vehicle_type = get_vehicle_type(session, vehicle_type_id)
    if name is not None:
        clean_name = name.strip()
        if not clean_name:
            raise InvalidArgument("Vehicle type name is required.")
        _ensure_unique_name(session, clean_name, exclude_id=vehicle_type_id)
        vehicle_type.name = clean_name
    if fuel_type is not None:
        vehicle_type.fuel_type = parse_fuel_type(fuel_type)
    if weekly_quota is not None:
        vehicle_type.weekly_quota = require_positive(weekly_quota, "Weekly quota")
    if description is not None:
        vehicle_type.description = description
    session.flush()
    return vehicle_type


def delete_vehicle_type(session: Session, vehicle_type_id: int) -> None:
    vehicle_type = get_vehicle_type(session, vehicle_type_id)
    in_use = session.execute(
        select(func.count(Vehicle.vehicle_id)).where(Vehicle.vehicle_type_id == vehicle_type_id)
    ).scalar_one()
    if in_use:
        raise Conflict(f"Vehicle type '{vehicle_type.name}' is used by {in_use} vehicle(s).")
    session.delete(vehicle_type)
    session.flush()
    logger.info("vehicle type deleted id=%s", vehicle_type_id)


def list_vehicle_types(session: Session, *, fuel_type=None) -> Sequence[VehicleType]:
    stmt = select(VehicleType).order_by(VehicleType.name.asc())
    if fuel_type is not None:
        stmt = stmt.where(VehicleType.fuel_type == parse_fuel_type(fuel_type))
    return session.execute(stmt).scalars().all()
