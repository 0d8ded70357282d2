"""Owner and vehicle registration, email verification and QR issuance."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.errors import Conflict, InvalidArgument, NotFound
from ..models import OtpPurpose, Owner, Vehicle, VehicleType
from ..utils.datetime import as_naive_utc
from ..utils.validation import normalize_email, to_amount
from . import otp_service
from .notifications import DeliveryChannel
from .registry_service import NullRegistryValidator, RegistryValidator

logger = logging.getLogger(__name__)


def vehicle_qr_text(vehicle_number: str, vehicle_type: str, owner_nic: str, weekly_quota) -> str:
    """Human-readable QR content printed for a vehicle."""

    return (
        f"Vehicle Number: {vehicle_number}\n"
        f"Vehicle Type: {vehicle_type}\n"
        f"Owner NIC: {owner_nic}\n"
        f"Weekly Quota: {to_amount(weekly_quota):.2f} L"
    )


def get_owner_by_nic(session: Session, nic: str) -> Owner:
    owner = session.execute(select(Owner).where(Owner.nic == nic.strip().upper())).scalar_one_or_none()
    if owner is None:
        raise NotFound(f"Owner with NIC {nic} not found")
    return owner


def get_owner_by_email(session: Session, email: str) -> Owner:
    address = normalize_email(email)
    owner = session.execute(select(Owner).where(Owner.email == address)).scalar_one_or_none()
    if owner is None:
        raise NotFound(f"Owner with email {address} not found")
    return owner


def _require(value: Optional[str], label: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgument(f"{label} is required.")
    return value.strip()


def register_vehicle(
    session: Session,
    *,
    owner_nic: str,
    vehicle_number: str,
    chassis_number: str,
    vehicle_type: VehicleType,
    registry: RegistryValidator | None = None,
) -> Vehicle:
    """Attach a new vehicle to the owner with ``owner_nic``, with a full weekly allowance."""

    owner = get_owner_by_nic(session, owner_nic)
    number = _require(vehicle_number, "Vehicle number").upper()
    chassis = _require(chassis_number, "Chassis number").upper()
    registry = registry or NullRegistryValidator()

    taken = session.execute(
        select(Vehicle.vehicle_id).where(
            (func.upper(Vehicle.vehicle_number) == number) | (func.upper(Vehicle.chassis_number) == chassis)
        )
    ).first()
    if taken is not None:
        raise Conflict(f"Vehicle {number} or chassis {chassis} is already registered.")

    if not registry.validate_vehicle(vehicle_number=number, chassis_number=chassis, owner_nic=owner.nic):
        raise InvalidArgument(f"Vehicle {number} could not be verified with the registry.")

    allowance = to_amount(vehicle_type.weekly_quota)
    vehicle = Vehicle(
        vehicle_number=number,
        chassis_number=chassis,
        vehicle_type=vehicle_type,
        owner=owner,
        fuel_type=vehicle_type.fuel_type,
        weekly_allowance=allowance,
        remaining=allowance,
        qr_payload=vehicle_qr_text(number, vehicle_type.name, owner.nic, allowance),
        qr_token=str(uuid.uuid4()),
        verified=True,
    )
    session.add(vehicle)
    session.flush()
    logger.info("vehicle registered number=%s owner=%s type=%s", number, owner.nic, vehicle_type.name)
    return vehicle


def register_owner(
    session: Session,
    *,
    nic: str,
    first_name: str,
    last_name: str,
    email: str,
    email_channel: DeliveryChannel,
    phone: Optional[str] = None,
    address: Optional[str] = None,
    vehicle_number: Optional[str] = None,
    chassis_number: Optional[str] = None,
    vehicle_type: VehicleType | None = None,
    registry: RegistryValidator | None = None,
    otp_ttl_minutes: int = otp_service.DEFAULT_TTL_MINUTES,
    now: datetime | None = None,
) -> Owner:
    """Create an owner (optionally with a first vehicle) and email a verification code.

    If the code cannot be delivered nothing is kept: the owner, the vehicle
    and the code are all rolled back.
    """

    clean_nic = _require(nic, "NIC").upper()
    first = _require(first_name, "First name")
    last = _require(last_name, "Last name")
    address_email = normalize_email(email)
    registry = registry or NullRegistryValidator()

    if session.execute(select(Owner.owner_id).where(Owner.nic == clean_nic)).first() is not None:
        raise Conflict(f"An owner with NIC {clean_nic} is already registered.")
    if session.execute(select(Owner.owner_id).where(Owner.email == address_email)).first() is not None:
        raise Conflict(f"An owner with email {address_email} is already registered.")

    wants_vehicle = any(value is not None for value in (vehicle_number, chassis_number, vehicle_type))
    if wants_vehicle and (not vehicle_number or not chassis_number or vehicle_type is None):
        raise InvalidArgument("Vehicle number, chassis number and vehicle type are required together.")

    if not registry.validate_owner(nic=clean_nic, first_name=first, last_name=last):
        raise InvalidArgument(f"Owner {clean_nic} could not be verified with the registry.")

    owner = Owner(
        nic=clean_nic,
        first_name=first,
        last_name=last,
        email=address_email,
        phone=phone.strip() if phone else None,
        address=address,
        email_verified=False,
    )
    session.add(owner)
    session.flush()

    if wants_vehicle:
        register_vehicle(
            session,
            owner_nic=owner.nic,
            vehicle_number=vehicle_number,
            chassis_number=chassis_number,
            vehicle_type=vehicle_type,
            registry=registry,
        )

    otp_service.issue(
        session,
        email=address_email,
        purpose=OtpPurpose.EMAIL_VERIFICATION,
        channel=email_channel,
        ttl_minutes=otp_ttl_minutes,
        now=now,
    )
    logger.info("owner registered nic=%s email=%s", clean_nic, address_email)
    return owner


def verify_owner_email(session: Session, *, email: str, code: str, now: datetime | None = None) -> Owner:
    owner = get_owner_by_email(session, email)
    otp_service.verify(session, email=owner.email, code=code, purpose=OtpPurpose.EMAIL_VERIFICATION, now=now)
    if not owner.email_verified:
        owner.email_verified = True
        session.flush()
        logger.info("owner email verified nic=%s", owner.nic)
    return owner


def send_login_otp(
    session: Session,
    *,
    email: str,
    channel: DeliveryChannel,
    ttl_minutes: int = otp_service.DEFAULT_TTL_MINUTES,
    now: datetime | None = None,
) -> Owner:
    owner = get_owner_by_email(session, email)
    if not owner.email_verified:
        raise Conflict("Email address has not been verified yet.")
    otp_service.issue(
        session,
        email=owner.email,
        purpose=OtpPurpose.LOGIN_VERIFICATION,
        channel=channel,
        ttl_minutes=ttl_minutes,
        now=now,
    )
    return owner


def verify_login(session: Session, *, email: str, code: str, now: datetime | None = None) -> Owner:
    owner = get_owner_by_email(session, email)
    otp_service.verify(session, email=owner.email, code=code, purpose=OtpPurpose.LOGIN_VERIFICATION, now=now)
    logger.info("owner logged in nic=%s", owner.nic)
    return owner


def request_qr_issuance(
    session: Session,
    *,
    email: str,
    channel: DeliveryChannel,
    ttl_minutes: int = otp_service.DEFAULT_TTL_MINUTES,
    now: datetime | None = None,
) -> Owner:
    owner = get_owner_by_email(session, email)
    if not owner.email_verified:
        raise Conflict("Email address has not been verified yet.")
    otp_service.issue(
        session,
        email=owner.email,
        purpose=OtpPurpose.QR_CODE_GENERATION,
        channel=channel,
        ttl_minutes=ttl_minutes,
        now=now,
    )
    return owner


def issue_owner_qr(session: Session, *, email: str, code: str, now: datetime | None = None) -> Owner:
    """Verify the QR-generation code and assign the owner a fresh QR identifier."""

    owner = get_owner_by_email(session, email)
    otp_service.verify(session, email=owner.email, code=code, purpose=OtpPurpose.QR_CODE_GENERATION, now=now)
    owner.qr_identifier = str(uuid.uuid4())
    owner.updated_at = as_naive_utc(now)
    session.flush()
    logger.info("owner QR issued nic=%s", owner.nic)
    return owner


def list_owner_vehicles(session: Session, *, nic: str) -> Sequence[Vehicle]:
    owner = get_owner_by_nic(session, nic)
    stmt = select(Vehicle).where(Vehicle.owner_id == owner.owner_id).order_by(Vehicle.vehicle_number.asc())
    return session.execute(stmt).scalars().all()
