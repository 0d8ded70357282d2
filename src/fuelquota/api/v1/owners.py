"""Endpoints for vehicle types, owner registration and verification codes."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ...core.config import Settings
from ...core.database import get_db
from ...core.errors import FuelQuotaError
from ...models import FuelType
from ...schemas import (
    CodeSubmission,
    EmailRequest,
    OwnerRead,
    OwnerRegistration,
    VehicleRead,
    VehicleRegistration,
    VehicleTypeCreate,
    VehicleTypeRead,
    VehicleTypeUpdate,
)
from ...services import registration_service, vehicle_type_service
from ...services.notifications import DeliveryChannel
from ...services.registry_service import RegistryValidator
from ..deps import email_channel_dependency, registry_dependency, settings_dependency

router = APIRouter(tags=["owners"])


def _fail(db: Session, exc: FuelQuotaError) -> HTTPException:
    db.rollback()
    return HTTPException(status_code=exc.status_code, detail=exc.detail)


@router.post(
    "/vehicle-types",
    response_model=VehicleTypeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a vehicle type",
)
def create_vehicle_type(payload: VehicleTypeCreate, db: Session = Depends(get_db)) -> VehicleTypeRead:
    try:
        vehicle_type = vehicle_type_service.create_vehicle_type(
            db,
            name=payload.name,
            fuel_type=payload.fuel_type,
            weekly_quota=payload.weekly_quota,
            description=payload.description,
        )
        db.commit()
        db.refresh(vehicle_type)
        return vehicle_type
    except FuelQuotaError as exc:
        raise _fail(db, exc) from exc


@router.get("/vehicle-types", response_model=List[VehicleTypeRead], summary="List vehicle types")
def list_vehicle_types(fuel_type: Optional[FuelType] = None, db: Session = Depends(get_db)) -> List[VehicleTypeRead]:
    return vehicle_type_service.list_vehicle_types(db, fuel_type=fuel_type)


@router.patch("/vehicle-types/{vehicle_type_id}", response_model=VehicleTypeRead, summary="Update a vehicle type")
def update_vehicle_type(
    vehicle_type_id: int, payload: VehicleTypeUpdate, db: Session = Depends(get_db)
) -> VehicleTypeRead:
    try:
        vehicle_type = vehicle_type_service.update_vehicle_type(
            db,
            vehicle_type_id,
            name=payload.name,
            fuel_type=payload.fuel_type,
            weekly_quota=payload.weekly_quota,
            description=payload.description,
        )
        db.commit()
        db.refresh(vehicle_type)
        return vehicle_type
    except FuelQuotaError as exc:
        raise _fail(db, exc) from exc


@router.delete(
    "/vehicle-types/{vehicle_type_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an unused vehicle type",
    responses={409: {"description": "Vehicle type still referenced by vehicles"}},
)
def delete_vehicle_type(vehicle_type_id: int, db: Session = Depends(get_db)) -> Response:
    try:
        vehicle_type_service.delete_vehicle_type(db, vehicle_type_id)
        db.commit()
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except FuelQuotaError as exc:
        raise _fail(db, exc) from exc


@router.post(
    "/owners",
    response_model=OwnerRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register an owner and send an email verification code",
    responses={
        400: {"description": "Invalid input or registry mismatch"},
        409: {"description": "NIC, email or vehicle already registered"},
        502: {"description": "Verification email could not be delivered"},
        503: {"description": "Registry unavailable"},
    },
)
def register_owner(
    payload: OwnerRegistration,
    db: Session = Depends(get_db),
    email_channel: DeliveryChannel = Depends(email_channel_dependency),
    registry: RegistryValidator = Depends(registry_dependency),
    settings: Settings = Depends(settings_dependency),
) -> OwnerRead:
    """Register an owner.

    Example request body::

        {
            "nic": "199012345678",
            "first_name": "Nimal",
            "last_name": "Perera",
            "email": "nimal@example.lk",
            "phone": "0771234567",
            "vehicle": {
                "vehicle_number": "CAB-1234",
                "chassis_number": "NZE141-0012345",
                "vehicle_type": {"kind": "name", "value": "Car"}
            }
        }
    """

    try:
        vehicle_kwargs = {}
        if payload.vehicle is not None:
            ref = payload.vehicle.vehicle_type
            vehicle_kwargs = {
                "vehicle_number": payload.vehicle.vehicle_number,
                "chassis_number": payload.vehicle.chassis_number,
                "vehicle_type": vehicle_type_service.resolve_vehicle_type_ref(db, kind=ref.kind, value=ref.value),
            }
        owner = registration_service.register_owner(
            db,
            nic=payload.nic,
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            phone=payload.phone,
            address=payload.address,
            email_channel=email_channel,
            registry=registry,
            otp_ttl_minutes=settings.otp_ttl_minutes,
            **vehicle_kwargs,
        )
        db.commit()
        db.refresh(owner)
        return owner
    except FuelQuotaError as exc:
        raise _fail(db, exc) from exc


@router.post("/owners/verify-email", response_model=OwnerRead, summary="Confirm the email verification code")
def verify_email(payload: CodeSubmission, db: Session = Depends(get_db)) -> OwnerRead:
    try:
        owner = registration_service.verify_owner_email(db, email=payload.email, code=payload.code)
        db.commit()
        db.refresh(owner)
        return owner
    except FuelQuotaError as exc:
        raise _fail(db, exc) from exc


@router.post("/owners/login/otp", status_code=status.HTTP_202_ACCEPTED, summary="Email a login code")
def request_login_code(
    payload: EmailRequest,
    db: Session = Depends(get_db),
    email_channel: DeliveryChannel = Depends(email_channel_dependency),
    settings: Settings = Depends(settings_dependency),
) -> dict[str, str]:
    try:
        registration_service.send_login_otp(
            db, email=payload.email, channel=email_channel, ttl_minutes=settings.otp_ttl_minutes
        )
        db.commit()
        return {"status": "sent"}
    except FuelQuotaError as exc:
        raise _fail(db, exc) from exc


@router.post("/owners/login/verify", response_model=OwnerRead, summary="Log in with an emailed code")
def verify_login(payload: CodeSubmission, db: Session = Depends(get_db)) -> OwnerRead:
    try:
        owner = registration_service.verify_login(db, email=payload.email, code=payload.code)
        db.commit()
        db.refresh(owner)
        return owner
    except FuelQuotaError as exc:
        raise _fail(db, exc) from exc


@router.post("/owners/qr/otp", status_code=status.HTTP_202_ACCEPTED, summary="Email a QR generation code")
def request_qr_code(
    payload: EmailRequest,
    db: Session = Depends(get_db),
    email_channel: DeliveryChannel = Depends(email_channel_dependency),
    settings: Settings = Depends(settings_dependency),
) -> dict[str, str]:
    try:
        registration_service.request_qr_issuance(
            db, email=payload.email, channel=email_channel, ttl_minutes=settings.otp_ttl_minutes
        )
        db.commit()
        return {"status": "sent"}
    except FuelQuotaError as exc:
        raise _fail(db, exc) from exc


@router.post("/owners/qr", response_model=OwnerRead, summary="Issue the owner QR code")
def issue_qr(payload: CodeSubmission, db: Session = Depends(get_db)) -> OwnerRead:
    try:
        owner = registration_service.issue_owner_qr(db, email=payload.email, code=payload.code)
        db.commit()
        db.refresh(owner)
        return owner
    except FuelQuotaError as exc:
        raise _fail(db, exc) from exc


@router.post(
    "/owners/{nic}/vehicles",
    response_model=VehicleRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register another vehicle for an owner",
)
def add_vehicle(
    nic: str,
    payload: VehicleRegistration,
    db: Session = Depends(get_db),
    registry: RegistryValidator = Depends(registry_dependency),
) -> VehicleRead:
    try:
        ref = payload.vehicle_type
        vehicle = registration_service.register_vehicle(
            db,
            owner_nic=nic,
            vehicle_number=payload.vehicle_number,
            chassis_number=payload.chassis_number,
            vehicle_type=vehicle_type_service.resolve_vehicle_type_ref(db, kind=ref.kind, value=ref.value),
            registry=registry,
        )
        db.commit()
        db.refresh(vehicle)
        return vehicle
    except FuelQuotaError as exc:
        raise _fail(db, exc) from exc


@router.get("/owners/{nic}/vehicles", response_model=List[VehicleRead], summary="Vehicles owned by an owner")
def list_vehicles(nic: str, db: Session = Depends(get_db)) -> List[VehicleRead]:
    try:
        return registration_service.list_owner_vehicles(db, nic=nic)
    except FuelQuotaError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
