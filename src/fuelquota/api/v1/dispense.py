"""Endpoints used by station operators to check and pump quota."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...core.config import Settings
from ...core.database import get_db
from ...core.errors import FuelQuotaError
from ...schemas import DispenseRequest, DispenseTransactionRead, LookupRequest, QuotaRead, ResetSummary, VehicleInfo
from ...services import dispense_service, quota_service
from ...services.credential_resolvers import CredentialResolver
from ...services.notifications import DeliveryChannel
from ..deps import resolver_dependency, settings_dependency, sms_channel_dependency

router = APIRouter(tags=["dispense"])


@router.post(
    "/dispense",
    response_model=VehicleInfo,
    status_code=status.HTTP_200_OK,
    summary="Dispense fuel against a scanned QR credential",
    responses={
        200: {
            "description": "Fuel dispensed",
            "content": {
                "application/json": {
                    "example": {
                        "vehicle_id": 7,
                        "vehicle_number": "CAB-1234",
                        "fuel_type": "PETROL",
                        "remaining": "12.00",
                        "weekly_allowance": "20.00",
                        "vehicle_type": "Car",
                        "owner": {"nic": "199012345678", "first_name": "Nimal", "last_name": "Perera", "phone": "0771234567"},
                        "transaction_id": 42,
                        "replayed": False,
                    }
                }
            },
        },
        400: {"description": "Invalid amount or credential"},
        404: {"description": "Credential does not match any vehicle"},
        409: {"description": "Quota exceeded or idempotency key reused"},
    },
)
def dispense_fuel(
    payload: DispenseRequest,
    db: Session = Depends(get_db),
    resolver: CredentialResolver = Depends(resolver_dependency),
    sms_channel: DeliveryChannel | None = Depends(sms_channel_dependency),
    settings: Settings = Depends(settings_dependency),
) -> VehicleInfo:
    """Debit the vehicle's weekly quota.

    Example request body::

        {
            "credential": "Vehicle Number: CAB-1234\\nVehicle Type: Car\\nOwner NIC: 199012345678\\nWeekly Quota: 20.00 L",
            "amount": 8,
            "station_id": 3,
            "idempotency_key": "pump-3-000981"
        }
    """

    try:
        result = dispense_service.dispense(
            db,
            credential=payload.credential,
            amount=payload.amount,
            resolver=resolver,
            sms_channel=sms_channel,
            station_id=payload.station_id,
            idempotency_key=payload.idempotency_key,
            dedup_seconds=settings.dispense_dedup_seconds,
        )
        db.commit()
        return VehicleInfo.model_validate(result)
    except FuelQuotaError as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post("/dispense/lookup", response_model=VehicleInfo, summary="Show quota for a scanned credential")
def lookup_vehicle(
    payload: LookupRequest,
    db: Session = Depends(get_db),
    resolver: CredentialResolver = Depends(resolver_dependency),
) -> VehicleInfo:
    try:
        result = dispense_service.lookup_vehicle(db, credential=payload.credential, resolver=resolver)
        return VehicleInfo.model_validate(result)
    except FuelQuotaError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/vehicles/{vehicle_number}/quota", response_model=QuotaRead, summary="Remaining weekly quota")
def read_quota(vehicle_number: str, db: Session = Depends(get_db)) -> QuotaRead:
    try:
        vehicle = quota_service.get_vehicle(db, vehicle_number)
        return QuotaRead.model_validate(vehicle)
    except FuelQuotaError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get(
    "/vehicles/{vehicle_number}/transactions",
    response_model=List[DispenseTransactionRead],
    summary="Dispense history for a vehicle",
)
def read_transactions(
    vehicle_number: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[DispenseTransactionRead]:
    try:
        return dispense_service.list_transactions(db, vehicle_number=vehicle_number, limit=limit, offset=offset)
    except FuelQuotaError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post("/quotas/reset", response_model=ResetSummary, summary="Restore every vehicle's weekly allowance")
def reset_quotas(db: Session = Depends(get_db)) -> ResetSummary:
    summary = quota_service.reset_all(db)
    db.commit()
    return ResetSummary(**summary)
