"""Endpoints for fuel stations, shipments and station inventory."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.errors import FuelQuotaError
from ...models import DistributionStatus, FuelType
from ...schemas import (
    DistributionCreate,
    DistributionRead,
    DistributionStatusUpdate,
    InventoryAmount,
    InventoryRead,
    StationCreate,
    StationRead,
)
from ...services import distribution_service, inventory_service, station_service
from ...services.notifications import EventPublisher
from ..deps import event_publisher_dependency

router = APIRouter(tags=["distribution"])


@router.post("/stations", response_model=StationRead, status_code=status.HTTP_201_CREATED, summary="Register a station")
def create_station(payload: StationCreate, db: Session = Depends(get_db)) -> StationRead:
    try:
        station = station_service.create_station(
            db,
            name=payload.name,
            location=payload.location,
            owner_name=payload.owner_name,
            contact_number=payload.contact_number,
        )
        db.commit()
        db.refresh(station)
        return station
    except FuelQuotaError as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/stations", response_model=List[StationRead], summary="List stations")
def list_stations(active: Optional[bool] = None, db: Session = Depends(get_db)) -> List[StationRead]:
    return station_service.list_stations(db, active=active)


@router.post(
    "/distributions",
    response_model=DistributionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a fuel shipment",
    responses={
        201: {
            "description": "Shipment recorded in PENDING",
            "content": {
                "application/json": {
                    "example": {
                        "distribution_id": 11,
                        "station_id": 3,
                        "fuel_type": "DIESEL",
                        "amount": "1500.00",
                        "status": "PENDING",
                        "reference": "DIST-20260105-9F3A1C07",
                        "notes": None,
                        "distribution_date": "2026-01-05T08:15:00",
                        "completed_at": None,
                    }
                }
            },
        },
        400: {"description": "Invalid amount or fuel type"},
        404: {"description": "Station not found"},
    },
)
def create_distribution(
    payload: DistributionCreate,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(event_publisher_dependency),
) -> DistributionRead:
    try:
        distribution = distribution_service.create_distribution(
            db,
            station_id=payload.station_id,
            fuel_type=payload.fuel_type,
            amount=payload.amount,
            notes=payload.notes,
            publisher=publisher,
        )
        db.commit()
        db.refresh(distribution)
        return distribution
    except FuelQuotaError as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/distributions/recent", response_model=List[DistributionRead], summary="Latest shipments")
def list_recent(limit: int = Query(20, ge=1, le=100), db: Session = Depends(get_db)) -> List[DistributionRead]:
    return distribution_service.list_recent(db, limit=limit)


@router.get("/distributions/stats", response_model=Dict[str, Decimal], summary="Delivered volume per fuel type")
def distribution_stats(db: Session = Depends(get_db)) -> Dict[str, Decimal]:
    return distribution_service.stats_by_fuel_type(db)


@router.get("/distributions/{distribution_id}", response_model=DistributionRead, summary="Shipment details")
def read_distribution(distribution_id: int, db: Session = Depends(get_db)) -> DistributionRead:
    try:
        return distribution_service.get_distribution(db, distribution_id)
    except FuelQuotaError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.patch(
    "/distributions/{distribution_id}/status",
    response_model=DistributionRead,
    summary="Advance a shipment's status",
    responses={404: {"description": "Distribution not found"}, 409: {"description": "Transition not allowed"}},
)
def update_status(
    distribution_id: int,
    payload: DistributionStatusUpdate,
    db: Session = Depends(get_db),
) -> DistributionRead:
    try:
        distribution = distribution_service.set_status(db, distribution_id=distribution_id, status=payload.status)
        db.commit()
        db.refresh(distribution)
        return distribution
    except FuelQuotaError as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get(
    "/stations/{station_id}/distributions",
    response_model=List[DistributionRead],
    summary="Shipments for a station, newest first",
)
def list_station_distributions(
    station_id: int,
    status_filter: Optional[DistributionStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[DistributionRead]:
    try:
        return distribution_service.list_for_station(
            db, station_id=station_id, status=status_filter, limit=limit, offset=offset
        )
    except FuelQuotaError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/stations/{station_id}/inventory", response_model=List[InventoryRead], summary="Station stock levels")
def list_inventory(station_id: int, db: Session = Depends(get_db)) -> List[InventoryRead]:
    try:
        return inventory_service.list_inventory(db, station_id=station_id)
    except FuelQuotaError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


def _inventory_action(action, db: Session, station_id: int, fuel_type: FuelType, amount: Decimal):
    try:
        inventory = action(db, station_id=station_id, fuel_type=fuel_type, amount=amount)
        db.commit()
        db.refresh(inventory)
        return inventory
    except FuelQuotaError as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.put("/stations/{station_id}/inventory/{fuel_type}", response_model=InventoryRead, summary="Set stock level")
def set_inventory(
    station_id: int, fuel_type: FuelType, payload: InventoryAmount, db: Session = Depends(get_db)
) -> InventoryRead:
    return _inventory_action(inventory_service.set_amount, db, station_id, fuel_type, payload.amount)


@router.post(
    "/stations/{station_id}/inventory/{fuel_type}/consume",
    response_model=InventoryRead,
    summary="Draw down stock",
)
def consume_inventory(
    station_id: int, fuel_type: FuelType, payload: InventoryAmount, db: Session = Depends(get_db)
) -> InventoryRead:
    return _inventory_action(inventory_service.consume, db, station_id, fuel_type, payload.amount)


@router.post(
    "/stations/{station_id}/inventory/{fuel_type}/restock",
    response_model=InventoryRead,
    summary="Add stock",
)
def restock_inventory(
    station_id: int, fuel_type: FuelType, payload: InventoryAmount, db: Session = Depends(get_db)
) -> InventoryRead:
    return _inventory_action(inventory_service.restock, db, station_id, fuel_type, payload.amount)
