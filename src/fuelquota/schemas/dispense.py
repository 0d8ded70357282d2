"""Pydantic schemas for the dispense and quota endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..utils.validation import MAX_AMOUNT


class OwnerSummary(BaseModel):
    nic: str
    first_name: str
    last_name: str
    phone: Optional[str] = None

    model_config = {"from_attributes": True}


class VehicleInfo(BaseModel):
    """Vehicle quota snapshot returned to the station operator."""

    vehicle_id: int
    vehicle_number: str
    fuel_type: str
    remaining: Decimal = Field(..., description="Remaining weekly allowance in litres.")
    weekly_allowance: Decimal
    vehicle_type: str
    owner: OwnerSummary
    transaction_id: Optional[int] = None
    replayed: bool = False

    model_config = {"from_attributes": True}


class DispenseRequest(BaseModel):
    """Scanned credential plus the litres to pump."""

    credential: str = Field(..., min_length=1, description="Raw QR payload as scanned.")
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT, description="Litres to dispense.")
    station_id: Optional[int] = None
    idempotency_key: Optional[str] = Field(default=None, max_length=100)


class LookupRequest(BaseModel):
    credential: str = Field(..., min_length=1)


class QuotaRead(BaseModel):
    vehicle_number: str
    remaining: Decimal
    weekly_allowance: Decimal
    last_reset_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DispenseTransactionRead(BaseModel):
    transaction_id: int
    vehicle_id: int
    station_id: Optional[int] = None
    amount: Decimal
    remaining_after: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class ResetSummary(BaseModel):
    vehicles_reset: int
