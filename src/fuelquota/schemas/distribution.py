"""Pydantic schemas for stations, distributions and inventory."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..models import DistributionStatus, FuelType
from ..utils.validation import MAX_AMOUNT


class StationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=200)
    owner_name: str = Field(..., min_length=1, max_length=100)
    contact_number: str = Field(..., pattern=r"^0[0-9]{9}$", description="Ten digit local phone number.")


class StationRead(BaseModel):
    station_id: int
    name: str
    location: str
    owner_name: str
    contact_number: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class DistributionCreate(BaseModel):
    """Incoming payload for scheduling a shipment."""

    station_id: int
    fuel_type: FuelType
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT, description="Litres shipped.")
    notes: Optional[str] = None


class DistributionStatusUpdate(BaseModel):
    status: DistributionStatus


class DistributionRead(BaseModel):
    distribution_id: int
    station_id: int
    fuel_type: FuelType
    amount: Decimal
    status: DistributionStatus
    reference: str
    notes: Optional[str] = None
    distribution_date: datetime
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class InventoryAmount(BaseModel):
    amount: Decimal = Field(..., ge=0, le=MAX_AMOUNT)


class InventoryRead(BaseModel):
    station_id: int
    fuel_type: FuelType
    amount: Decimal
    updated_at: datetime

    model_config = {"from_attributes": True}
