"""Pydantic schemas for vehicle types, owners and verification codes."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ..models import FuelType
from ..utils.validation import MAX_AMOUNT


class VehicleTypeRef(BaseModel):
    """Reference to a vehicle type either by numeric id or by name."""

    kind: Literal["id", "name"]
    value: Union[int, str]

    @field_validator("value")
    @classmethod
    def _not_blank(cls, value):
        if isinstance(value, str) and not value.strip():
            raise ValueError("vehicle type reference value must not be blank")
        return value


class VehicleTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    fuel_type: FuelType
    weekly_quota: Decimal = Field(..., gt=0, le=MAX_AMOUNT, description="Litres allowed per week.")
    description: Optional[str] = None


class VehicleTypeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    fuel_type: Optional[FuelType] = None
    weekly_quota: Optional[Decimal] = Field(default=None, gt=0, le=MAX_AMOUNT)
    description: Optional[str] = None


class VehicleTypeRead(BaseModel):
    vehicle_type_id: int
    name: str
    fuel_type: FuelType
    weekly_quota: Decimal
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class VehicleRegistration(BaseModel):
    vehicle_number: str = Field(..., min_length=1, max_length=20)
    chassis_number: str = Field(..., min_length=1, max_length=50)
    vehicle_type: VehicleTypeRef


class OwnerRegistration(BaseModel):
    """Owner sign-up, optionally carrying the first vehicle."""

    nic: str = Field(..., min_length=1, max_length=20)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=255)
    vehicle: Optional[VehicleRegistration] = None


class VehicleRead(BaseModel):
    vehicle_id: int
    vehicle_number: str
    chassis_number: str
    fuel_type: FuelType
    weekly_allowance: Decimal
    remaining: Decimal
    qr_payload: Optional[str] = None
    qr_token: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class OwnerRead(BaseModel):
    owner_id: int
    nic: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    email_verified: bool
    qr_content: Optional[str] = None
    vehicles: list[VehicleRead] = []

    model_config = {"from_attributes": True}


class EmailRequest(BaseModel):
    email: str = Field(..., max_length=255)


class CodeSubmission(BaseModel):
    email: str = Field(..., max_length=255)
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^[0-9]{6}$")
