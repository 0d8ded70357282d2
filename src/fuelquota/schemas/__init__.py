"""Public schema exports."""

from .dispense import (
	DispenseRequest,
	DispenseTransactionRead,
	LookupRequest,
	OwnerSummary,
	QuotaRead,
	ResetSummary,
	VehicleInfo,
)
from .distribution import (
	DistributionCreate,
	DistributionRead,
	DistributionStatusUpdate,
	InventoryAmount,
	InventoryRead,
	StationCreate,
	StationRead,
)
from .registration import (
	CodeSubmission,
	EmailRequest,
	OwnerRead,
	OwnerRegistration,
	VehicleRead,
	VehicleRegistration,
	VehicleTypeCreate,
	VehicleTypeRead,
	VehicleTypeRef,
	VehicleTypeUpdate,
)

__all__ = [
	"CodeSubmission",
	"DispenseRequest",
	"DispenseTransactionRead",
	"DistributionCreate",
	"DistributionRead",
	"DistributionStatusUpdate",
	"EmailRequest",
	"InventoryAmount",
	"InventoryRead",
	"LookupRequest",
	"OwnerRead",
	"OwnerRegistration",
	"OwnerSummary",
	"QuotaRead",
	"ResetSummary",
	"StationCreate",
	"StationRead",
	"VehicleInfo",
	"VehicleRead",
	"VehicleRegistration",
	"VehicleTypeCreate",
	"VehicleTypeRead",
	"VehicleTypeRef",
	"VehicleTypeUpdate",
]
