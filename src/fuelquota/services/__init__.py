"""Service layer exports."""

from . import (
	credential_resolvers,
	dispense_service,
	distribution_service,
	inventory_service,
	notifications,
	otp_service,
	quota_service,
	registration_service,
	registry_service,
	station_service,
	vehicle_type_service,
)

__all__ = [
	"credential_resolvers",
	"dispense_service",
	"distribution_service",
	"inventory_service",
	"notifications",
	"otp_service",
	"quota_service",
	"registration_service",
	"registry_service",
	"station_service",
	"vehicle_type_service",
]
