"""SQLAlchemy models for the fuel quota service."""

from .dispense_transaction import DispenseTransaction
from .fuel_distribution import DistributionStatus, FuelDistribution
from .fuel_inventory import FuelInventory
from .fuel_station import FuelStation
from .fuel_type import FuelType
from .litres import Litres
from .otp_record import OtpPurpose, OtpRecord
from .owner import Owner
from .vehicle import Vehicle
from .vehicle_type import VehicleType

__all__ = [
    "DispenseTransaction",
    "DistributionStatus",
    "FuelDistribution",
    "FuelInventory",
    "FuelStation",
    "FuelType",
    "Litres",
    "OtpPurpose",
    "OtpRecord",
    "Owner",
    "Vehicle",
    "VehicleType",
]
