"""Fuel kinds shared by vehicle types, stations and distributions."""

import enum


class FuelType(str, enum.Enum):
    """Kinds of fuel the quota system rations."""

    DIESEL = "DIESEL"
    PETROL = "PETROL"
    KEROSENE = "KEROSENE"
    ELECTRIC = "ELECTRIC"
