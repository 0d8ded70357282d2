"""Input normalisation shared by the services."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from ..core.errors import InvalidArgument
from ..models import FuelType

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
AMOUNT_QUANTUM = Decimal("0.01")
# Largest volume a single column or request may carry.
MAX_AMOUNT = Decimal("9999999999.99")


def to_amount(value, label: str = "Amount") -> Decimal:
    """Convert ``value`` to a two-place Decimal.

    NaN, infinities and magnitudes above :data:`MAX_AMOUNT` are rejected.
    """

    if isinstance(value, bool) or value is None:
        raise InvalidArgument(f"{label} must be a number.")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidArgument(f"{label} must be a number.") from exc
    if not amount.is_finite():
        raise InvalidArgument(f"{label} must be a finite number.")
    try:
        amount = amount.quantize(AMOUNT_QUANTUM)
    except InvalidOperation as exc:
        raise InvalidArgument(f"{label} is out of range.") from exc
    if abs(amount) > MAX_AMOUNT:
        raise InvalidArgument(f"{label} cannot exceed {MAX_AMOUNT}.")
    return amount


def require_positive(value, label: str = "Amount") -> Decimal:
    amount = to_amount(value, label)
    if amount <= 0:
        raise InvalidArgument(f"{label} must be greater than zero.")
    return amount


def require_non_negative(value, label: str = "Amount") -> Decimal:
    amount = to_amount(value, label)
    if amount < 0:
        raise InvalidArgument(f"{label} cannot be negative.")
    return amount


def parse_fuel_type(value) -> FuelType:
    if isinstance(value, FuelType):
        return value
    try:
        return FuelType(str(value).strip().upper())
    except ValueError as exc:
        raise InvalidArgument(f"Invalid fuel type: {value}") from exc


def normalize_email(email: str) -> str:
    candidate = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(candidate):
        raise InvalidArgument("Invalid email address")
    return candidate
