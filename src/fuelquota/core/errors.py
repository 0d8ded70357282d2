"""Typed failures raised by the service layer.

Every business-rule rejection is a subclass of :class:`FuelQuotaError` so that
callers can handle the whole family in one ``except`` clause, while the
``status_code`` attribute lets the HTTP layer translate it without a lookup
table. Infrastructure problems (database down, driver errors) are *not*
wrapped and propagate as-is.
"""

from __future__ import annotations


class FuelQuotaError(Exception):
    """Base class for expected, caller-recoverable failures."""

    status_code = 400

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class NotFound(FuelQuotaError):
    """Unknown vehicle, station, distribution or OTP subject."""

    status_code = 404


class InvalidArgument(FuelQuotaError):
    """Non-positive amount, malformed credential or bad input."""

    status_code = 400


class Conflict(FuelQuotaError):
    """Uniqueness or referential rule would be broken."""

    status_code = 409


class InsufficientQuota(FuelQuotaError):
    """Debit larger than the remaining weekly allowance."""

    status_code = 409

    def __init__(self, detail: str, remaining=None) -> None:
        super().__init__(detail)
        self.remaining = remaining


class InsufficientStock(FuelQuotaError):
    """Consumption larger than the station's stock."""

    status_code = 409

    def __init__(self, detail: str, available=None) -> None:
        super().__init__(detail)
        self.available = available


class InvalidTransition(FuelQuotaError):
    """Distribution status change not allowed from the current state."""

    status_code = 409


class OtpExpired(FuelQuotaError):
    status_code = 410


class OtpMismatch(FuelQuotaError):
    status_code = 400


class UnknownCredential(FuelQuotaError):
    """Scanned payload could not be mapped to a vehicle."""

    status_code = 404


class DeliveryFailed(FuelQuotaError):
    """Out-of-band delivery (email/SMS) failed while it was mandatory."""

    status_code = 502


class RegistryUnavailable(FuelQuotaError):
    """External vehicle registry could not be reached."""

    status_code = 503
