"""Mapping of scanned QR payloads to vehicle numbers.

Which scheme is active is a deployment decision (``FUELQUOTA_CREDENTIAL_SCHEME``);
the dispense path only depends on :class:`CredentialResolver`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..core.errors import InvalidArgument, UnknownCredential
from ..models import Vehicle

VEHICLE_NUMBER_LABEL = "Vehicle Number:"


class CredentialResolver(ABC):
    """Turn an opaque credential payload into a vehicle number."""

    name: str = "abstract"

    @abstractmethod
    def resolve(self, session: Session, payload: str) -> str:
        """Return the vehicle number or raise :class:`UnknownCredential`."""


def _require_payload(payload: Optional[str]) -> str:
    if payload is None or not payload.strip():
        raise InvalidArgument("Credential payload is required.")
    return payload.strip()


class QrTextResolver(CredentialResolver):
    """Reads the ``Vehicle Number:`` line of the human-readable QR text."""

    name = "qr_text"

    def resolve(self, session: Session, payload: str) -> str:
        text = _require_payload(payload)
        vehicle_number = None
        for line in text.splitlines():
            line = line.strip()
            if line.startswith(VEHICLE_NUMBER_LABEL):
                vehicle_number = line[len(VEHICLE_NUMBER_LABEL):].strip()
                break
        if not vehicle_number:
            raise UnknownCredential("QR payload does not contain a vehicle number.")

        stmt = select(Vehicle.vehicle_number).where(Vehicle.vehicle_number == vehicle_number)
        if session.execute(stmt).scalar_one_or_none() is None:
            raise UnknownCredential(f"No vehicle registered under {vehicle_number}.")
        return vehicle_number


class QrTokenResolver(CredentialResolver):
    """Looks up the opaque per-vehicle token embedded in the QR code."""

    name = "qr_token"

    def resolve(self, session: Session, payload: str) -> str:
        token = _require_payload(payload)
        stmt = select(Vehicle.vehicle_number).where(Vehicle.qr_token == token)
        vehicle_number = session.execute(stmt).scalar_one_or_none()
        if vehicle_number is None:
            raise UnknownCredential("QR token is not associated with any vehicle.")
        return vehicle_number


_RESOLVERS = {
    QrTextResolver.name: QrTextResolver,
    QrTokenResolver.name: QrTokenResolver,
}


def get_credential_resolver(settings: Settings | None = None) -> CredentialResolver:
    """Build the resolver selected by ``credential_scheme``."""

    settings = settings or get_settings()
    resolver_cls = _RESOLVERS.get(settings.credential_scheme)
    if resolver_cls is None:
        raise ValueError(f"Unsupported credential scheme: {settings.credential_scheme}")
    return resolver_cls()
