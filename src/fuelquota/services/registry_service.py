"""Cross-check of owner and vehicle details against the motor-traffic registry."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ..core.config import Settings, get_settings
from ..core.errors import RegistryUnavailable

logger = logging.getLogger(__name__)


class RegistryValidator(ABC):
    @abstractmethod
    def validate_owner(self, *, nic: str, first_name: str, last_name: str) -> bool:
        ...

    @abstractmethod
    def validate_vehicle(self, *, vehicle_number: str, chassis_number: str, owner_nic: str) -> bool:
        ...

    def close(self) -> None:
        pass


class NullRegistryValidator(RegistryValidator):
    """Accepts everything; used when no registry is configured."""

    def validate_owner(self, *, nic: str, first_name: str, last_name: str) -> bool:
        return True

    def validate_vehicle(self, *, vehicle_number: str, chassis_number: str, owner_nic: str) -> bool:
        return True


class HttpRegistryValidator(RegistryValidator):
    """Calls ``/validate-owner`` and ``/validate-vehicle`` on the registry API.

    A ``200`` with ``{"valid": true}`` is a match; any other answer is a
    mismatch. Transport failures raise :class:`RegistryUnavailable` unless
    ``assume_valid_on_error`` is set, in which case they count as a match and
    an audit warning is logged.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = 5.0,
        assume_valid_on_error: bool = False,
        client: httpx.Client | None = None,
    ) -> None:
        headers = {"X-API-KEY": api_key} if api_key else {}
        self.assume_valid_on_error = assume_valid_on_error
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), headers=headers, timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _unreachable(self, path: str, exc: Exception) -> bool:
        if self.assume_valid_on_error:
            logger.warning("AUDIT registry %s unreachable (%s); treating record as valid", path, exc)
            return True
        logger.error("registry %s unreachable: %s", path, exc)
        raise RegistryUnavailable("Vehicle registry is unavailable, try again later.")

    def _check(self, path: str, body: dict[str, Any]) -> bool:
        try:
            response = self._client.post(path, json=body)
        except httpx.HTTPError as exc:
            return self._unreachable(path, exc)

        if response.status_code != 200:
            logger.info("registry %s answered %s", path, response.status_code)
            return False
        try:
            return bool(response.json().get("valid", False))
        except ValueError as exc:
            return self._unreachable(path, exc)

    def validate_owner(self, *, nic: str, first_name: str, last_name: str) -> bool:
        return self._check("/validate-owner", {"nic": nic, "firstName": first_name, "lastName": last_name})

    def validate_vehicle(self, *, vehicle_number: str, chassis_number: str, owner_nic: str) -> bool:
        return self._check(
            "/validate-vehicle",
            {"vehicleNumber": vehicle_number, "chassisNumber": chassis_number, "ownerNic": owner_nic},
        )


def get_registry_validator(settings: Settings | None = None) -> RegistryValidator:
    settings = settings or get_settings()
    if not settings.registry_url:
        return NullRegistryValidator()
    return HttpRegistryValidator(
        settings.registry_url,
        api_key=settings.registry_api_key,
        timeout=settings.registry_timeout_seconds,
        assume_valid_on_error=settings.registry_assume_valid_on_error,
    )
