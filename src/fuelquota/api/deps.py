"""Dependency providers for pluggable collaborators.

Each provider is a plain function so tests can swap it through
``app.dependency_overrides``. Collaborators holding connections are built
once per process and released by :func:`close_collaborators` on shutdown.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from ..core.config import Settings, get_settings
from ..services.credential_resolvers import CredentialResolver, get_credential_resolver
from ..services.notifications import (
    DeliveryChannel,
    EventPublisher,
    get_email_channel,
    get_event_publisher,
    get_sms_channel,
)
from ..services.registry_service import RegistryValidator, get_registry_validator

logger = logging.getLogger(__name__)


def settings_dependency() -> Settings:
    return get_settings()


@lru_cache(maxsize=1)
def resolver_dependency() -> CredentialResolver:
    return get_credential_resolver(get_settings())


@lru_cache(maxsize=1)
def email_channel_dependency() -> DeliveryChannel:
    return get_email_channel(get_settings())


@lru_cache(maxsize=1)
def sms_channel_dependency() -> DeliveryChannel | None:
    return get_sms_channel(get_settings())


@lru_cache(maxsize=1)
def event_publisher_dependency() -> EventPublisher:
    return get_event_publisher(get_settings())


@lru_cache(maxsize=1)
def registry_dependency() -> RegistryValidator:
    return get_registry_validator(get_settings())


_CLOSEABLE = (email_channel_dependency, sms_channel_dependency, event_publisher_dependency, registry_dependency)


def close_collaborators() -> None:
    """Close every collaborator built so far and forget it."""

    for provider in _CLOSEABLE:
        if provider.cache_info().currsize:
            collaborator = provider()
            if collaborator is not None:
                collaborator.close()
        provider.cache_clear()
    resolver_dependency.cache_clear()
    logger.info("collaborators closed")
