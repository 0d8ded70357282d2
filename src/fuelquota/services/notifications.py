"""Outbound collaborators: email/SMS delivery channels and event publishers."""

from __future__ import annotations

import json
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Any, Optional

import httpx
import redis

from ..core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class DeliveryChannel(ABC):
    """Send a short text message to an address. Raises on failure."""

    @abstractmethod
    def send(self, destination: str, message: str, *, subject: str | None = None) -> None:
        ...

    def close(self) -> None:
        """Release any network resources held by the channel."""


class LoggingChannel(DeliveryChannel):
    """Writes messages to the application log instead of delivering them."""

    def __init__(self, label: str = "message") -> None:
        self.label = label

    def send(self, destination: str, message: str, *, subject: str | None = None) -> None:
        logger.info("%s to %s (%s): %s", self.label, destination, subject or "-", message)


class SmtpEmailChannel(DeliveryChannel):
    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, destination: str, message: str, *, subject: str | None = None) -> None:
        email = EmailMessage()
        email["From"] = self.sender
        email["To"] = destination
        email["Subject"] = subject or "Fuel Quota notification"
        email.set_content(message)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
            if self.use_tls:
                client.starttls()
            if self.username:
                client.login(self.username, self.password or "")
            client.send_message(email)
        logger.info("email sent to %s subject=%r", destination, email["Subject"])


class NotifyLkSmsChannel(DeliveryChannel):
    """SMS gateway client for notify.lk style ``/send`` endpoints."""

    def __init__(
        self,
        *,
        base_url: str,
        user_id: str,
        api_key: str,
        sender_id: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.user_id = user_id
        self.api_key = api_key
        self.sender_id = sender_id
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    @staticmethod
    def format_number(phone: str) -> str:
        """Convert a local ``07XXXXXXXX`` number to the ``947XXXXXXXX`` form."""

        digits = "".join(ch for ch in phone if ch.isdigit())
        if digits.startswith("0"):
            digits = "94" + digits[1:]
        return digits

    def send(self, destination: str, message: str, *, subject: str | None = None) -> None:
        response = self._client.post(
            "/send",
            data={
                "user_id": self.user_id,
                "api_key": self.api_key,
                "sender_id": self.sender_id,
                "to": self.format_number(destination),
                "message": message,
            },
        )
        response.raise_for_status()
        logger.info("sms sent to %s", destination)

    def close(self) -> None:
        self._client.close()


class EventPublisher(ABC):
    """Fire-and-forget sink for domain events."""

    @abstractmethod
    def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        ...

    def close(self) -> None:
        pass


class LoggingEventPublisher(EventPublisher):
    def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        logger.info("event %s: %s", event_type, json.dumps(payload, default=str))


class RedisStreamPublisher(EventPublisher):
    """Appends events to a capped Redis stream."""

    def __init__(self, redis_url: str, stream: str, *, maxlen: int = 1000) -> None:
        self.stream = stream
        self.maxlen = maxlen
        self._redis = redis.from_url(redis_url, decode_responses=True)

    def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        fields = {"event": event_type, "payload": json.dumps(payload, default=str)}
        self._redis.xadd(self.stream, fields, maxlen=self.maxlen)

    def close(self) -> None:
        self._redis.close()


def get_email_channel(settings: Settings | None = None) -> DeliveryChannel:
    settings = settings or get_settings()
    if settings.email_backend == "smtp":
        return SmtpEmailChannel(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.email_sender,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )
    return LoggingChannel("email")


def get_sms_channel(settings: Settings | None = None) -> DeliveryChannel | None:
    """Return the configured SMS channel, or ``None`` when SMS is disabled."""

    settings = settings or get_settings()
    if settings.sms_backend == "notify_lk":
        if not (settings.sms_user_id and settings.sms_api_key and settings.sms_sender_id):
            raise ValueError("notify_lk SMS backend requires user id, api key and sender id")
        return NotifyLkSmsChannel(
            base_url=settings.sms_base_url,
            user_id=settings.sms_user_id,
            api_key=settings.sms_api_key,
            sender_id=settings.sms_sender_id,
        )
    if settings.sms_backend == "log":
        return LoggingChannel("sms")
    return None


def get_event_publisher(settings: Settings | None = None) -> EventPublisher:
    settings = settings or get_settings()
    if settings.event_backend == "redis":
        return RedisStreamPublisher(settings.redis_url, settings.distribution_stream)
    return LoggingEventPublisher()
