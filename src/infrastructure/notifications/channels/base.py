# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base classes for messaging providers.

This module defines the abstract provider contract and shared types for
every messaging channel. Each provider delivers through one external
transport (SMS gateway, Kakao Alimtalk, SMTP).

Providers never raise for ordinary send failures: a failed delivery is
returned as ``SendMessageResponse(success=False, error=...)`` with a
human-readable error. Only configuration problems detected at
construction time raise (ProviderConfigurationError).
"""

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import httpx

# Bodies up to this many UTF-8 bytes go out as SMS, longer ones as LMS
SMS_BYTE_LIMIT = 90


class MessageChannel(str, Enum):
    """Logical messaging channels."""

    SMS = "sms"
    LMS = "lms"
    KAKAO = "kakao"
    EMAIL = "email"


class DeliveryStatus(str, Enum):
    """Delivery status of a message.

    PENDING is only reported by provider status polling; ledger rows start
    as SENT or FAILED.
    """

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"


class NotificationError(Exception):
    """Base exception for messaging infrastructure errors."""


class UnconfiguredChannelError(NotificationError):
    """Raised when no provider is registered for a channel."""

    def __init__(self, channel: MessageChannel, available: list[MessageChannel] | None = None) -> None:
        self.channel = channel
        self.available = available or []
        names = ", ".join(c.value for c in self.available) or "none"
        super().__init__(
            f"No provider configured for channel: {channel.value}. "
            f"Available channels: {names}"
        )


class ProviderConfigurationError(NotificationError):
    """Raised when a provider is constructed without required credentials."""


class ProviderRequestError(NotificationError):
    """Raised when a balance or status query cannot be completed."""


@dataclass(frozen=True)
class MessageRecipient:
    """Message recipient.

    Attributes:
        name: Display name recorded in the ledger.
        phone: Phone number for SMS, LMS and Kakao.
        email: Email address for the email channel.
    """

    name: str
    phone: str | None = None
    email: str | None = None

    def contact_for(self, channel: MessageChannel) -> str | None:
        """Return the contact used on the given channel."""
        if channel == MessageChannel.EMAIL:
            return self.email
        return self.phone


@dataclass(frozen=True)
class MessageContent:
    """Formatted message content.

    Attributes:
        body: Message text (HTML for email, empty for Kakao templates).
        subject: Optional subject line (LMS and email).
        template_id: Server-side template for template channels.
        variables: Template variable values keyed by variable name.
        text_body: Plain text alternative for HTML bodies.
    """

    body: str
    subject: str | None = None
    template_id: str | None = None
    variables: Mapping[str, str] = field(default_factory=dict)
    text_body: str | None = None

    def snapshot(self) -> str:
        """Return the text recorded in the delivery ledger.

        Template messages have no body of their own, so the template id and
        variables are recorded instead.
        """
        if self.body or not self.template_id:
            return self.body
        values = "; ".join(f"{key}={value}" for key, value in self.variables.items())
        return f"[{self.template_id}] {values}".strip()


@dataclass(frozen=True)
class SendMessageRequest:
    """A single message to send.

    Attributes:
        channel: Channel to send on.
        recipient: Who receives the message.
        content: Formatted content.
        metadata: Opaque correlation data, passed through untouched.
    """

    channel: MessageChannel
    recipient: MessageRecipient
    content: MessageContent
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class SendMessageResponse:
    """Result of a provider send operation.

    Attributes:
        success: Whether the transport accepted the message.
        message_id: Provider-assigned message id (on success).
        cost: Recorded cost of the message (on success).
        error: Human-readable failure reason (on failure).
    """

    success: bool
    message_id: str | None = None
    cost: float | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "success": self.success,
            "message_id": self.message_id,
            "cost": self.cost,
            "error": self.error,
        }


@dataclass(frozen=True)
class BalanceInfo:
    """Remaining sendable credit reported by a provider."""

    balance: float
    currency: str


@dataclass(frozen=True)
class DeliveryStatusResponse:
    """Delivery status reported by a provider.

    Attributes:
        status: PENDING, DELIVERED or FAILED.
        delivered_at: When the message reached the handset.
        failure_reason: Why delivery failed.
    """

    status: DeliveryStatus
    delivered_at: datetime | None = None
    failure_reason: str | None = None


def sanitize_phone(phone: str) -> str:
    """Reduce a phone number to its digits.

    Args:
        phone: Phone number in any format (``010-1234-5678``).

    Returns:
        Digits only (``01012345678``).
    """
    return re.sub(r"[^0-9]", "", phone)


def determine_message_type(body: str, channel: MessageChannel) -> str:
    """Choose between SMS and LMS framing for a text message.

    The LMS channel always sends LMS. On the SMS channel, bodies within
    SMS_BYTE_LIMIT UTF-8 bytes go out as SMS and longer bodies as LMS.

    Args:
        body: Message text.
        channel: Requested channel.

    Returns:
        "SMS" or "LMS".
    """
    if channel == MessageChannel.LMS:
        return "LMS"
    return "SMS" if len(body.encode("utf-8")) <= SMS_BYTE_LIMIT else "LMS"


class BaseProvider(ABC):
    """Abstract base class for messaging providers.

    Attributes:
        name: Provider name recorded in the delivery ledger.
        channel: The channel this provider instance serves.
    """

    name: str = "base"

    def __init__(self, channel: MessageChannel) -> None:
        """Initialize the provider.

        Args:
            channel: The channel this instance serves.
        """
        self._channel = channel
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def channel(self) -> MessageChannel:
        """Return the channel served by this provider."""
        return self._channel

    @abstractmethod
    async def send(self, request: SendMessageRequest) -> SendMessageResponse:
        """Send a message through this provider.

        Args:
            request: The message to send.

        Returns:
            SendMessageResponse; failures are returned, not raised.
        """
        ...

    @abstractmethod
    async def check_balance(self) -> BalanceInfo:
        """Query the remaining sendable credit.

        Returns:
            BalanceInfo with balance and currency.

        Raises:
            ProviderRequestError: If the transport cannot be queried.
        """
        ...

    @abstractmethod
    async def get_delivery_status(self, message_id: str) -> DeliveryStatusResponse:
        """Poll the transport for the delivery status of a message.

        Args:
            message_id: Provider-assigned message id.

        Returns:
            DeliveryStatusResponse.

        Raises:
            ProviderRequestError: If the transport cannot be queried.
        """
        ...

    async def aclose(self) -> None:
        """Release transport resources held by the provider."""

    def create_success_response(
        self,
        message_id: str | None,
        cost: float | None = None,
    ) -> SendMessageResponse:
        """Create a successful send response.

        Args:
            message_id: Provider-assigned message id.
            cost: Recorded cost.

        Returns:
            SendMessageResponse with success=True.
        """
        return SendMessageResponse(success=True, message_id=message_id, cost=cost)

    def create_failure_response(self, error: str) -> SendMessageResponse:
        """Create a failed send response.

        Args:
            error: Human-readable failure reason.

        Returns:
            SendMessageResponse with success=False.
        """
        return SendMessageResponse(success=False, error=error)


class HTTPProvider(BaseProvider):
    """Provider talking to an HTTP API through its own httpx client.

    Each provider owns one AsyncClient with a bounded timeout. Tests inject
    an ``httpx.MockTransport`` through ``transport``.
    """

    def __init__(
        self,
        channel: MessageChannel,
        base_url: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP provider.

        Args:
            channel: The channel this instance serves.
            base_url: API base URL.
            timeout: Request timeout in seconds.
            transport: Optional custom transport.
        """
        super().__init__(channel)
        self._timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    def describe_transport_error(self, error: httpx.HTTPError) -> str:
        """Turn an httpx error into a readable failure reason.

        Args:
            error: The transport error.

        Returns:
            Failure reason mentioning timeout, network or the HTTP status.
        """
        if isinstance(error, httpx.TimeoutException):
            return f"{self.name} request timeout after {self._timeout:g}s"
        if isinstance(error, httpx.HTTPStatusError):
            status_code = error.response.status_code
            if status_code >= 500:
                return f"{self.name} server error: HTTP {status_code}"
            return f"{self.name} request rejected: HTTP {status_code}"
        return f"{self.name} network error: {error}"
