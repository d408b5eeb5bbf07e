# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Messaging providers for delivering report notifications.

This package provides provider implementations for each external
messaging transport:

- AligoProvider: SMS/LMS via the Aligo API
- SolapiProvider: SMS/LMS via the Solapi API
- SolapiKakaoProvider: Kakao Alimtalk via the Solapi API
- EmailProvider: Email via SMTP

Usage:
    from src.infrastructure.notifications.channels import (
        AligoProvider,
        MessageChannel,
        MessageContent,
        MessageRecipient,
        SendMessageRequest,
    )

    provider = AligoProvider(settings.aligo, channel=MessageChannel.SMS)
    response = await provider.send(
        SendMessageRequest(
            channel=MessageChannel.SMS,
            recipient=MessageRecipient(name="김보호", phone="010-1234-5678"),
            content=MessageContent(body="[Acadesk] 리포트가 도착했습니다"),
        )
    )
"""

from src.infrastructure.notifications.channels.aligo import AligoProvider
from src.infrastructure.notifications.channels.base import (
    SMS_BYTE_LIMIT,
    BalanceInfo,
    BaseProvider,
    DeliveryStatus,
    DeliveryStatusResponse,
    HTTPProvider,
    MessageChannel,
    MessageContent,
    MessageRecipient,
    NotificationError,
    ProviderConfigurationError,
    ProviderRequestError,
    SendMessageRequest,
    SendMessageResponse,
    UnconfiguredChannelError,
    determine_message_type,
    sanitize_phone,
)
from src.infrastructure.notifications.channels.email import EmailProvider
from src.infrastructure.notifications.channels.solapi import (
    SolapiKakaoProvider,
    SolapiProvider,
)

__all__ = [
    # Base types
    "BaseProvider",
    "HTTPProvider",
    "MessageChannel",
    "DeliveryStatus",
    "MessageRecipient",
    "MessageContent",
    "SendMessageRequest",
    "SendMessageResponse",
    "BalanceInfo",
    "DeliveryStatusResponse",
    "SMS_BYTE_LIMIT",
    "determine_message_type",
    "sanitize_phone",
    # Errors
    "NotificationError",
    "UnconfiguredChannelError",
    "ProviderConfigurationError",
    "ProviderRequestError",
    # Providers
    "AligoProvider",
    "SolapiProvider",
    "SolapiKakaoProvider",
    "EmailProvider",
]
