# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Messaging infrastructure for report notifications.

This package delivers report notifications to guardians through
external messaging transports:
- SMS and LMS (Aligo or Solapi)
- Kakao Alimtalk (Solapi)
- Email (SMTP)

Key Components:
- ProviderRegistry: Channel to provider lookup, built once at startup
- Providers: AligoProvider, SolapiProvider, SolapiKakaoProvider, EmailProvider
- SendMessageRequest / SendMessageResponse: Provider contract types

Usage:
    from src.infrastructure.notifications import build_provider_registry

    registry = build_provider_registry(settings)
    provider = registry.get(MessageChannel.LMS)

Configuration (environment variables):
- MESSAGING_SMS_VENDOR: aligo or solapi
- ALIGO_API_KEY, ALIGO_USER_ID, ALIGO_SENDER_PHONE
- SOLAPI_API_KEY, SOLAPI_API_SECRET, SOLAPI_SENDER_PHONE, SOLAPI_KAKAO_PF_ID
- SMTP_HOST, SMTP_PORT, SMTP_USERNAME, SMTP_PASSWORD, SMTP_FROM_EMAIL
"""

from src.infrastructure.notifications.channels import (
    AligoProvider,
    BalanceInfo,
    BaseProvider,
    DeliveryStatus,
    DeliveryStatusResponse,
    EmailProvider,
    MessageChannel,
    MessageContent,
    MessageRecipient,
    NotificationError,
    ProviderConfigurationError,
    ProviderRequestError,
    SendMessageRequest,
    SendMessageResponse,
    SolapiKakaoProvider,
    SolapiProvider,
    UnconfiguredChannelError,
)
from src.infrastructure.notifications.registry import (
    ProviderRegistry,
    build_provider_registry,
)

__all__ = [
    # Registry
    "ProviderRegistry",
    "build_provider_registry",
    # Contract types
    "BaseProvider",
    "MessageChannel",
    "DeliveryStatus",
    "MessageRecipient",
    "MessageContent",
    "SendMessageRequest",
    "SendMessageResponse",
    "BalanceInfo",
    "DeliveryStatusResponse",
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
