# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Provider registry mapping channels to messaging providers.

The registry is built once at process start and handed to the report
dispatcher. Adding a channel means registering one more provider here;
the dispatcher never names concrete providers.

Example:
    registry = build_provider_registry(get_settings())
    provider = registry.get(MessageChannel.SMS)
    response = await provider.send(request)
"""

import logging

import httpx

from src.core.config.settings import Settings
from src.infrastructure.notifications.channels.aligo import AligoProvider
from src.infrastructure.notifications.channels.base import (
    BaseProvider,
    MessageChannel,
    UnconfiguredChannelError,
)
from src.infrastructure.notifications.channels.email import EmailProvider
from src.infrastructure.notifications.channels.solapi import (
    SolapiKakaoProvider,
    SolapiProvider,
)

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Channel to provider lookup table.

    Attributes:
        channels: Channels with a registered provider.
        providers: Distinct registered provider instances.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._providers: dict[MessageChannel, BaseProvider] = {}

    def register(
        self,
        provider: BaseProvider,
        channel: MessageChannel | None = None,
    ) -> None:
        """Register a provider for a channel.

        A later registration for the same channel replaces the earlier one.

        Args:
            provider: The provider instance.
            channel: Channel to serve; defaults to the provider's own channel.
        """
        target = channel or provider.channel
        previous = self._providers.get(target)
        if previous is not None and previous is not provider:
            logger.warning(
                "Replacing %s provider for channel %s with %s",
                previous.name,
                target.value,
                provider.name,
            )
        self._providers[target] = provider
        logger.debug("Registered %s provider for channel %s", provider.name, target.value)

    def get(self, channel: MessageChannel) -> BaseProvider:
        """Get the provider for a channel.

        Args:
            channel: The requested channel.

        Returns:
            The registered provider.

        Raises:
            UnconfiguredChannelError: If no provider is registered.
        """
        provider = self._providers.get(channel)
        if provider is None:
            raise UnconfiguredChannelError(channel, self.channels)
        return provider

    def is_available(self, channel: MessageChannel) -> bool:
        """Check whether a provider is registered for a channel."""
        return channel in self._providers

    @property
    def channels(self) -> list[MessageChannel]:
        """Channels with a registered provider, in registration order."""
        return list(self._providers)

    @property
    def providers(self) -> list[BaseProvider]:
        """Distinct registered providers."""
        unique: list[BaseProvider] = []
        for provider in self._providers.values():
            if all(provider is not seen for seen in unique):
                unique.append(provider)
        return unique

    async def aclose(self) -> None:
        """Close every registered provider."""
        for provider in self.providers:
            await provider.aclose()


def build_provider_registry(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProviderRegistry:
    """Build the registry from application settings.

    Channels whose provider is not configured are skipped with a warning;
    dispatching on them raises UnconfiguredChannelError.

    Args:
        settings: Application settings.
        transport: Optional httpx transport shared by HTTP providers (tests).

    Returns:
        The populated registry.
    """
    registry = ProviderRegistry()

    vendor = settings.messaging.sms_vendor
    for channel in (MessageChannel.SMS, MessageChannel.LMS):
        if vendor == "aligo" and settings.aligo.is_configured:
            registry.register(
                AligoProvider(
                    settings.aligo,
                    channel=channel,
                    test_mode=settings.aligo_test_mode,
                    transport=transport,
                )
            )
        elif vendor == "solapi" and settings.solapi.is_configured:
            registry.register(
                SolapiProvider(settings.solapi, channel=channel, transport=transport)
            )
        else:
            logger.warning(
                "%s channel disabled: %s credentials not configured",
                channel.value.upper(),
                vendor,
            )

    if settings.solapi.kakao_configured:
        registry.register(SolapiKakaoProvider(settings.solapi, transport=transport))
    else:
        logger.warning("Kakao channel disabled: SOLAPI credentials or SOLAPI_KAKAO_PF_ID not set")

    if settings.smtp.is_configured:
        registry.register(EmailProvider(settings.smtp))
    else:
        logger.warning("Email channel disabled: SMTP configuration incomplete")

    logger.info(
        "Provider registry built with channels: %s",
        ", ".join(c.value for c in registry.channels) or "none",
    )
    return registry
