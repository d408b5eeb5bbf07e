# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Out-of-band delivery status updates for ledger rows.

A row written as ``sent`` moves to ``delivered`` or ``failed`` once the
provider reports the final outcome. Rows already in a terminal status
are left alone, and ``pending`` reports change nothing.

Two entry points feed status into the ledger:
- ``apply`` / ``apply_by_message_id`` take a status obtained elsewhere
  (a provider callback, an operator action).
- ``refresh`` polls the provider that sent the message.
"""

import logging

from src.domains.messaging.ledger import MessageLog, MessageLogRepository
from src.infrastructure.notifications.channels.base import (
    BaseProvider,
    DeliveryStatus,
    DeliveryStatusResponse,
    ProviderRequestError,
)
from src.infrastructure.notifications.registry import ProviderRegistry
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_REASON = "전송 실패"


class DeliveryStatusTracker:
    """Moves sent ledger rows to their final delivery status."""

    def __init__(
        self,
        ledger: MessageLogRepository,
        registry: ProviderRegistry | None = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            ledger: Delivery ledger.
            registry: Providers to poll; required only for refresh().
        """
        self._ledger = ledger
        self._registry = registry

    async def apply(self, log_id: str, update: DeliveryStatusResponse) -> MessageLog | None:
        """Apply a provider status report to a ledger row.

        Args:
            log_id: Ledger row id.
            update: Status reported by the provider.

        Returns:
            The row after the update, unchanged if nothing applied, or None
            if the row does not exist.
        """
        log = await self._ledger.find_by_id(log_id)
        if log is None:
            logger.warning("Delivery status for unknown message log %s", log_id)
            return None
        return await self._apply_to(log, update)

    async def apply_by_message_id(
        self,
        message_id: str,
        update: DeliveryStatusResponse,
    ) -> MessageLog | None:
        """Apply a provider status report addressed by provider message id."""
        log = await self._ledger.find_by_message_id(message_id)
        if log is None:
            logger.warning("Delivery status for unknown message id %s", message_id)
            return None
        return await self._apply_to(log, update)

    async def refresh(self, log_id: str) -> MessageLog | None:
        """Poll the sending provider and apply its status.

        Args:
            log_id: Ledger row id.

        Returns:
            The row after the update, or None if it does not exist.

        Raises:
            ProviderRequestError: If the provider cannot be queried.
        """
        log = await self._ledger.find_by_id(log_id)
        if log is None:
            return None
        if log.status != DeliveryStatus.SENT or not log.message_id:
            return log

        provider = self._find_provider(log)
        if provider is None:
            logger.warning(
                "No registered provider %s to poll for message log %s",
                log.provider,
                log.id,
            )
            return log

        update = await provider.get_delivery_status(log.message_id)
        return await self._apply_to(log, update)

    async def refresh_pending(self, limit: int = 100) -> list[MessageLog]:
        """Poll every row still in ``sent`` status, newest first.

        Rows whose provider cannot be queried are skipped and logged.

        Args:
            limit: Maximum rows to poll.

        Returns:
            Rows that reached a terminal status.
        """
        settled: list[MessageLog] = []
        for log in await self._ledger.find_by_status(DeliveryStatus.SENT, limit=limit):
            try:
                updated = await self.refresh(log.id)
            except ProviderRequestError as e:
                logger.warning("Status poll failed for message log %s: %s", log.id, e)
                continue
            if updated is not None and updated.is_terminal:
                settled.append(updated)
        return settled

    def _find_provider(self, log: MessageLog) -> BaseProvider | None:
        if self._registry is None:
            return None
        for provider in self._registry.providers:
            if provider.name == log.provider:
                return provider
        return None

    async def _apply_to(self, log: MessageLog, update: DeliveryStatusResponse) -> MessageLog | None:
        if log.is_terminal:
            logger.debug(
                "Ignoring %s status for message log %s already %s",
                update.status.value,
                log.id,
                log.status.value,
            )
            return log

        if update.status == DeliveryStatus.DELIVERED:
            return await self._ledger.update_status(
                log.id,
                DeliveryStatus.DELIVERED,
                delivered_at=update.delivered_at or utc_now(),
            )

        if update.status == DeliveryStatus.FAILED:
            return await self._ledger.update_status(
                log.id,
                DeliveryStatus.FAILED,
                failed_at=utc_now(),
                error_message=update.failure_reason or DEFAULT_FAILURE_REASON,
            )

        return log
