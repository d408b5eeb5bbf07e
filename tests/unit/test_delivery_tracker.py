# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for out-of-band delivery status tracking."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.domains.messaging.ledger import MessageLog, MessageLogRepository
from src.domains.messaging.tracker import DEFAULT_FAILURE_REASON, DeliveryStatusTracker
from src.infrastructure.notifications.channels.base import (
    DeliveryStatus,
    DeliveryStatusResponse,
    MessageChannel,
    ProviderRequestError,
)
from src.infrastructure.notifications.registry import ProviderRegistry

SENT_AT = datetime(2025, 4, 1, 9, 0, tzinfo=timezone.utc)
DELIVERED_AT = datetime(2025, 4, 1, 9, 2, tzinfo=timezone.utc)


def make_log(**overrides) -> MessageLog:
    values = dict(
        id="log-1",
        tenant_id="tenant-1",
        channel=MessageChannel.SMS,
        provider="aligo",
        recipient_name="김보호",
        recipient_contact="010-1234-5678",
        message_subject=None,
        message_body="리포트",
        message_id="123456",
        status=DeliveryStatus.SENT,
        cost=10.0,
        error_message=None,
        sent_at=SENT_AT,
    )
    values.update(overrides)
    return MessageLog(**values)


@pytest.fixture
def ledger() -> AsyncMock:
    """Provide a mock ledger that echoes status updates."""
    mock = AsyncMock(spec=MessageLogRepository)

    async def update_status(log_id, status, delivered_at=None, failed_at=None, error_message=None):
        return make_log(
            id=log_id,
            status=status,
            delivered_at=delivered_at,
            failed_at=failed_at,
            error_message=error_message,
        )

    mock.update_status.side_effect = update_status
    return mock


@pytest.fixture
def aligo() -> MagicMock:
    """Provide a pollable provider named aligo."""
    provider = MagicMock()
    provider.name = "aligo"
    provider.channel = MessageChannel.SMS
    provider.get_delivery_status = AsyncMock()
    return provider


@pytest.fixture
def registry(aligo: MagicMock) -> ProviderRegistry:
    """Provide a registry holding the aligo provider."""
    registry = ProviderRegistry()
    registry.register(aligo)
    return registry


class TestApply:
    """Tests for DeliveryStatusTracker.apply."""

    @pytest.mark.asyncio
    async def test_delivered(self, ledger: AsyncMock) -> None:
        """Test a delivered report moves a sent row to delivered."""
        ledger.find_by_id.return_value = make_log()
        tracker = DeliveryStatusTracker(ledger)

        log = await tracker.apply(
            "log-1",
            DeliveryStatusResponse(status=DeliveryStatus.DELIVERED, delivered_at=DELIVERED_AT),
        )

        assert log.status == DeliveryStatus.DELIVERED
        ledger.update_status.assert_awaited_once_with(
            "log-1", DeliveryStatus.DELIVERED, delivered_at=DELIVERED_AT
        )

    @pytest.mark.asyncio
    async def test_delivered_without_time_uses_now(self, ledger: AsyncMock) -> None:
        """Test a delivery report without a time is stamped now."""
        ledger.find_by_id.return_value = make_log()
        tracker = DeliveryStatusTracker(ledger)

        log = await tracker.apply("log-1", DeliveryStatusResponse(status=DeliveryStatus.DELIVERED))

        assert log.delivered_at is not None
        assert log.delivered_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_failed(self, ledger: AsyncMock) -> None:
        """Test a failure report records the reason."""
        ledger.find_by_id.return_value = make_log()
        tracker = DeliveryStatusTracker(ledger)

        log = await tracker.apply(
            "log-1",
            DeliveryStatusResponse(status=DeliveryStatus.FAILED, failure_reason="결번"),
        )

        assert log.status == DeliveryStatus.FAILED
        assert log.error_message == "결번"
        assert log.failed_at is not None

    @pytest.mark.asyncio
    async def test_failed_without_reason(self, ledger: AsyncMock) -> None:
        """Test a failure report without a reason uses the default."""
        ledger.find_by_id.return_value = make_log()
        tracker = DeliveryStatusTracker(ledger)

        log = await tracker.apply("log-1", DeliveryStatusResponse(status=DeliveryStatus.FAILED))

        assert log.error_message == DEFAULT_FAILURE_REASON

    @pytest.mark.asyncio
    async def test_pending_changes_nothing(self, ledger: AsyncMock) -> None:
        """Test a pending report leaves the row alone."""
        row = make_log()
        ledger.find_by_id.return_value = row
        tracker = DeliveryStatusTracker(ledger)

        log = await tracker.apply("log-1", DeliveryStatusResponse(status=DeliveryStatus.PENDING))

        assert log is row
        ledger.update_status.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [DeliveryStatus.DELIVERED, DeliveryStatus.FAILED])
    async def test_terminal_rows_are_ignored(
        self, ledger: AsyncMock, status: DeliveryStatus
    ) -> None:
        """Test rows already delivered or failed are not changed."""
        row = make_log(status=status)
        ledger.find_by_id.return_value = row
        tracker = DeliveryStatusTracker(ledger)

        log = await tracker.apply(
            "log-1",
            DeliveryStatusResponse(status=DeliveryStatus.DELIVERED, delivered_at=DELIVERED_AT),
        )

        assert log is row
        ledger.update_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_row(self, ledger: AsyncMock) -> None:
        """Test an unknown row returns None."""
        ledger.find_by_id.return_value = None
        tracker = DeliveryStatusTracker(ledger)

        assert await tracker.apply(
            "missing", DeliveryStatusResponse(status=DeliveryStatus.DELIVERED)
        ) is None

    @pytest.mark.asyncio
    async def test_apply_by_message_id(self, ledger: AsyncMock) -> None:
        """Test a report addressed by provider message id."""
        ledger.find_by_message_id.return_value = make_log()
        tracker = DeliveryStatusTracker(ledger)

        log = await tracker.apply_by_message_id(
            "123456",
            DeliveryStatusResponse(status=DeliveryStatus.DELIVERED, delivered_at=DELIVERED_AT),
        )

        assert log.status == DeliveryStatus.DELIVERED
        ledger.find_by_message_id.assert_awaited_once_with("123456")


class TestRefresh:
    """Tests for polling providers."""

    @pytest.mark.asyncio
    async def test_polls_sending_provider(
        self, ledger: AsyncMock, registry: ProviderRegistry, aligo: MagicMock
    ) -> None:
        """Test refresh asks the provider that sent the message."""
        ledger.find_by_id.return_value = make_log()
        aligo.get_delivery_status.return_value = DeliveryStatusResponse(
            status=DeliveryStatus.DELIVERED, delivered_at=DELIVERED_AT
        )
        tracker = DeliveryStatusTracker(ledger, registry)

        log = await tracker.refresh("log-1")

        aligo.get_delivery_status.assert_awaited_once_with("123456")
        assert log.status == DeliveryStatus.DELIVERED

    @pytest.mark.asyncio
    async def test_skips_rows_without_message_id(
        self, ledger: AsyncMock, registry: ProviderRegistry, aligo: MagicMock
    ) -> None:
        """Test a row without a provider message id is not polled."""
        row = make_log(message_id=None)
        ledger.find_by_id.return_value = row
        tracker = DeliveryStatusTracker(ledger, registry)

        assert await tracker.refresh("log-1") is row
        aligo.get_delivery_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unregistered_provider(
        self, ledger: AsyncMock, registry: ProviderRegistry, aligo: MagicMock
    ) -> None:
        """Test a row from a provider no longer registered is left alone."""
        row = make_log(provider="solapi")
        ledger.find_by_id.return_value = row
        tracker = DeliveryStatusTracker(ledger, registry)

        assert await tracker.refresh("log-1") is row
        aligo.get_delivery_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_provider_error_propagates(
        self, ledger: AsyncMock, registry: ProviderRegistry, aligo: MagicMock
    ) -> None:
        """Test refresh raises when the provider cannot be queried."""
        ledger.find_by_id.return_value = make_log()
        aligo.get_delivery_status.side_effect = ProviderRequestError("down")
        tracker = DeliveryStatusTracker(ledger, registry)

        with pytest.raises(ProviderRequestError):
            await tracker.refresh("log-1")

    @pytest.mark.asyncio
    async def test_refresh_pending(
        self, ledger: AsyncMock, registry: ProviderRegistry, aligo: MagicMock
    ) -> None:
        """Test polling all sent rows skips failures and returns settled rows."""
        rows = {
            "log-1": make_log(id="log-1", message_id="m-1"),
            "log-2": make_log(id="log-2", message_id="m-2"),
            "log-3": make_log(id="log-3", message_id="m-3"),
        }
        ledger.find_by_status.return_value = list(rows.values())
        ledger.find_by_id.side_effect = lambda log_id: rows[log_id]
        statuses = {
            "m-1": DeliveryStatusResponse(status=DeliveryStatus.DELIVERED, delivered_at=DELIVERED_AT),
            "m-2": ProviderRequestError("timeout"),
            "m-3": DeliveryStatusResponse(status=DeliveryStatus.PENDING),
        }

        async def get_delivery_status(message_id: str) -> DeliveryStatusResponse:
            outcome = statuses[message_id]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        aligo.get_delivery_status.side_effect = get_delivery_status
        tracker = DeliveryStatusTracker(ledger, registry)

        settled = await tracker.refresh_pending(limit=10)

        assert [log.id for log in settled] == ["log-1"]
        ledger.find_by_status.assert_awaited_once_with(DeliveryStatus.SENT, limit=10)
        assert settled[0].status == DeliveryStatus.DELIVERED
