# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report notification dispatch.

One call to ReportDispatcher.send is one dispatch attempt:

1. Load the report (tenant-scoped). Missing: ReportNotFoundError.
2. Resolve the provider for the channel. Missing: UnconfiguredChannelError.
3. Format the content for the channel.
4. Send through the provider.
5. Write exactly one delivery ledger row describing the outcome.
6. Return the provider response unchanged.

Steps 1 and 2 fail before anything is attempted and write no ledger row.
From step 3 on, every path writes exactly one row: a provider failure is
recorded as ``failed`` and returned, an exception is recorded as
``failed`` and re-raised. Steps 3 to 5 run as a shielded task the
dispatcher holds until it finishes, so a message that went out is never
left unrecorded when the caller is cancelled; an error raised after that
is logged instead of being lost.
"""

import asyncio
import logging
from dataclasses import dataclass, replace

from src.domains.messaging.ledger import Correlation, MessageLogRepository, NewMessageLog
from src.domains.report.entities import Report
from src.domains.report.errors import classify_send_error
from src.domains.report.exceptions import ReportNotFoundError
from src.domains.report.formatter import FormatOptions, format_report_content
from src.domains.report.repository import ReportRepository
from src.infrastructure.notifications.channels.base import (
    BaseProvider,
    MessageChannel,
    MessageContent,
    MessageRecipient,
    SendMessageRequest,
    SendMessageResponse,
)
from src.infrastructure.notifications.registry import ProviderRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SendReportRequest:
    """A request to announce a report to one recipient.

    Attributes:
        report_id: Report to announce.
        tenant_id: Owning academy.
        channel: Channel to send on.
        recipient_name: Recipient display name.
        recipient_contact: Phone number, or email address for EMAIL.
        sender_id: Staff member triggering the send.
        academy_name: Academy display name override.
        academy_phone: Academy contact number override.
    """

    report_id: str
    tenant_id: str
    channel: MessageChannel
    recipient_name: str
    recipient_contact: str
    sender_id: str
    academy_name: str | None = None
    academy_phone: str | None = None

    def recipient(self) -> MessageRecipient:
        """Build the provider recipient for the channel."""
        if self.channel == MessageChannel.EMAIL:
            return MessageRecipient(name=self.recipient_name, email=self.recipient_contact)
        return MessageRecipient(name=self.recipient_name, phone=self.recipient_contact)


class ReportDispatcher:
    """Sends report notifications and records every attempt."""

    def __init__(
        self,
        reports: ReportRepository,
        ledger: MessageLogRepository,
        registry: ProviderRegistry,
        format_options: FormatOptions,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            reports: Report lookup.
            ledger: Delivery ledger.
            registry: Channel to provider table.
            format_options: Link base URL, template id and academy
                defaults; per-request academy overrides take precedence.
        """
        self._reports = reports
        self._ledger = ledger
        self._registry = registry
        self._format_options = format_options
        self._in_flight: set[asyncio.Task[SendMessageResponse]] = set()

    async def send(self, request: SendReportRequest) -> SendMessageResponse:
        """Dispatch a report notification.

        Args:
            request: What to send to whom.

        Returns:
            The provider response, unchanged.

        Raises:
            ReportNotFoundError: If the report does not exist in the tenant.
            UnconfiguredChannelError: If no provider serves the channel.
        """
        report = await self._reports.find_by_id(request.report_id, request.tenant_id)
        if report is None:
            raise ReportNotFoundError(request.report_id)

        provider = self._registry.get(request.channel)

        attempt = asyncio.create_task(self._attempt(report, provider, request))
        self._in_flight.add(attempt)
        attempt.add_done_callback(self._in_flight.discard)
        try:
            return await asyncio.shield(attempt)
        except asyncio.CancelledError:
            attempt.add_done_callback(self._report_orphaned)
            raise

    async def wait_in_flight(self) -> None:
        """Wait for attempts whose callers were cancelled to finish."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    @staticmethod
    def _report_orphaned(attempt: asyncio.Task) -> None:
        if attempt.cancelled():
            return
        error = attempt.exception()
        if error is not None:
            logger.error(
                "Report dispatch failed after its caller was cancelled: %s",
                error,
                exc_info=error,
            )

    def _options_for(self, request: SendReportRequest) -> FormatOptions:
        return replace(
            self._format_options,
            academy_name=request.academy_name or self._format_options.academy_name,
            academy_phone=request.academy_phone or self._format_options.academy_phone,
        )

    async def _attempt(
        self,
        report: Report,
        provider: BaseProvider,
        request: SendReportRequest,
    ) -> SendMessageResponse:
        correlation = Correlation(
            tenant_id=request.tenant_id,
            student_id=report.student_id,
            report_id=report.id,
            sender_id=request.sender_id,
        )
        send_request = SendMessageRequest(
            channel=request.channel,
            recipient=request.recipient(),
            content=MessageContent(body=""),
            metadata=correlation.to_metadata(),
        )

        try:
            content = format_report_content(report, request.channel, self._options_for(request))
            send_request = replace(send_request, content=content)
            response = await provider.send(send_request)
        except Exception as e:
            logger.error(
                "Report dispatch raised: report=%s, channel=%s, provider=%s",
                report.id,
                request.channel.value,
                provider.name,
                exc_info=True,
            )
            failure = SendMessageResponse(
                success=False,
                error=str(e) or e.__class__.__name__,
            )
            await self._record(send_request, provider, failure, correlation)
            raise

        await self._record(send_request, provider, response, correlation)

        if response.success:
            logger.info(
                "Report sent: report=%s, channel=%s, provider=%s, message_id=%s",
                report.id,
                request.channel.value,
                provider.name,
                response.message_id,
            )
        else:
            info = classify_send_error(response.error)
            logger.warning(
                "Report send failed: report=%s, channel=%s, provider=%s, kind=%s, error=%s",
                report.id,
                request.channel.value,
                provider.name,
                info.kind.value,
                response.error,
            )
        return response

    async def _record(
        self,
        send_request: SendMessageRequest,
        provider: BaseProvider,
        response: SendMessageResponse,
        correlation: Correlation,
    ) -> None:
        await self._ledger.create(
            NewMessageLog.from_attempt(
                request=send_request,
                provider=provider.name,
                response=response,
                correlation=correlation,
            )
        )
