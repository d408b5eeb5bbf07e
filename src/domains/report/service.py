# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report Service - generates student reports and announces them to guardians.

This service provides:
- Generate and save a report for a student and period
- Send a report notification to one recipient or to every guardian
- Generate and send in one step
- Report and delivery history for the admin screens
- Failure descriptions and balance checks for the send dialog

Dispatch rules (one ledger row per attempt, no row when the report or
channel is missing) are enforced by ReportDispatcher.
"""

import logging
from dataclasses import dataclass
from datetime import date

from src.domains.messaging.ledger import MessageLog, MessageLogRepository
from src.domains.report.aggregator import ReportAggregator
from src.domains.report.dispatcher import ReportDispatcher, SendReportRequest
from src.domains.report.entities import Report, ReportType
from src.domains.report.errors import SendErrorInfo, classify_send_error
from src.domains.report.exceptions import GuardianNotFoundError, ReportNotFoundError
from src.domains.report.repository import (
    GuardianContact,
    ReportRepository,
    StudentActivityReader,
)
from src.infrastructure.notifications.channels.base import (
    BalanceInfo,
    MessageChannel,
    SendMessageResponse,
    UnconfiguredChannelError,
)
from src.infrastructure.notifications.registry import ProviderRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedReportDispatch:
    """Outcome of generate_and_send."""

    report: Report
    response: SendMessageResponse


@dataclass(frozen=True)
class GuardianDispatch:
    """Outcome of sending a report to one guardian."""

    guardian: GuardianContact
    response: SendMessageResponse


class ReportService:
    """Service for report generation and delivery.

    Example:
        service = ReportService(aggregator, reports, reader, dispatcher, ledger, registry)
        report = await service.generate_report(
            student_id, "2025-03-01", "2025-03-31",
            ReportType.STUDENT_MONTHLY, teacher_id, tenant_id,
        )
        results = await service.send_to_guardians(
            report.id, tenant_id, MessageChannel.LMS, sender_id=teacher_id,
        )
    """

    def __init__(
        self,
        aggregator: ReportAggregator,
        reports: ReportRepository,
        reader: StudentActivityReader,
        dispatcher: ReportDispatcher,
        ledger: MessageLogRepository,
        registry: ProviderRegistry,
    ) -> None:
        """Initialize the report service.

        Args:
            aggregator: Builds reports from activity records.
            reports: Report persistence.
            reader: Academy directory reads (guardians).
            dispatcher: Sends notifications and writes the ledger.
            ledger: Delivery ledger queries.
            registry: Channel to provider table.
        """
        self._aggregator = aggregator
        self._reports = reports
        self._reader = reader
        self._dispatcher = dispatcher
        self._ledger = ledger
        self._registry = registry

    # =========================================================================
    # Generation
    # =========================================================================

    async def generate_report(
        self,
        student_id: str,
        start_date: str | date,
        end_date: str | date,
        type: ReportType,
        generated_by: str,
        tenant_id: str,
        comment: str | None = None,
        academy_name: str | None = None,
        academy_phone: str | None = None,
    ) -> Report:
        """Generate and save a student report.

        Raises:
            StudentNotFoundError: If the student does not exist.
            DatabaseError: If the report cannot be saved.
        """
        report = await self._aggregator.generate(
            student_id=student_id,
            start_date=start_date,
            end_date=end_date,
            type=type,
            generated_by=generated_by,
            tenant_id=tenant_id,
            comment=comment,
            academy_name=academy_name,
            academy_phone=academy_phone,
        )
        return await self._reports.save(report)

    # =========================================================================
    # Delivery
    # =========================================================================

    async def send_report(self, request: SendReportRequest) -> SendMessageResponse:
        """Send a report notification to one recipient."""
        return await self._dispatcher.send(request)

    async def generate_and_send(
        self,
        student_id: str,
        start_date: str | date,
        end_date: str | date,
        type: ReportType,
        generated_by: str,
        tenant_id: str,
        channel: MessageChannel,
        recipient_name: str,
        recipient_contact: str,
        comment: str | None = None,
        academy_name: str | None = None,
        academy_phone: str | None = None,
    ) -> GeneratedReportDispatch:
        """Generate, save and send a report in one step.

        The report stays saved when the send fails.
        """
        report = await self.generate_report(
            student_id=student_id,
            start_date=start_date,
            end_date=end_date,
            type=type,
            generated_by=generated_by,
            tenant_id=tenant_id,
            comment=comment,
            academy_name=academy_name,
            academy_phone=academy_phone,
        )
        response = await self._dispatcher.send(
            SendReportRequest(
                report_id=report.id,
                tenant_id=tenant_id,
                channel=channel,
                recipient_name=recipient_name,
                recipient_contact=recipient_contact,
                sender_id=generated_by,
                academy_name=academy_name,
                academy_phone=academy_phone,
            )
        )
        return GeneratedReportDispatch(report=report, response=response)

    async def send_to_guardians(
        self,
        report_id: str,
        tenant_id: str,
        channel: MessageChannel,
        sender_id: str,
        academy_name: str | None = None,
        academy_phone: str | None = None,
    ) -> list[GuardianDispatch]:
        """Send a report to every guardian reachable on the channel.

        Guardians are tried primary first; a contact shared by several
        guardians is sent to once. A send that raises is reported as a
        failed result and the remaining guardians are still tried.

        Raises:
            ReportNotFoundError: If the report does not exist.
            GuardianNotFoundError: If no guardian has a contact for the channel.
            UnconfiguredChannelError: If no provider serves the channel.
        """
        report = await self._reports.find_by_id(report_id, tenant_id)
        if report is None:
            raise ReportNotFoundError(report_id)

        guardians = []
        if report.student_id:
            guardians = await self._reader.get_guardians(report.student_id, tenant_id)

        recipients = self._reachable(guardians, channel)
        if not recipients:
            raise GuardianNotFoundError(report.student_id or "-", channel.value)

        results = []
        for guardian, contact in recipients:
            request = SendReportRequest(
                report_id=report.id,
                tenant_id=tenant_id,
                channel=channel,
                recipient_name=guardian.name,
                recipient_contact=contact,
                sender_id=sender_id,
                academy_name=academy_name,
                academy_phone=academy_phone,
            )
            try:
                response = await self._dispatcher.send(request)
            except (ReportNotFoundError, UnconfiguredChannelError):
                raise
            except Exception as e:
                # The dispatcher has already recorded the attempt as failed
                logger.error(
                    "Report %s send to guardian %s raised: %s",
                    report.id,
                    guardian.guardian_id,
                    e,
                    exc_info=True,
                )
                response = SendMessageResponse(
                    success=False,
                    error=str(e) or e.__class__.__name__,
                )
            results.append(GuardianDispatch(guardian=guardian, response=response))

        logger.info(
            "Report %s sent to %d guardians via %s (%d succeeded)",
            report.id,
            len(results),
            channel.value,
            sum(1 for r in results if r.response.success),
        )
        return results

    @staticmethod
    def _reachable(
        guardians: list[GuardianContact],
        channel: MessageChannel,
    ) -> list[tuple[GuardianContact, str]]:
        seen: set[str] = set()
        reachable = []
        for guardian in guardians:
            contact = guardian.email if channel == MessageChannel.EMAIL else guardian.phone
            contact = (contact or "").strip()
            if not contact or contact in seen:
                continue
            seen.add(contact)
            reachable.append((guardian, contact))
        return reachable

    # =========================================================================
    # History
    # =========================================================================

    async def list_student_reports(
        self,
        student_id: str,
        tenant_id: str,
        limit: int = 10,
    ) -> list[Report]:
        """A student's most recent reports."""
        return await self._reports.find_by_student(student_id, tenant_id, limit=limit)

    async def list_message_logs(
        self,
        tenant_id: str,
        student_id: str | None = None,
        limit: int = 50,
    ) -> list[MessageLog]:
        """Recent delivery ledger rows, optionally for one student."""
        if student_id:
            return await self._ledger.find_by_student_id(
                student_id, tenant_id=tenant_id, limit=limit
            )
        return await self._ledger.find_recent(tenant_id, limit=limit)

    # =========================================================================
    # Send dialog helpers
    # =========================================================================

    def describe_failure(self, error: str | BaseException | None) -> SendErrorInfo:
        """Turn a send failure into what the operator should see and do."""
        return classify_send_error(error)

    async def check_channel_balance(self, channel: MessageChannel) -> BalanceInfo:
        """Remaining credit of the provider serving a channel.

        Raises:
            UnconfiguredChannelError: If no provider serves the channel.
            ProviderRequestError: If the provider cannot be queried.
        """
        provider = self._registry.get(channel)
        balance = await provider.check_balance()
        logger.debug(
            "Balance for %s via %s: %s %s",
            channel.value,
            provider.name,
            balance.balance,
            balance.currency,
        )
        return balance
