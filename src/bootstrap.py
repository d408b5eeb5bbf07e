# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Process wiring for report generation and dispatch.

Builds every collaborator once at process start and hands them out as a
single ReportContext. The provider registry is built here and injected
into the dispatcher; nothing else constructs providers.

Example:
    async with report_context() as ctx:
        report = await ctx.service.generate_report(...)
        await ctx.service.send_to_guardians(report.id, tenant_id, MessageChannel.LMS, sender_id)
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.config.settings import Settings, get_settings
from src.domains.messaging.ledger import MessageLogRepository
from src.domains.messaging.tracker import DeliveryStatusTracker
from src.domains.report.aggregator import ReportAggregator
from src.domains.report.dispatcher import ReportDispatcher
from src.domains.report.formatter import FormatOptions
from src.domains.report.repository import ReportRepository, StudentActivityReader
from src.domains.report.service import ReportService
from src.infrastructure.database.connection import (
    check_database_connection,
    close_database,
    init_database,
)
from src.infrastructure.notifications.registry import (
    ProviderRegistry,
    build_provider_registry,
)
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportContext:
    """Wired report pipeline collaborators."""

    settings: Settings
    registry: ProviderRegistry
    ledger: MessageLogRepository
    reports: ReportRepository
    reader: StudentActivityReader
    aggregator: ReportAggregator
    dispatcher: ReportDispatcher
    tracker: DeliveryStatusTracker
    service: ReportService


def format_options_from_settings(settings: Settings) -> FormatOptions:
    """Default formatting inputs taken from configuration."""
    return FormatOptions(
        base_url=settings.report.app_url,
        default_academy_name=settings.report.default_academy_name,
        default_academy_phone=settings.report.default_academy_phone,
        kakao_template_id=settings.messaging.kakao_template_id,
    )


def build_report_context(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    registry: ProviderRegistry,
) -> ReportContext:
    """Wire the pipeline from already created infrastructure.

    Args:
        settings: Application settings.
        session_factory: Sessionmaker for the academy database.
        registry: Channel to provider table.

    Returns:
        The wired context.
    """
    ledger = MessageLogRepository(session_factory)
    reports = ReportRepository(session_factory)
    reader = StudentActivityReader(session_factory)
    aggregator = ReportAggregator(reader, consultation_limit=settings.report.consultation_limit)
    dispatcher = ReportDispatcher(
        reports=reports,
        ledger=ledger,
        registry=registry,
        format_options=format_options_from_settings(settings),
    )
    return ReportContext(
        settings=settings,
        registry=registry,
        ledger=ledger,
        reports=reports,
        reader=reader,
        aggregator=aggregator,
        dispatcher=dispatcher,
        tracker=DeliveryStatusTracker(ledger, registry),
        service=ReportService(
            aggregator=aggregator,
            reports=reports,
            reader=reader,
            dispatcher=dispatcher,
            ledger=ledger,
            registry=registry,
        ),
    )


@asynccontextmanager
async def report_context(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[ReportContext]:
    """Start the report pipeline and shut it down on exit.

    Configures logging, opens the database pool (warning when it cannot
    be reached) and builds the provider registry. On exit the providers and the pool are closed.

    Args:
        settings: Application settings, defaults to get_settings().
        transport: Optional httpx transport for the HTTP providers.

    Yields:
        The wired ReportContext.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    session_factory = await init_database(settings)
    if not await check_database_connection():
        logger.warning("Academy database is not reachable at startup; sends will fail until it is")
    registry = build_provider_registry(settings, transport=transport)
    logger.info(
        "Report pipeline started: environment=%s, channels=%s",
        settings.environment,
        ", ".join(c.value for c in registry.channels) or "none",
    )

    ctx = build_report_context(settings, session_factory, registry)
    try:
        yield ctx
    finally:
        await ctx.dispatcher.wait_in_flight()
        await registry.aclose()
        await close_database()
        logger.info("Report pipeline stopped")
