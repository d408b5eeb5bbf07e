# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student report domain.

Generates immutable learning reports from a student's activity records
and announces them to guardians over SMS, LMS, Kakao Alimtalk or email.

Key Components:
- ReportAggregator: Builds a Report from activity records
- ReportDispatcher: Sends one notification and records it in the ledger
- ReportService: Facade used by the admin application
- classify_send_error: Turns a raw failure into an actionable description
- format_report_content: Channel-specific message content
"""

from src.domains.report.aggregator import ReportAggregator
from src.domains.report.dispatcher import ReportDispatcher, SendReportRequest
from src.domains.report.entities import (
    ConsultationSummary,
    ExamResult,
    Report,
    ReportData,
    ReportType,
)
from src.domains.report.errors import (
    CLASSIFICATION_RULES,
    RULE_TABLE_VERSION,
    ErrorKind,
    SendErrorInfo,
    classify_send_error,
)
from src.domains.report.exceptions import (
    GuardianNotFoundError,
    NotFoundError,
    ReportNotFoundError,
    ReportServiceError,
    StudentNotFoundError,
)
from src.domains.report.formatter import (
    FormatOptions,
    TemplateVariables,
    format_report_content,
)
from src.domains.report.repository import (
    GuardianContact,
    ReportRepository,
    StudentActivityReader,
    StudentProfile,
)
from src.domains.report.service import (
    GeneratedReportDispatch,
    GuardianDispatch,
    ReportService,
)

__all__ = [
    # Entities
    "Report",
    "ReportData",
    "ReportType",
    "ExamResult",
    "ConsultationSummary",
    # Generation
    "ReportAggregator",
    "ReportRepository",
    "StudentActivityReader",
    "StudentProfile",
    "GuardianContact",
    # Delivery
    "ReportDispatcher",
    "SendReportRequest",
    "FormatOptions",
    "TemplateVariables",
    "format_report_content",
    # Service
    "ReportService",
    "GeneratedReportDispatch",
    "GuardianDispatch",
    # Errors
    "ErrorKind",
    "SendErrorInfo",
    "CLASSIFICATION_RULES",
    "RULE_TABLE_VERSION",
    "classify_send_error",
    "ReportServiceError",
    "NotFoundError",
    "ReportNotFoundError",
    "StudentNotFoundError",
    "GuardianNotFoundError",
]
