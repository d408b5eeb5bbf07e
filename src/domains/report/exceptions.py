# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions raised by the report domain.

NotFoundError subclasses are raised before any dispatch attempt starts,
so they never produce a delivery ledger row.
"""


class ReportServiceError(Exception):
    """Base exception for report service errors."""

    pass


class NotFoundError(ReportServiceError):
    """Raised when a referenced record does not exist."""

    pass


class ReportNotFoundError(NotFoundError):
    """Raised when a report is not found in the tenant."""

    def __init__(self, report_id: str) -> None:
        self.report_id = report_id
        super().__init__(f"Report not found: {report_id}")


class StudentNotFoundError(NotFoundError):
    """Raised when a student is not found or has been deleted."""

    def __init__(self, student_id: str) -> None:
        self.student_id = student_id
        super().__init__(f"Student not found: {student_id}")


class GuardianNotFoundError(ReportServiceError):
    """Raised when a student has no guardian reachable on a channel."""

    def __init__(self, student_id: str, channel: str) -> None:
        self.student_id = student_id
        self.channel = channel
        super().__init__(f"전송 가능한 보호자가 없습니다 (student={student_id}, channel={channel})")
