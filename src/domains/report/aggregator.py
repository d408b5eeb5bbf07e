# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student report aggregation.

This module turns a student's activity records over a date range into an
immutable Report:
- Exam results: mean of the exam percentages
- Attendance: present days over recorded days (late is not present)
- Assignments: completed over assigned
- Consultations: the most recent few within the period

The student lookup runs first and its absence is fatal. The activity
reads then run concurrently; a failing read is logged and replaced by an
empty result so a partial report is still produced.

Usage:
    from src.domains.report.aggregator import ReportAggregator

    aggregator = ReportAggregator(StudentActivityReader(sessionmaker))
    report = await aggregator.generate(
        student_id=student_id,
        start_date="2025-03-01",
        end_date="2025-03-31",
        type=ReportType.STUDENT_MONTHLY,
        generated_by=teacher_id,
        tenant_id=tenant_id,
    )
"""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TypeVar

from src.domains.report.entities import (
    ConsultationSummary,
    ExamResult,
    Report,
    ReportData,
    ReportType,
    percentage,
    round_half_up,
)
from src.domains.report.exceptions import StudentNotFoundError
from src.domains.report.repository import StudentActivityReader
from src.infrastructure.database.models import new_uuid
from src.utils.datetime import date_range_bounds, parse_date, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONSULTATION_LIMIT = 5


@dataclass(frozen=True)
class AttendanceTally:
    """Attendance counts over a period."""

    total_days: int = 0
    present_days: int = 0
    late_days: int = 0
    absent_days: int = 0

    @property
    def rate(self) -> int:
        return percentage(self.present_days, self.total_days)

    @classmethod
    def from_statuses(cls, statuses: list[str]) -> "AttendanceTally":
        return cls(
            total_days=len(statuses),
            present_days=sum(1 for s in statuses if s == "present"),
            late_days=sum(1 for s in statuses if s == "late"),
            absent_days=sum(1 for s in statuses if s == "absent"),
        )


@dataclass(frozen=True)
class HomeworkTally:
    """Assignment counts over a period."""

    total_todos: int = 0
    completed_todos: int = 0

    @property
    def rate(self) -> int:
        return percentage(self.completed_todos, self.total_todos)

    @classmethod
    def from_completions(cls, completions: list[bool]) -> "HomeworkTally":
        return cls(total_todos=len(completions), completed_todos=sum(1 for c in completions if c))


def average_score(exams: list[ExamResult] | tuple[ExamResult, ...]) -> int:
    """Rounded mean of exam percentages, 0 without exams."""
    if not exams:
        return 0
    total = sum(Decimal(str(exam.percentage)) for exam in exams)
    return round_half_up(total / len(exams))


def achievement_rate(avg_score: int, attendance_rate: int, homework_rate: int) -> int:
    """Overall achievement: rounded mean of the three headline rates."""
    return round_half_up(Decimal(avg_score + attendance_rate + homework_rate) / 3)


class ReportAggregator:
    """Builds student reports from activity records.

    The aggregator does not persist the report; callers save it through
    ReportRepository.
    """

    def __init__(
        self,
        reader: StudentActivityReader,
        consultation_limit: int = DEFAULT_CONSULTATION_LIMIT,
    ) -> None:
        """Initialize the aggregator.

        Args:
            reader: Activity record queries.
            consultation_limit: Maximum consultations included.
        """
        self._reader = reader
        self._consultation_limit = consultation_limit

    async def generate(
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
        """Generate a report for one student over an inclusive date range.

        Args:
            student_id: Student to report on.
            start_date: First day of the period.
            end_date: Last day of the period.
            type: Report type.
            generated_by: Staff member generating the report.
            tenant_id: Owning academy.
            comment: Instructor's overall comment.
            academy_name: Academy display name stored with the report.
            academy_phone: Academy contact number stored with the report.

        Returns:
            The generated, unsaved Report.

        Raises:
            StudentNotFoundError: If the student does not exist in the tenant.
            ValueError: If end_date is before start_date.
        """
        start = parse_date(start_date)
        end = parse_date(end_date)
        lower, upper = date_range_bounds(start, end)

        student = await self._reader.get_student(student_id, tenant_id)
        if student is None:
            raise StudentNotFoundError(student_id)

        exams, statuses, completions, consultations, instructor_name = await asyncio.gather(
            self._read_or_default(
                "exam scores",
                student_id,
                self._reader.get_exam_results(student_id, tenant_id, lower, upper),
                [],
            ),
            self._read_or_default(
                "attendance",
                student_id,
                self._reader.get_attendance_statuses(student_id, tenant_id, lower, upper),
                [],
            ),
            self._read_or_default(
                "todos",
                student_id,
                self._reader.get_todo_completions(student_id, tenant_id, lower, upper),
                [],
            ),
            self._read_or_default(
                "consultations",
                student_id,
                self._reader.get_consultations(
                    student_id, tenant_id, start, end, limit=self._consultation_limit
                ),
                [],
            ),
            self._read_or_default(
                "instructor name",
                student_id,
                self._reader.get_user_name(generated_by),
                None,
            ),
        )

        attendance = AttendanceTally.from_statuses(statuses)
        homework = HomeworkTally.from_completions(completions)
        avg = average_score(exams)

        data = ReportData(
            student_name=student.name,
            student_code=student.student_code,
            grade=student.grade,
            start_date=start.isoformat(),
            end_date=end.isoformat(),
            report_month=start.isoformat()[:7],
            exams=tuple(exams),
            avg_score=avg,
            attendance_rate=attendance.rate,
            total_days=attendance.total_days,
            present_days=attendance.present_days,
            late_days=attendance.late_days,
            absent_days=attendance.absent_days,
            homework_rate=homework.rate,
            total_todos=homework.total_todos,
            completed_todos=homework.completed_todos,
            consultations=self._latest(consultations),
            overall_comment=comment or "",
            achievement_rate=achievement_rate(avg, attendance.rate, homework.rate),
            academy_name=academy_name,
            academy_phone=academy_phone,
            instructor_name=instructor_name,
        )

        report = Report(
            id=new_uuid(),
            tenant_id=tenant_id,
            type=type,
            student_id=student_id,
            class_id=None,
            data=data,
            generated_by=generated_by,
            created_at=utc_now(),
        )

        logger.info(
            "Report generated: id=%s, student=%s, period=%s~%s, exams=%d, attendance=%d, todos=%d",
            report.id,
            student_id,
            data.start_date,
            data.end_date,
            len(exams),
            attendance.total_days,
            homework.total_todos,
        )
        return report

    def _latest(self, consultations: list[ConsultationSummary]) -> tuple[ConsultationSummary, ...]:
        ordered = sorted(consultations, key=lambda c: c.date, reverse=True)
        return tuple(ordered[: self._consultation_limit])

    async def _read_or_default(
        self,
        name: str,
        student_id: str,
        read: Awaitable[T],
        default: T,
    ) -> T:
        try:
            return await read
        except Exception as e:
            logger.warning(
                "Report %s read failed for student %s, using empty result: %s",
                name,
                student_id,
                e,
                exc_info=True,
            )
            return default
