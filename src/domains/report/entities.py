# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report entities.

A Report is an immutable snapshot of one student's learning activity over
a date range. It is generated once and never modified; corrections mean
generating a new report. Derived rates are always stored together with
the raw counts they were computed from.

The ``data`` payload is persisted as JSON with camelCase keys, which is
the format the report viewer reads.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from src.infrastructure.database.models.tenant.report import ReportModel
from src.utils.datetime import ensure_utc


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer with halves rounded up.

    Python's built-in round() rounds halves to even, which would report
    a 72.5% attendance as 72.

    Args:
        value: Number to round.

    Returns:
        Rounded integer.
    """
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percentage(part: int, total: int) -> int:
    """Return part/total as a rounded percentage, 0 when total is 0."""
    if total <= 0:
        return 0
    return round_half_up(Decimal(part) * 100 / Decimal(total))


class ReportType(str, Enum):
    """Kinds of report."""

    STUDENT_MONTHLY = "student_monthly"
    STUDENT_WEEKLY = "student_weekly"
    STUDENT_EXAM = "student_exam"
    CUSTOM = "custom"
    CLASS_SUMMARY = "class_summary"


@dataclass(frozen=True)
class ExamResult:
    """One exam result within the report period.

    Attributes:
        name: Exam name.
        date: Exam date (YYYY-MM-DD), empty when unknown.
        score: Raw score.
        percentage: Score as a percentage of the maximum.
    """

    name: str
    date: str
    score: float
    percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "date": self.date,
            "score": self.score,
            "percentage": self.percentage,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExamResult":
        return cls(
            name=data.get("name", ""),
            date=data.get("date", ""),
            score=float(data.get("score") or 0),
            percentage=float(data.get("percentage") or 0),
        )


@dataclass(frozen=True)
class ConsultationSummary:
    """A consultation held within the report period.

    Attributes:
        date: Consultation date (YYYY-MM-DD).
        type: Consultation type label.
        summary: Short summary written by the instructor.
    """

    date: str
    type: str
    summary: str

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "type": self.type, "summary": self.summary}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConsultationSummary":
        return cls(
            date=data.get("date", ""),
            type=data.get("type", ""),
            summary=data.get("summary", ""),
        )


@dataclass(frozen=True)
class ReportData:
    """Aggregated report payload.

    Attributes:
        student_name: Student display name.
        student_code: Academy student code.
        grade: Grade label.
        start_date: First day of the period (YYYY-MM-DD).
        end_date: Last day of the period (YYYY-MM-DD), inclusive.
        report_month: Month of start_date (YYYY-MM).
        exams: Exam results, most recent first.
        avg_score: Rounded mean of exam percentages.
        attendance_rate: Rounded present_days / total_days percentage.
        total_days: Attendance rows in the period.
        present_days: Days marked present.
        late_days: Days marked late (not counted as present).
        absent_days: Days marked absent.
        homework_rate: Rounded completed_todos / total_todos percentage.
        total_todos: Assignments in the period.
        completed_todos: Completed assignments.
        consultations: Most recent consultations, newest first.
        overall_comment: Instructor comment.
        achievement_rate: Optional goal achievement percentage.
        academy_name: Academy display name for messages.
        academy_phone: Academy contact number for messages.
        instructor_name: Homeroom instructor name.
    """

    student_name: str
    student_code: str
    grade: str
    start_date: str
    end_date: str
    report_month: str
    exams: tuple[ExamResult, ...] = ()
    avg_score: int = 0
    attendance_rate: int = 0
    total_days: int = 0
    present_days: int = 0
    late_days: int = 0
    absent_days: int = 0
    homework_rate: int = 0
    total_todos: int = 0
    completed_todos: int = 0
    consultations: tuple[ConsultationSummary, ...] = ()
    overall_comment: str = ""
    achievement_rate: int | None = None
    academy_name: str | None = None
    academy_phone: str | None = None
    instructor_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase JSON payload."""
        data: dict[str, Any] = {
            "studentName": self.student_name,
            "studentCode": self.student_code,
            "grade": self.grade,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "reportMonth": self.report_month,
            "exams": [exam.to_dict() for exam in self.exams],
            "avgScore": self.avg_score,
            "attendanceRate": self.attendance_rate,
            "totalDays": self.total_days,
            "presentDays": self.present_days,
            "lateDays": self.late_days,
            "absentDays": self.absent_days,
            "homeworkRate": self.homework_rate,
            "totalTodos": self.total_todos,
            "completedTodos": self.completed_todos,
            "consultations": [c.to_dict() for c in self.consultations],
            "overallComment": self.overall_comment,
        }
        optional = {
            "achievementRate": self.achievement_rate,
            "academyName": self.academy_name,
            "academyPhone": self.academy_phone,
            "instructorName": self.instructor_name,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReportData":
        """Build from the camelCase JSON payload."""
        return cls(
            student_name=data.get("studentName", ""),
            student_code=data.get("studentCode", ""),
            grade=data.get("grade", ""),
            start_date=data.get("startDate", ""),
            end_date=data.get("endDate", ""),
            report_month=data.get("reportMonth", ""),
            exams=tuple(ExamResult.from_dict(e) for e in data.get("exams") or []),
            avg_score=int(data.get("avgScore") or 0),
            attendance_rate=int(data.get("attendanceRate") or 0),
            total_days=int(data.get("totalDays") or 0),
            present_days=int(data.get("presentDays") or 0),
            late_days=int(data.get("lateDays") or 0),
            absent_days=int(data.get("absentDays") or 0),
            homework_rate=int(data.get("homeworkRate") or 0),
            total_todos=int(data.get("totalTodos") or 0),
            completed_todos=int(data.get("completedTodos") or 0),
            consultations=tuple(
                ConsultationSummary.from_dict(c) for c in data.get("consultations") or []
            ),
            overall_comment=data.get("overallComment") or "",
            achievement_rate=data.get("achievementRate"),
            academy_name=data.get("academyName"),
            academy_phone=data.get("academyPhone"),
            instructor_name=data.get("instructorName"),
        )


@dataclass(frozen=True)
class Report:
    """Immutable generated report.

    Attributes:
        id: Report id (UUID string).
        tenant_id: Owning academy.
        type: Report type.
        student_id: Student the report is about (None for class reports).
        class_id: Class the report is about, if any.
        data: Aggregated payload.
        generated_by: Id of the staff member who generated it.
        created_at: Generation time (UTC).
    """

    id: str
    tenant_id: str
    type: ReportType
    student_id: str | None
    class_id: str | None
    data: ReportData
    generated_by: str
    created_at: datetime = field(compare=False)

    def link(self, base_url: str) -> str:
        """Public viewer link for this report."""
        return f"{base_url.rstrip('/')}/r/{self.id}"

    def to_record(self) -> ReportModel:
        """Convert to an ORM record for insertion."""
        return ReportModel(
            id=self.id,
            tenant_id=self.tenant_id,
            report_type=self.type.value,
            student_id=self.student_id,
            class_id=self.class_id,
            data=self.data.to_dict(),
            generated_by=self.generated_by,
            created_at=self.created_at,
        )

    @classmethod
    def from_record(cls, record: ReportModel) -> "Report":
        """Build from a loaded ORM record."""
        return cls(
            id=str(record.id),
            tenant_id=str(record.tenant_id),
            type=ReportType(record.report_type),
            student_id=str(record.student_id) if record.student_id else None,
            class_id=str(record.class_id) if record.class_id else None,
            data=ReportData.from_dict(record.data or {}),
            generated_by=str(record.generated_by),
            created_at=ensure_utc(record.created_at),
        )
