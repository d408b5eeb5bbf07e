# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data access for report generation and dispatch.

ReportRepository persists generated reports. StudentActivityReader holds
the read-only queries over the academy tables that the aggregator and
the guardian lookup need.

Every method opens its own session from the sessionmaker, so the
aggregator can run several reads concurrently.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domains.report.entities import ConsultationSummary, ExamResult, Report
from src.infrastructure.database.connection import DatabaseError
from src.infrastructure.database.models.tenant.academy import (
    Attendance,
    Consultation,
    ExamScore,
    Guardian,
    Student,
    StudentGuardian,
    StudentTodo,
    User,
)
from src.infrastructure.database.models.tenant.report import ReportModel

logger = logging.getLogger(__name__)

UNKNOWN_STUDENT_NAME = "이름 없음"
UNKNOWN_EXAM_NAME = "시험명 없음"
DEFAULT_CONSULTATION_TYPE = "일반"


@dataclass(frozen=True)
class StudentProfile:
    """Display fields of a student.

    Attributes:
        id: Student id.
        name: Student display name.
        student_code: Academy student code.
        grade: Grade label.
    """

    id: str
    name: str
    student_code: str
    grade: str


@dataclass(frozen=True)
class GuardianContact:
    """A guardian who can receive report notifications.

    Attributes:
        guardian_id: Guardian id.
        name: Display name.
        phone: Phone number, if registered.
        email: Email address, if registered.
        relationship: Relationship to the student (mother, father, ...).
        is_primary: Whether this is the student's primary guardian.
    """

    guardian_id: str
    name: str
    phone: str | None = None
    email: str | None = None
    relationship: str | None = None
    is_primary: bool = False


class ReportRepository:
    """Persistence for generated reports."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the repository.

        Args:
            session_factory: Sessionmaker for the academy database.
        """
        self._session_factory = session_factory

    async def save(self, report: Report) -> Report:
        """Insert a generated report.

        Args:
            report: Report to persist.

        Returns:
            The same report.

        Raises:
            DatabaseError: If the insert fails.
        """
        try:
            async with self._session_factory() as session:
                session.add(report.to_record())
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to save report %s", report.id, exc_info=True)
            raise DatabaseError("Failed to save report", e) from e

        logger.info(
            "Report saved: id=%s, student=%s, type=%s",
            report.id,
            report.student_id,
            report.type.value,
        )
        return report

    async def find_by_id(self, report_id: str, tenant_id: str) -> Report | None:
        """Get a report by id within a tenant.

        Soft-deleted reports are treated as absent.
        """
        stmt = select(ReportModel).where(
            ReportModel.id == report_id,
            ReportModel.tenant_id == tenant_id,
            ReportModel.deleted_at.is_(None),
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to load report %s", report_id, exc_info=True)
            raise DatabaseError("Failed to load report", e) from e

        return Report.from_record(record) if record else None

    async def find_by_student(
        self,
        student_id: str,
        tenant_id: str,
        limit: int = 10,
    ) -> list[Report]:
        """List a student's reports, newest first."""
        stmt = (
            select(ReportModel)
            .where(
                ReportModel.student_id == student_id,
                ReportModel.tenant_id == tenant_id,
                ReportModel.deleted_at.is_(None),
            )
            .order_by(ReportModel.created_at.desc())
            .limit(limit)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                records = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to list reports for student %s", student_id, exc_info=True)
            raise DatabaseError("Failed to list reports", e) from e

        return [Report.from_record(record) for record in records]


class StudentActivityReader:
    """Read-only queries over the academy activity tables.

    Period filters on ``created_at`` take a half-open UTC range
    (``lower <= created_at < upper``) so the last day is included in full.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the reader.

        Args:
            session_factory: Sessionmaker for the academy database.
        """
        self._session_factory = session_factory

    async def _execute(self, stmt: Any, operation: str) -> Any:
        try:
            async with self._session_factory() as session:
                return await session.execute(stmt)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Activity query failed: {operation}", e) from e

    async def get_student(self, student_id: str, tenant_id: str) -> StudentProfile | None:
        """Get a student's display fields; None if absent or soft-deleted."""
        stmt = select(Student).where(
            Student.id == student_id,
            Student.tenant_id == tenant_id,
            Student.deleted_at.is_(None),
        )
        result = await self._execute(stmt, "get_student")
        student = result.unique().scalar_one_or_none()
        if student is None:
            return None
        return StudentProfile(
            id=str(student.id),
            name=(student.user.name if student.user else None) or UNKNOWN_STUDENT_NAME,
            student_code=student.student_code or "",
            grade=student.grade or "",
        )

    async def get_user_name(self, user_id: str) -> str | None:
        """Get a user's display name."""
        result = await self._execute(select(User.name).where(User.id == user_id), "get_user_name")
        return result.scalar_one_or_none()

    async def get_exam_results(
        self,
        student_id: str,
        tenant_id: str,
        lower: datetime,
        upper: datetime,
    ) -> list[ExamResult]:
        """Exam results recorded in the period, most recent first."""
        stmt = (
            select(ExamScore)
            .where(
                ExamScore.student_id == student_id,
                ExamScore.tenant_id == tenant_id,
                ExamScore.created_at >= lower,
                ExamScore.created_at < upper,
            )
            .order_by(ExamScore.created_at.desc())
        )
        result = await self._execute(stmt, "get_exam_results")
        results = []
        for row in result.unique().scalars().all():
            exam = row.exam
            results.append(
                ExamResult(
                    name=(exam.name if exam else None) or UNKNOWN_EXAM_NAME,
                    date=exam.exam_date.isoformat() if exam and exam.exam_date else "",
                    score=float(row.score or 0),
                    percentage=float(row.percentage or 0),
                )
            )
        return results

    async def get_attendance_statuses(
        self,
        student_id: str,
        tenant_id: str,
        lower: datetime,
        upper: datetime,
    ) -> list[str]:
        """Attendance statuses recorded in the period."""
        stmt = select(Attendance.status).where(
            Attendance.student_id == student_id,
            Attendance.tenant_id == tenant_id,
            Attendance.created_at >= lower,
            Attendance.created_at < upper,
        )
        result = await self._execute(stmt, "get_attendance_statuses")
        return list(result.scalars().all())

    async def get_todo_completions(
        self,
        student_id: str,
        tenant_id: str,
        lower: datetime,
        upper: datetime,
    ) -> list[bool]:
        """Completion flag of each assignment created in the period."""
        stmt = select(StudentTodo.completed_at).where(
            StudentTodo.student_id == student_id,
            StudentTodo.tenant_id == tenant_id,
            StudentTodo.created_at >= lower,
            StudentTodo.created_at < upper,
        )
        result = await self._execute(stmt, "get_todo_completions")
        return [completed_at is not None for completed_at in result.scalars().all()]

    async def get_consultations(
        self,
        student_id: str,
        tenant_id: str,
        start: date,
        end: date,
        limit: int = 5,
    ) -> list[ConsultationSummary]:
        """Most recent consultations held between start and end inclusive."""
        stmt = (
            select(Consultation)
            .where(
                Consultation.student_id == student_id,
                Consultation.tenant_id == tenant_id,
                Consultation.consultation_date >= start,
                Consultation.consultation_date <= end,
            )
            .order_by(Consultation.consultation_date.desc())
            .limit(limit)
        )
        result = await self._execute(stmt, "get_consultations")
        return [
            ConsultationSummary(
                date=row.consultation_date.isoformat(),
                type=row.consultation_type or DEFAULT_CONSULTATION_TYPE,
                summary=row.summary or "",
            )
            for row in result.scalars().all()
        ]

    async def get_guardians(self, student_id: str, tenant_id: str) -> list[GuardianContact]:
        """A student's guardians, primary guardian first."""
        stmt = (
            select(Guardian, StudentGuardian.is_primary)
            .join(StudentGuardian, StudentGuardian.guardian_id == Guardian.id)
            .where(
                StudentGuardian.student_id == student_id,
                Guardian.tenant_id == tenant_id,
                Guardian.deleted_at.is_(None),
            )
            .order_by(StudentGuardian.is_primary.desc())
        )
        result = await self._execute(stmt, "get_guardians")
        guardians = []
        for guardian, is_primary in result.unique().all():
            user = guardian.user
            guardians.append(
                GuardianContact(
                    guardian_id=str(guardian.id),
                    name=(user.name if user else None) or "보호자",
                    phone=user.phone if user else None,
                    email=user.email if user else None,
                    relationship=guardian.relationship_type,
                    is_primary=bool(is_primary),
                )
            )
        return guardians
