# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academy directory and activity record models.

These tables are owned by the academy management application; the report
pipeline only reads them:

- users / students / guardians / student_guardians: who the report is
  about and who receives it.
- exams / exam_scores, attendance, student_todos, consultations: the
  activity records a report summarises.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    UUIDType,
)


class User(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Academy user: student, guardian or staff member."""

    __tablename__ = "users"

    tenant_id: Mapped[str] = mapped_column(UUIDType, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)


class Student(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Enrolled student."""

    __tablename__ = "students"

    tenant_id: Mapped[str] = mapped_column(UUIDType, nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(
        UUIDType, ForeignKey("users.id"), nullable=True
    )
    student_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    grade: Mapped[str | None] = mapped_column(String(20), nullable=True)

    user: Mapped[User | None] = relationship(lazy="joined")


class Guardian(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Parent or guardian of one or more students."""

    __tablename__ = "guardians"

    tenant_id: Mapped[str] = mapped_column(UUIDType, nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(
        UUIDType, ForeignKey("users.id"), nullable=True
    )
    relationship_type: Mapped[str | None] = mapped_column(
        "relationship", String(20), nullable=True
    )

    user: Mapped[User | None] = relationship(lazy="joined")


class StudentGuardian(Base):
    """Association between a student and a guardian."""

    __tablename__ = "student_guardians"

    student_id: Mapped[str] = mapped_column(
        UUIDType, ForeignKey("students.id"), primary_key=True
    )
    guardian_id: Mapped[str] = mapped_column(
        UUIDType, ForeignKey("guardians.id"), primary_key=True
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Exam(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Exam definition."""

    __tablename__ = "exams"

    tenant_id: Mapped[str] = mapped_column(UUIDType, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    exam_date: Mapped[date | None] = mapped_column(Date, nullable=True)


class ExamScore(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A student's result on one exam."""

    __tablename__ = "exam_scores"

    tenant_id: Mapped[str] = mapped_column(UUIDType, nullable=False, index=True)
    exam_id: Mapped[str] = mapped_column(UUIDType, ForeignKey("exams.id"), nullable=False)
    student_id: Mapped[str] = mapped_column(
        UUIDType, ForeignKey("students.id"), nullable=False, index=True
    )
    score: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)

    exam: Mapped[Exam] = relationship(lazy="joined")


class Attendance(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Daily attendance record (present, late or absent)."""

    __tablename__ = "attendance"

    tenant_id: Mapped[str] = mapped_column(UUIDType, nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(
        UUIDType, ForeignKey("students.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)


class StudentTodo(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Assignment given to a student; completed when completed_at is set."""

    __tablename__ = "student_todos"

    tenant_id: Mapped[str] = mapped_column(UUIDType, nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(
        UUIDType, ForeignKey("students.id"), nullable=False, index=True
    )
    title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class Consultation(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Counselling note written by an instructor."""

    __tablename__ = "consultations"

    tenant_id: Mapped[str] = mapped_column(UUIDType, nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(
        UUIDType, ForeignKey("students.id"), nullable=False, index=True
    )
    consultation_date: Mapped[date] = mapped_column(Date, nullable=False)
    consultation_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
