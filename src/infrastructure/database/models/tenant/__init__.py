# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academy database models."""

from src.infrastructure.database.models.tenant.academy import (
    Attendance,
    Consultation,
    Exam,
    ExamScore,
    Guardian,
    Student,
    StudentGuardian,
    StudentTodo,
    User,
)
from src.infrastructure.database.models.tenant.messaging import MessageLogModel
from src.infrastructure.database.models.tenant.report import ReportModel

__all__ = [
    "User",
    "Student",
    "Guardian",
    "StudentGuardian",
    "Exam",
    "ExamScore",
    "Attendance",
    "StudentTodo",
    "Consultation",
    "ReportModel",
    "MessageLogModel",
]
