# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database models.

Tests model definitions and column mappings.
"""

from src.infrastructure.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    new_uuid,
)
from src.infrastructure.database.models.tenant import (
    Attendance,
    Consultation,
    Exam,
    ExamScore,
    Guardian,
    MessageLogModel,
    ReportModel,
    Student,
    StudentGuardian,
    StudentTodo,
    User,
)


class TestBase:
    """Test base model functionality."""

    def test_base_inherits_declarative_base(self):
        """Verify Base is a declarative base."""
        assert hasattr(Base, "metadata")
        assert hasattr(Base, "registry")

    def test_timestamp_mixin_has_created_at(self):
        """Verify TimestampMixin has created_at field."""
        assert hasattr(TimestampMixin, "created_at")
        assert hasattr(TimestampMixin, "updated_at")

    def test_soft_delete_mixin_has_deleted_at(self):
        """Verify SoftDeleteMixin has deleted_at field."""
        assert hasattr(SoftDeleteMixin, "deleted_at")

    def test_new_uuid_is_unique_string(self):
        """Verify new_uuid returns distinct string ids."""
        first, second = new_uuid(), new_uuid()

        assert isinstance(first, str)
        assert len(first) == 36
        assert first != second


class TestDirectoryModels:
    """Test academy directory models."""

    def test_user_model_exists(self):
        """Verify User model has contact attributes."""
        assert User.__tablename__ == "users"
        assert hasattr(User, "name")
        assert hasattr(User, "phone")
        assert hasattr(User, "email")
        assert hasattr(User, "deleted_at")

    def test_student_model_exists(self):
        """Verify Student model has display attributes."""
        assert Student.__tablename__ == "students"
        assert hasattr(Student, "student_code")
        assert hasattr(Student, "grade")
        assert hasattr(Student, "user")

    def test_guardian_relationship_column_name(self):
        """Verify Guardian.relationship_type maps to the relationship column."""
        assert Guardian.__tablename__ == "guardians"
        assert Guardian.__mapper__.columns["relationship_type"].name == "relationship"

    def test_student_guardian_composite_key(self):
        """Verify the association table is keyed by both ids."""
        primary_key = {column.name for column in StudentGuardian.__table__.primary_key}

        assert StudentGuardian.__tablename__ == "student_guardians"
        assert primary_key == {"student_id", "guardian_id"}


class TestActivityModels:
    """Test activity record models."""

    def test_activity_tables(self):
        """Verify activity models map to their tables."""
        assert Exam.__tablename__ == "exams"
        assert ExamScore.__tablename__ == "exam_scores"
        assert Attendance.__tablename__ == "attendance"
        assert StudentTodo.__tablename__ == "student_todos"
        assert Consultation.__tablename__ == "consultations"

    def test_exam_score_has_exam_relationship(self):
        """Verify ExamScore exposes its exam."""
        assert hasattr(ExamScore, "exam")
        assert hasattr(ExamScore, "percentage")


class TestReportModel:
    """Test ReportModel."""

    def test_report_model_exists(self):
        """Verify ReportModel has required attributes."""
        assert ReportModel.__tablename__ == "reports"
        assert hasattr(ReportModel, "data")
        assert hasattr(ReportModel, "generated_by")
        assert hasattr(ReportModel, "deleted_at")

    def test_report_type_column_name(self):
        """Verify report_type is stored in the type column."""
        assert ReportModel.__mapper__.columns["report_type"].name == "type"


class TestMessageLogModel:
    """Test MessageLogModel."""

    def test_message_log_model_exists(self):
        """Verify MessageLogModel has the ledger columns."""
        columns = {column.name for column in MessageLogModel.__table__.columns}

        assert MessageLogModel.__tablename__ == "message_logs"
        assert {
            "tenant_id",
            "channel",
            "provider",
            "recipient_name",
            "recipient_contact",
            "message_subject",
            "message_body",
            "message_id",
            "status",
            "cost",
            "error_message",
            "metadata",
            "sent_at",
            "delivered_at",
            "failed_at",
            "created_at",
            "updated_at",
        } <= columns

    def test_metadata_attribute_name(self):
        """Verify the metadata column is exposed as metadata_."""
        assert MessageLogModel.__mapper__.columns["metadata_"].name == "metadata"

    def test_message_log_instantiation(self):
        """Test MessageLogModel can be created."""
        log = MessageLogModel(
            tenant_id=new_uuid(),
            channel="sms",
            provider="aligo",
            recipient_name="김보호",
            recipient_contact="01012345678",
            message_body="본문",
            status="sent",
            metadata_={"studentId": "s-1"},
        )

        assert log.channel == "sms"
        assert log.metadata_ == {"studentId": "s-1"}
