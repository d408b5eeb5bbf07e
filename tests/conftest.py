# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

from collections.abc import Generator
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.config.settings import clear_settings_cache
from src.domains.report.entities import (
    ConsultationSummary,
    ExamResult,
    Report,
    ReportData,
    ReportType,
)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Generator[None, None, None]:
    """Drop cached settings between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def mock_session() -> AsyncMock:
    """Provide a mock AsyncSession."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def session_factory(mock_session: AsyncMock) -> MagicMock:
    """Provide a sessionmaker whose sessions are mock_session."""
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=mock_session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_student_id() -> str:
    """Provide a sample student ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def sample_tenant_id() -> str:
    """Provide a sample tenant ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def sample_report_id() -> str:
    """Provide a sample report ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440002"


@pytest.fixture
def sample_teacher_id() -> str:
    """Provide a sample staff member ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440003"


@pytest.fixture
def sample_report_data() -> ReportData:
    """Provide a fully populated report payload."""
    return ReportData(
        student_name="김민준",
        student_code="S2025-001",
        grade="중2",
        start_date="2025-03-01",
        end_date="2025-03-31",
        report_month="2025-03",
        exams=(
            ExamResult(name="3월 모의고사", date="2025-03-20", score=92, percentage=92),
            ExamResult(name="단원평가", date="2025-03-08", score=44, percentage=88),
        ),
        avg_score=90,
        attendance_rate=90,
        total_days=10,
        present_days=9,
        late_days=0,
        absent_days=1,
        homework_rate=80,
        total_todos=5,
        completed_todos=4,
        consultations=(
            ConsultationSummary(date="2025-03-15", type="학부모", summary="수학 심화반 상담"),
        ),
        overall_comment="꾸준히 성장하고 있습니다.",
        achievement_rate=87,
        academy_name="하늘수학학원",
        academy_phone="02-123-4567",
    )


@pytest.fixture
def sample_report(
    sample_report_id: str,
    sample_tenant_id: str,
    sample_student_id: str,
    sample_teacher_id: str,
    sample_report_data: ReportData,
) -> Report:
    """Provide a generated student report."""
    return Report(
        id=sample_report_id,
        tenant_id=sample_tenant_id,
        type=ReportType.STUDENT_MONTHLY,
        student_id=sample_student_id,
        class_id=None,
        data=sample_report_data,
        generated_by=sample_teacher_id,
        created_at=datetime(2025, 4, 1, 9, 0, tzinfo=timezone.utc),
    )

