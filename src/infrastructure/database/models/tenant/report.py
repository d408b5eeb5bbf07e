# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Generated report model.

A report row is written once when the report is generated and never
updated afterwards. The aggregated figures live in the ``data`` JSON
column as a snapshot of the records at generation time.
"""

from typing import Any

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    JSONType,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDType,
)


class ReportModel(TimestampMixin, SoftDeleteMixin, Base):
    """Persisted student or class learning report."""

    __tablename__ = "reports"

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(UUIDType, nullable=False, index=True)
    report_type: Mapped[str] = mapped_column("type", String(30), nullable=False)
    student_id: Mapped[str | None] = mapped_column(
        UUIDType, ForeignKey("students.id"), nullable=True, index=True
    )
    class_id: Mapped[str | None] = mapped_column(UUIDType, nullable=True, index=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    generated_by: Mapped[str] = mapped_column(UUIDType, nullable=False)
