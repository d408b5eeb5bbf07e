# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Declarative base and shared column mixins for ORM models.

Primary keys are PostgreSQL UUIDs exposed to Python as strings, and every
timestamp is stored as TIMESTAMPTZ.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in local tooling)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# String-typed UUID column
UUIDType = UUID(as_uuid=False)


def new_uuid() -> str:
    """Generate a new string UUID for primary keys."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Declarative base for all academy database models."""


class UUIDPrimaryKeyMixin:
    """Adds a string UUID primary key."""

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=new_uuid)


class TimestampMixin:
    """Adds created_at / updated_at bookkeeping columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class SoftDeleteMixin:
    """Adds a deleted_at column; rows with a value are treated as absent."""

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
