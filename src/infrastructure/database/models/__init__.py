# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for the academy database."""

from src.infrastructure.database.models.base import Base, JSONType, UUIDType, new_uuid

__all__ = [
    "Base",
    "JSONType",
    "UUIDType",
    "new_uuid",
]
