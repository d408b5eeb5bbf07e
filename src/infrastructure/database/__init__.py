# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for PostgreSQL connections.

This package provides the SQLAlchemy async connection to the academy
database and the ORM models for the tables the report pipeline reads
and writes.

Example:
    from src.infrastructure.database import init_database

    session_factory = await init_database(settings)
    async with session_factory() as session:
        result = await session.execute(select(ReportModel))
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    init_database,
)

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "close_database",
    "init_database",
]
