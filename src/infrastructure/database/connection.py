# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academy database connection management using SQLAlchemy async.

This module provides async database connections for the academy database,
which holds students, their activity records, generated reports and the
message delivery ledger.

Uses SQLAlchemy 2.0 async API with asyncpg driver.

Repositories receive the sessionmaker rather than a session so that
independent reads can each open their own session and run concurrently.

Example:
    from src.infrastructure.database.connection import (
        init_database,
        close_database,
    )

    # Initialize at application startup
    session_factory = await init_database(settings)

    async with session_factory() as session:
        result = await session.execute(select(ReportModel))
        reports = result.scalars().all()

    await close_database()
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings

# Module-level state for the academy database connection
_engine: Optional[AsyncEngine] = None


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


async def init_database(settings: "Settings") -> async_sessionmaker[AsyncSession]:
    """Initialize the academy database connection pool.

    This should be called once at application startup to create
    the connection pool.

    Args:
        settings: Application settings containing database configuration.

    Returns:
        The sessionmaker bound to the new engine.

    Raises:
        DatabaseError: If connection pool creation fails.
    """
    global _engine

    try:
        _engine = create_async_engine(
            settings.database.url,
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
            pool_pre_ping=True,
            pool_recycle=1800,
            echo=settings.database.echo,
        )

        sessionmaker = async_sessionmaker(
            bind=_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e

    return sessionmaker


async def close_database() -> None:
    """Close the database connection pool.

    This should be called at application shutdown to properly
    close all connections in the pool.
    """
    global _engine

    if _engine is not None:
        await _engine.dispose()
        _engine = None


async def check_database_connection() -> bool:
    """Check if the database is reachable.

    Performs a simple query to verify database connectivity.

    Returns:
        True if the database is reachable, False otherwise.
    """
    if _engine is None:
        return False

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
