# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Delivery ledger for report notifications.

Every dispatch attempt writes exactly one row to ``message_logs``,
whether the provider accepted the message or not. Rows are never
deleted; afterwards only the delivery status columns change, through
``MessageLogRepository.update_status``.

Correlation with the report, student and sender is stored in the
``metadata`` JSON column with camelCase keys (``tenantId``,
``studentId``, ``reportId``, ``senderId``) so rows can be looked up by
student.

Example:
    ledger = MessageLogRepository(session_factory)
    log = await ledger.create(
        NewMessageLog.from_attempt(
            request=request,
            provider="aligo",
            response=response,
            correlation=Correlation(tenant_id=tenant_id, report_id=report.id),
        )
    )
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.infrastructure.database.connection import DatabaseError
from src.infrastructure.database.models import new_uuid
from src.infrastructure.database.models.tenant.messaging import MessageLogModel
from src.infrastructure.notifications.channels.base import (
    DeliveryStatus,
    MessageChannel,
    SendMessageRequest,
    SendMessageResponse,
)
from src.utils.datetime import ensure_utc, format_iso, utc_now

logger = logging.getLogger(__name__)

_METADATA_KEYS = {
    "tenant_id": "tenantId",
    "student_id": "studentId",
    "report_id": "reportId",
    "sender_id": "senderId",
}


@dataclass(frozen=True)
class Correlation:
    """Links a ledger row to the records that caused the dispatch.

    Attributes:
        tenant_id: Owning academy.
        student_id: Student the report is about.
        report_id: Report being announced.
        sender_id: Staff member who triggered the send.
    """

    tenant_id: str
    student_id: str | None = None
    report_id: str | None = None
    sender_id: str | None = None

    def to_metadata(self) -> dict[str, str]:
        """Return the camelCase map stored in the metadata column."""
        return {
            key: getattr(self, attr)
            for attr, key in _METADATA_KEYS.items()
            if getattr(self, attr) is not None
        }

    @classmethod
    def from_metadata(cls, metadata: Mapping[str, Any] | None) -> "Correlation | None":
        """Rebuild from a stored metadata map, None when it has no tenant."""
        metadata = metadata or {}
        if not metadata.get("tenantId"):
            return None
        values = {
            attr: str(metadata[key]) if metadata.get(key) is not None else None
            for attr, key in _METADATA_KEYS.items()
        }
        return cls(**values)


@dataclass(frozen=True)
class NewMessageLog:
    """Insert shape of a ledger row.

    Use ``from_attempt`` so that the status and its timestamp always
    agree with the provider response.
    """

    tenant_id: str
    channel: MessageChannel
    provider: str
    recipient_name: str
    recipient_contact: str
    message_body: str
    status: DeliveryStatus
    message_subject: str | None = None
    message_id: str | None = None
    cost: float | None = None
    error_message: str | None = None
    correlation: Correlation | None = None
    sent_at: datetime | None = None
    failed_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.status not in (DeliveryStatus.SENT, DeliveryStatus.FAILED):
            raise ValueError(f"Ledger rows start as sent or failed, got {self.status.value}")
        if self.sent_at is not None and self.failed_at is not None:
            raise ValueError("A ledger row cannot be both sent and failed")

    @classmethod
    def from_attempt(
        cls,
        request: SendMessageRequest,
        provider: str,
        response: SendMessageResponse,
        correlation: Correlation,
        attempted_at: datetime | None = None,
    ) -> "NewMessageLog":
        """Build the row for one dispatch attempt.

        Args:
            request: The request handed to the provider.
            provider: Provider name.
            response: Provider response (or a synthesized failure).
            correlation: Report and student linkage.
            attempted_at: Attempt time, defaults to now.

        Returns:
            A sent row on success, a failed row otherwise.
        """
        at = attempted_at or utc_now()
        common = dict(
            tenant_id=correlation.tenant_id,
            channel=request.channel,
            provider=provider,
            recipient_name=request.recipient.name,
            recipient_contact=request.recipient.contact_for(request.channel) or "",
            message_subject=request.content.subject,
            message_body=request.content.snapshot(),
            correlation=correlation,
        )
        if response.success:
            return cls(
                status=DeliveryStatus.SENT,
                message_id=response.message_id,
                cost=response.cost,
                sent_at=at,
                **common,
            )
        return cls(
            status=DeliveryStatus.FAILED,
            error_message=response.error or "Unknown error",
            failed_at=at,
            **common,
        )

    def to_record(self) -> MessageLogModel:
        """Convert to an ORM record with id and bookkeeping timestamps set."""
        now = utc_now()
        return MessageLogModel(
            id=new_uuid(),
            tenant_id=self.tenant_id,
            channel=self.channel.value,
            provider=self.provider,
            recipient_name=self.recipient_name,
            recipient_contact=self.recipient_contact,
            message_subject=self.message_subject,
            message_body=self.message_body,
            message_id=self.message_id,
            status=self.status.value,
            cost=Decimal(str(self.cost)) if self.cost is not None else None,
            error_message=self.error_message,
            metadata_=self.correlation.to_metadata() if self.correlation else {},
            sent_at=self.sent_at,
            delivered_at=None,
            failed_at=self.failed_at,
            created_at=now,
            updated_at=now,
        )


@dataclass(frozen=True)
class MessageLog:
    """A persisted ledger row."""

    id: str
    tenant_id: str
    channel: MessageChannel
    provider: str
    recipient_name: str
    recipient_contact: str
    message_subject: str | None
    message_body: str
    message_id: str | None
    status: DeliveryStatus
    cost: float | None
    error_message: str | None
    metadata: dict[str, Any] = field(default_factory=dict)
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    failed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def correlation(self) -> Correlation | None:
        return Correlation.from_metadata(self.metadata)

    @property
    def is_terminal(self) -> bool:
        """Whether the row has reached delivered or failed."""
        return self.status in (DeliveryStatus.DELIVERED, DeliveryStatus.FAILED)

    @classmethod
    def from_record(cls, record: MessageLogModel) -> "MessageLog":
        """Build from a loaded ORM record."""
        return cls(
            id=str(record.id),
            tenant_id=str(record.tenant_id),
            channel=MessageChannel(record.channel),
            provider=record.provider,
            recipient_name=record.recipient_name,
            recipient_contact=record.recipient_contact,
            message_subject=record.message_subject,
            message_body=record.message_body,
            message_id=record.message_id,
            status=DeliveryStatus(record.status),
            cost=float(record.cost) if record.cost is not None else None,
            error_message=record.error_message,
            metadata=dict(record.metadata_ or {}),
            sent_at=ensure_utc(record.sent_at),
            delivered_at=ensure_utc(record.delivered_at),
            failed_at=ensure_utc(record.failed_at),
            created_at=ensure_utc(record.created_at),
            updated_at=ensure_utc(record.updated_at),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "channel": self.channel.value,
            "provider": self.provider,
            "recipient_name": self.recipient_name,
            "recipient_contact": self.recipient_contact,
            "message_subject": self.message_subject,
            "message_body": self.message_body,
            "message_id": self.message_id,
            "status": self.status.value,
            "cost": self.cost,
            "error_message": self.error_message,
            "metadata": self.metadata,
            "sent_at": format_iso(self.sent_at),
            "delivered_at": format_iso(self.delivered_at),
            "failed_at": format_iso(self.failed_at),
            "created_at": format_iso(self.created_at),
        }


class MessageLogRepository:
    """Persistence for the delivery ledger.

    Each call opens its own session from the sessionmaker, so the
    repository can be shared across concurrent tasks.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the repository.

        Args:
            session_factory: Sessionmaker for the academy database.
        """
        self._session_factory = session_factory

    async def create(self, log: NewMessageLog) -> MessageLog:
        """Insert one ledger row.

        Args:
            log: Row to insert.

        Returns:
            The persisted row.

        Raises:
            DatabaseError: If the insert fails.
        """
        record = log.to_record()
        try:
            async with self._session_factory() as session:
                session.add(record)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to write message log: tenant=%s, channel=%s, status=%s",
                log.tenant_id,
                log.channel.value,
                log.status.value,
                exc_info=True,
            )
            raise DatabaseError("Failed to create message log", e) from e

        logger.debug(
            "Message log created: id=%s, channel=%s, status=%s",
            record.id,
            log.channel.value,
            log.status.value,
        )
        return MessageLog.from_record(record)

    async def find_by_id(self, log_id: str) -> MessageLog | None:
        """Get a ledger row by id."""
        stmt = select(MessageLogModel).where(MessageLogModel.id == log_id)
        records = await self._fetch(stmt, "find_by_id")
        return MessageLog.from_record(records[0]) if records else None

    async def find_by_message_id(self, message_id: str) -> MessageLog | None:
        """Get the ledger row for a provider-assigned message id."""
        stmt = (
            select(MessageLogModel)
            .where(MessageLogModel.message_id == message_id)
            .order_by(MessageLogModel.created_at.desc())
            .limit(1)
        )
        records = await self._fetch(stmt, "find_by_message_id")
        return MessageLog.from_record(records[0]) if records else None

    async def find_by_student_id(
        self,
        student_id: str,
        tenant_id: str | None = None,
        limit: int = 50,
    ) -> list[MessageLog]:
        """List rows correlated with a student, newest first.

        Args:
            student_id: Student id stored under ``metadata.studentId``.
            tenant_id: Optional tenant scope.
            limit: Maximum rows to return.

        Returns:
            Ledger rows.
        """
        stmt = select(MessageLogModel).where(
            MessageLogModel.metadata_["studentId"].as_string() == student_id
        )
        if tenant_id is not None:
            stmt = stmt.where(MessageLogModel.tenant_id == tenant_id)
        stmt = stmt.order_by(MessageLogModel.created_at.desc()).limit(limit)
        return [MessageLog.from_record(r) for r in await self._fetch(stmt, "find_by_student_id")]

    async def find_by_status(
        self,
        status: DeliveryStatus,
        limit: int = 100,
    ) -> list[MessageLog]:
        """List rows in a status, newest first."""
        stmt = (
            select(MessageLogModel)
            .where(MessageLogModel.status == status.value)
            .order_by(MessageLogModel.created_at.desc())
            .limit(limit)
        )
        return [MessageLog.from_record(r) for r in await self._fetch(stmt, "find_by_status")]

    async def find_recent(self, tenant_id: str, limit: int = 50) -> list[MessageLog]:
        """List a tenant's most recent rows, newest first."""
        stmt = (
            select(MessageLogModel)
            .where(MessageLogModel.tenant_id == tenant_id)
            .order_by(MessageLogModel.created_at.desc())
            .limit(limit)
        )
        return [MessageLog.from_record(r) for r in await self._fetch(stmt, "find_recent")]

    async def update_status(
        self,
        log_id: str,
        status: DeliveryStatus,
        delivered_at: datetime | None = None,
        failed_at: datetime | None = None,
        error_message: str | None = None,
    ) -> MessageLog | None:
        """Apply an out-of-band delivery status change.

        Only the status columns are touched. A row never carries both
        delivered_at and failed_at.

        Args:
            log_id: Ledger row id.
            status: New status.
            delivered_at: Delivery time, for DELIVERED.
            failed_at: Failure time, for FAILED.
            error_message: Failure reason, for FAILED.

        Returns:
            The updated row, or None if it does not exist.

        Raises:
            ValueError: If the change would set both terminal timestamps.
            DatabaseError: If the update fails.
        """
        if delivered_at is not None and failed_at is not None:
            raise ValueError("delivered_at and failed_at are mutually exclusive")

        try:
            async with self._session_factory() as session:
                record = await session.get(MessageLogModel, log_id)
                if record is None:
                    return None

                if (delivered_at is not None and record.failed_at is not None) or (
                    failed_at is not None and record.delivered_at is not None
                ):
                    raise ValueError(
                        f"Message log {log_id} already has a terminal timestamp"
                    )

                record.status = status.value
                if delivered_at is not None:
                    record.delivered_at = delivered_at
                if failed_at is not None:
                    record.failed_at = failed_at
                if error_message is not None:
                    record.error_message = error_message
                record.updated_at = utc_now()
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to update message log %s", log_id, exc_info=True)
            raise DatabaseError("Failed to update message log", e) from e

        logger.info("Message log %s status changed to %s", log_id, status.value)
        return MessageLog.from_record(record)

    async def _fetch(self, stmt: Any, operation: str) -> list[MessageLogModel]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Message log query failed: %s", operation, exc_info=True)
            raise DatabaseError(f"Message log query failed: {operation}", e) from e
