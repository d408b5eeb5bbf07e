# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging configuration using structlog.

Logs are formatted as JSON in production and as colored console output
in development. Guardian contact details (phone numbers, email addresses)
pass through the dispatch pipeline constantly, so every event is run
through a redaction processor before rendering.

Example:
    >>> import logging
    >>> from src.utils.logging import setup_logging
    >>> from src.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> logging.getLogger("src.domains.report").info("Report %s sent", "123")
"""

import logging
import re
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from src.core.config.settings import Settings


class ContactRedactionProcessor:
    """Mask phone numbers and email local parts inside log events.

    - Email: keep the domain, mask the local part.
    - Phone: keep the first three and last four digits.
    """

    EMAIL_PATTERN = re.compile(r"\b([A-Za-z0-9._%+-]+)@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")
    PHONE_PATTERN = re.compile(r"\b0\d{1,2}-?\d{3,4}-?\d{4}\b")

    def __call__(
        self,
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return {key: self._redact(value) for key, value in event_dict.items()}

    def _redact(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: self._redact(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._redact(v) for v in value]
        if isinstance(value, str):
            return self.redact_text(value)
        return value

    @classmethod
    def redact_text(cls, text: str) -> str:
        """Redact contact details from a single string.

        Args:
            text: Text that may contain phone numbers or emails.

        Returns:
            Text with contact details masked.
        """
        text = cls.EMAIL_PATTERN.sub(lambda m: f"***@{m.group(2)}", text)

        def _mask_phone(match: re.Match[str]) -> str:
            digits = re.sub(r"\D", "", match.group(0))
            return f"{digits[:3]}****{digits[-4:]}"

        return cls.PHONE_PATTERN.sub(_mask_phone, text)


def setup_logging(settings: "Settings") -> None:
    """Configure structured logging for the application.

    Modules log through the standard library; their records are rendered by
    structlog's ``ProcessorFormatter`` so the same processor chain (including
    contact redaction) applies to every line:
    - Development: Colored console output with pretty formatting
    - Production (or ``json_logs``): JSON output for log aggregation

    Args:
        settings: Application settings containing log_level and debug flag.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        ContactRedactionProcessor(),
    ]

    if settings.json_logs or settings.is_production:
        renderer_chain: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        renderer_chain = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderer_chain],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    # Replace a handler left by an earlier call instead of stacking another
    for existing in list(root.handlers):
        if isinstance(existing.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    # Set third-party loggers to WARNING to reduce noise
    for logger_name in [
        "httpx",
        "httpcore",
        "sqlalchemy",
        "asyncio",
        "aiosmtplib",
    ]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger("src").setLevel(log_level)
