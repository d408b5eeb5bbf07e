# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for logging utilities."""

import json
import logging
from collections.abc import Generator

import pytest
import structlog

from src.core.config.settings import Settings
from src.utils.logging import ContactRedactionProcessor, setup_logging


@pytest.fixture
def restore_logging() -> Generator[None, None, None]:
    """Restore root logging state changed by setup_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    src_level = logging.getLogger("src").level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("src").setLevel(src_level)
    structlog.reset_defaults()


class TestContactRedaction:
    """Tests for contact redaction."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Aligo send to 010-1234-5678 failed", "Aligo send to 010****5678 failed"),
            ("receiver=01012345678", "receiver=010****5678"),
            ("sender 02-123-4567", "sender 021****4567"),
            ("to parent@example.com", "to ***@example.com"),
        ],
    )
    def test_redact_text(self, text: str, expected: str) -> None:
        """Test phone numbers and email local parts are masked."""
        assert ContactRedactionProcessor.redact_text(text) == expected

    def test_leaves_ids_alone(self) -> None:
        """Test report ids and amounts are not mistaken for phone numbers."""
        text = "report=550e8400-e29b-41d4-a716-446655440002 cost=30.0"

        assert ContactRedactionProcessor.redact_text(text) == text

    def test_processor_redacts_nested_values(self) -> None:
        """Test the processor walks dicts and lists in the event."""
        processor = ContactRedactionProcessor()
        event = {
            "event": "Report sent to 010-1234-5678",
            "recipients": ["a@b.co", "010-9999-8888"],
            "meta": {"email": "parent@example.com"},
            "count": 2,
        }

        result = processor(None, "info", event)

        assert result == {
            "event": "Report sent to 010****5678",
            "recipients": ["***@b.co", "010****8888"],
            "meta": {"email": "***@example.com"},
            "count": 2,
        }


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.mark.usefixtures("restore_logging")
    def test_stdlib_records_are_redacted(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test module loggers render as JSON with contacts masked."""
        setup_logging(Settings(json_logs=True, log_level="INFO"))

        logging.getLogger("src.test").warning("Send to %s failed", "010-1234-5678")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "Send to 010****5678 failed"
        assert payload["level"] == "warning"
        assert payload["logger"] == "src.test"

    @pytest.mark.usefixtures("restore_logging")
    def test_repeated_setup_keeps_one_handler(self) -> None:
        """Test calling setup twice does not duplicate output."""
        settings = Settings(json_logs=True, log_level="INFO")

        setup_logging(settings)
        setup_logging(settings)

        formatters = [
            h for h in logging.getLogger().handlers
            if isinstance(h.formatter, structlog.stdlib.ProcessorFormatter)
        ]
        assert len(formatters) == 1
