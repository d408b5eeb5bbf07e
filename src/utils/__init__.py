# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from src.utils.datetime import (
    date_range_bounds,
    ensure_utc,
    format_iso,
    parse_date,
    parse_iso,
    utc_now,
)
from src.utils.logging import ContactRedactionProcessor, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "ContactRedactionProcessor",
    # Datetime
    "utc_now",
    "ensure_utc",
    "format_iso",
    "parse_iso",
    "parse_date",
    "date_range_bounds",
]
