# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the report dispatch backend.

This package provides centralized configuration management:
- Settings: Pydantic-based settings loaded from environment variables

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from src.core.config.settings import (
    AligoSettings,
    DatabaseSettings,
    MessagingSettings,
    ReportSettings,
    Settings,
    SMTPSettings,
    SolapiSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "AligoSettings",
    "SolapiSettings",
    "SMTPSettings",
    "MessagingSettings",
    "ReportSettings",
]
