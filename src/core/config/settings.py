# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the report
dispatch backend. Settings are loaded from environment variables with
sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.messaging.sms_vendor)
    'aligo'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Academy database configuration.

    The academy database stores students, their activity records
    (exams, attendance, todos, consultations), generated reports and
    the message delivery ledger.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        url: Full connection URL (computed from components).
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        echo: Log every SQL statement.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "acadesk"
    password: SecretStr = SecretStr("acadesk_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "acadesk"
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class AligoSettings(BaseSettings):
    """Aligo SMS gateway configuration.

    Attributes:
        api_key: Aligo API key.
        user_id: Aligo account identifier.
        sender_phone: Registered sender number.
        base_url: Aligo API base URL.
        timeout: Request timeout in seconds.
        sms_cost: Cost recorded per SMS (KRW).
        lms_cost: Cost recorded per LMS (KRW).
        test_mode: Send with ``testmode_yn=Y`` (messages are not delivered).
            Left unset, test mode follows the environment.
    """

    model_config = SettingsConfigDict(
        env_prefix="ALIGO_",
        extra="ignore",
    )

    api_key: SecretStr = SecretStr("")
    user_id: str = ""
    sender_phone: str = ""
    base_url: str = "https://apis.aligo.in"
    timeout: float = 10.0
    sms_cost: float = 10.0
    lms_cost: float = 30.0
    test_mode: bool | None = None

    @property
    def is_configured(self) -> bool:
        """Check whether credentials and sender are present."""
        return bool(self.api_key.get_secret_value() and self.user_id and self.sender_phone)


class SolapiSettings(BaseSettings):
    """Solapi messaging gateway configuration.

    Solapi serves SMS/LMS and, when a Kakao channel profile is set,
    Kakao Alimtalk.

    Attributes:
        api_key: Solapi API key.
        api_secret: Solapi API secret used for HMAC signing.
        sender_phone: Registered sender number.
        kakao_pf_id: Kakao business channel profile id.
        base_url: Solapi API base URL.
        timeout: Request timeout in seconds.
        sms_cost: Cost recorded per SMS (KRW).
        lms_cost: Cost recorded per LMS (KRW).
        alimtalk_cost: Cost recorded per Alimtalk message (KRW).
    """

    model_config = SettingsConfigDict(
        env_prefix="SOLAPI_",
        extra="ignore",
    )

    api_key: SecretStr = SecretStr("")
    api_secret: SecretStr = SecretStr("")
    sender_phone: str = ""
    kakao_pf_id: str = ""
    base_url: str = "https://api.solapi.com"
    timeout: float = 10.0
    sms_cost: float = 8.0
    lms_cost: float = 24.0
    alimtalk_cost: float = 7.5

    @property
    def is_configured(self) -> bool:
        """Check whether credentials and sender are present."""
        return bool(
            self.api_key.get_secret_value()
            and self.api_secret.get_secret_value()
            and self.sender_phone
        )

    @property
    def kakao_configured(self) -> bool:
        """Check whether Kakao Alimtalk can be sent."""
        return self.is_configured and bool(self.kakao_pf_id)


class SMTPSettings(BaseSettings):
    """SMTP configuration for email report notifications.

    Attributes:
        host: SMTP server hostname.
        port: SMTP server port.
        username: SMTP authentication username.
        password: SMTP authentication password.
        use_tls: Use STARTTLS.
        from_email: Sender email address.
        from_name: Sender display name.
        timeout: Connection timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        extra="ignore",
    )

    host: str = ""
    port: int = 587
    username: str = ""
    password: SecretStr = SecretStr("")
    use_tls: bool = True
    from_email: str = ""
    from_name: str = "Acadesk"
    timeout: float = 30.0

    @property
    def is_configured(self) -> bool:
        """Check whether the SMTP server and sender are present."""
        return bool(
            self.host
            and self.username
            and self.password.get_secret_value()
            and self.from_email
        )


class MessagingSettings(BaseSettings):
    """Messaging channel selection.

    Attributes:
        sms_vendor: Gateway serving the SMS and LMS channels.
        kakao_template_id: Alimtalk template used for report notifications.
    """

    model_config = SettingsConfigDict(
        env_prefix="MESSAGING_",
        extra="ignore",
    )

    sms_vendor: Literal["aligo", "solapi"] = "aligo"
    kakao_template_id: str = "student_report"


class ReportSettings(BaseSettings):
    """Report generation and link settings.

    Attributes:
        app_url: Public base URL; report links are ``{app_url}/r/{id}``.
        default_academy_name: Academy display name when none is known.
        default_academy_phone: Academy contact number shown in messages.
        consultation_limit: Consultations included in a report.
    """

    model_config = SettingsConfigDict(
        env_prefix="REPORT_",
        extra="ignore",
    )

    app_url: str = "https://acadesk.site"
    default_academy_name: str | None = None
    default_academy_phone: str | None = None
    consultation_limit: int = Field(default=5, ge=1, le=20)


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        json_logs: Render logs as JSON outside production too.
        database: Academy database settings.
        aligo: Aligo gateway settings.
        solapi: Solapi gateway settings.
        smtp: SMTP settings.
        messaging: Channel selection settings.
        report: Report generation settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"
    json_logs: bool = False

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    aligo: AligoSettings = Field(default_factory=AligoSettings)
    solapi: SolapiSettings = Field(default_factory=SolapiSettings)
    smtp: SMTPSettings = Field(default_factory=SMTPSettings)
    messaging: MessagingSettings = Field(default_factory=MessagingSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with Aligo test mode forced on.
        """
        if self.environment == "production" and self.aligo.test_mode:
            raise ValueError(
                "Aligo test mode must be disabled in production. "
                "Unset ALIGO_TEST_MODE environment variable."
            )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def aligo_test_mode(self) -> bool:
        """Effective Aligo test mode: on everywhere except production."""
        if self.aligo.test_mode is not None:
            return self.aligo.test_mode
        return not self.is_production


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
