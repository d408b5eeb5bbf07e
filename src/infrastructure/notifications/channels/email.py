# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email provider using async SMTP.

This provider sends report emails using aiosmtplib. The formatted
content is an HTML document. The plain text part comes from the content
itself when the formatter supplies one and is derived from the HTML
otherwise, so every message carries both parts.

Configuration (via environment variables):
- SMTP_HOST: SMTP server hostname
- SMTP_PORT: SMTP server port (default: 587)
- SMTP_USERNAME: SMTP authentication username
- SMTP_PASSWORD: SMTP authentication password
- SMTP_USE_TLS: Use STARTTLS (default: true)
- SMTP_FROM_EMAIL: Sender email address
- SMTP_FROM_NAME: Sender display name
"""

import html
import math
import re
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid

import aiosmtplib

from src.core.config.settings import SMTPSettings
from src.infrastructure.notifications.channels.base import (
    BalanceInfo,
    BaseProvider,
    DeliveryStatus,
    DeliveryStatusResponse,
    MessageChannel,
    ProviderConfigurationError,
    SendMessageRequest,
    SendMessageResponse,
)

_TAG_PATTERN = re.compile(r"<[^>]+>")
_BLOCK_END_PATTERN = re.compile(r"</(p|div|h[1-6]|li|tr|table)>|<br\s*/?>", re.IGNORECASE)


def html_to_text(document: str) -> str:
    """Derive a plain text rendering from an HTML document.

    Args:
        document: HTML source.

    Returns:
        Text with tags removed and entities decoded.
    """
    document = re.sub(r"<(style|head)[^>]*>.*?</\1>", "", document, flags=re.IGNORECASE | re.DOTALL)
    text = _BLOCK_END_PATTERN.sub("\n", document)
    text = html.unescape(_TAG_PATTERN.sub("", text))
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


class EmailProvider(BaseProvider):
    """Email provider using async SMTP.

    SMTP gives no delivery receipts, so delivery status stays PENDING
    until an out-of-band update arrives, and there is no balance to check.
    """

    name = "smtp"

    def __init__(self, settings: SMTPSettings) -> None:
        """Initialize the email provider.

        Args:
            settings: SMTP server and sender settings.

        Raises:
            ProviderConfigurationError: If SMTP settings are incomplete.
        """
        if not settings.is_configured:
            raise ProviderConfigurationError(
                "SMTP configuration incomplete. Set SMTP_HOST, SMTP_USERNAME, "
                "SMTP_PASSWORD and SMTP_FROM_EMAIL."
            )
        super().__init__(MessageChannel.EMAIL)
        self._settings = settings
        self.logger.info("Email provider configured with host %s", settings.host)

    async def send(self, request: SendMessageRequest) -> SendMessageResponse:
        """Send an email via SMTP.

        Args:
            request: The message; content body is an HTML document.

        Returns:
            SendMessageResponse with the Message-ID on success.
        """
        if not request.recipient.email:
            return self.create_failure_response("수신 이메일 주소가 없습니다")

        message = self._build_email_message(request)

        try:
            await aiosmtplib.send(
                message,
                hostname=self._settings.host,
                port=self._settings.port,
                username=self._settings.username,
                password=self._settings.password.get_secret_value(),
                start_tls=self._settings.use_tls,
                timeout=self._settings.timeout,
            )
        except aiosmtplib.SMTPTimeoutError as e:
            self.logger.warning("Email to %s timed out: %s", request.recipient.name, e)
            return self.create_failure_response(f"SMTP timeout: {e}")
        except (aiosmtplib.SMTPException, OSError) as e:
            self.logger.error(
                "Failed to send email to %s: %s",
                request.recipient.name,
                str(e),
                exc_info=True,
            )
            return self.create_failure_response(f"SMTP error: {e}")

        self.logger.info(
            "Email sent to %s: %s",
            request.recipient.name,
            request.content.subject,
        )
        return self.create_success_response(message["Message-ID"], cost=0.0)

    async def check_balance(self) -> BalanceInfo:
        """SMTP has no sending quota to report."""
        return BalanceInfo(balance=math.inf, currency="unlimited")

    async def get_delivery_status(self, message_id: str) -> DeliveryStatusResponse:
        """SMTP has no delivery receipts; report PENDING."""
        return DeliveryStatusResponse(status=DeliveryStatus.PENDING)

    def _build_email_message(self, request: SendMessageRequest) -> MIMEMultipart:
        """Build MIME email message.

        Args:
            request: The message to send.

        Returns:
            MIMEMultipart message ready to send.
        """
        message = MIMEMultipart("alternative")

        # Headers
        message["From"] = formataddr((self._settings.from_name, self._settings.from_email))
        message["To"] = formataddr((request.recipient.name, request.recipient.email or ""))
        message["Subject"] = request.content.subject or ""
        message["Message-ID"] = make_msgid(domain=self._settings.from_email.split("@")[-1])

        # Plain text version
        message.attach(MIMEText(self._plain_text(request), "plain", "utf-8"))

        # HTML version
        message.attach(MIMEText(request.content.body, "html", "utf-8"))

        return message

    @staticmethod
    def _plain_text(request: SendMessageRequest) -> str:
        return request.content.text_body or html_to_text(request.content.body)
