# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the SMTP email provider."""

import dataclasses
import math
from unittest.mock import AsyncMock, patch

import aiosmtplib
import pytest

from src.core.config.settings import SMTPSettings
from src.infrastructure.notifications.channels.base import (
    DeliveryStatus,
    MessageChannel,
    MessageContent,
    MessageRecipient,
    ProviderConfigurationError,
    SendMessageRequest,
)
from src.infrastructure.notifications.channels.email import EmailProvider, html_to_text

SEND_PATH = "aiosmtplib.send"

HTML_BODY = (
    "<!DOCTYPE html><html><head><style>p { color: red; }</style></head>"
    "<body><h1>김민준 학습 리포트</h1><p>평균 성적: 90점</p>"
    "<p>A &amp; B</p></body></html>"
)


@pytest.fixture
def smtp_settings() -> SMTPSettings:
    """Provide configured SMTP settings."""
    return SMTPSettings(
        host="smtp.acadesk.site",
        port=587,
        username="mailer",
        password="secret",  # type: ignore[arg-type]
        from_email="report@acadesk.site",
        from_name="하늘수학학원",
    )


@pytest.fixture
def email_request() -> SendMessageRequest:
    """Provide an email send request."""
    return SendMessageRequest(
        channel=MessageChannel.EMAIL,
        recipient=MessageRecipient(name="김보호", email="parent@example.com"),
        content=MessageContent(body=HTML_BODY, subject="[하늘수학학원] 김민준 학습 리포트"),
    )


class TestHtmlToText:
    """Tests for html_to_text."""

    def test_strips_tags_and_styles(self) -> None:
        """Test tags and style blocks are removed and entities decoded."""
        text = html_to_text(HTML_BODY)

        assert text == "김민준 학습 리포트\n평균 성적: 90점\nA & B"


class TestEmailProvider:
    """Tests for EmailProvider."""

    def test_incomplete_settings_raise(self) -> None:
        """Test construction fails without an SMTP host."""
        with pytest.raises(ProviderConfigurationError):
            EmailProvider(SMTPSettings(host="", username="", from_email=""))

    @pytest.mark.asyncio
    async def test_send_success(
        self, smtp_settings: SMTPSettings, email_request: SendMessageRequest
    ) -> None:
        """Test a sent email returns its Message-ID at zero cost."""
        provider = EmailProvider(smtp_settings)

        with patch(SEND_PATH, new_callable=AsyncMock) as mock_send:
            response = await provider.send(email_request)

        assert response.success is True
        assert response.cost == 0.0
        assert response.message_id.endswith("@acadesk.site>")
        message = mock_send.call_args.args[0]
        assert message["Subject"] == "[하늘수학학원] 김민준 학습 리포트"
        assert "parent@example.com" in message["To"]
        assert [part.get_content_type() for part in message.get_payload()] == [
            "text/plain",
            "text/html",
        ]
        kwargs = mock_send.call_args.kwargs
        assert kwargs["hostname"] == "smtp.acadesk.site"
        assert kwargs["start_tls"] is True
        assert kwargs["password"] == "secret"

    @pytest.mark.asyncio
    async def test_plain_part_prefers_supplied_text(
        self, smtp_settings: SMTPSettings, email_request: SendMessageRequest
    ) -> None:
        """Test a formatter supplied text body is used for the plain part."""
        provider = EmailProvider(smtp_settings)
        request = dataclasses.replace(
            email_request,
            content=dataclasses.replace(email_request.content, text_body="평균 성적: 90점"),
        )

        with patch(SEND_PATH, new_callable=AsyncMock) as mock_send:
            await provider.send(request)

        plain, _ = mock_send.call_args.args[0].get_payload()
        assert plain.get_payload(decode=True).decode("utf-8") == "평균 성적: 90점"

    @pytest.mark.asyncio
    async def test_missing_address_is_failure(self, smtp_settings: SMTPSettings) -> None:
        """Test a recipient without an email fails without connecting."""
        provider = EmailProvider(smtp_settings)
        request = SendMessageRequest(
            channel=MessageChannel.EMAIL,
            recipient=MessageRecipient(name="김보호", phone="010-1234-5678"),
            content=MessageContent(body=HTML_BODY),
        )

        with patch(SEND_PATH, new_callable=AsyncMock) as mock_send:
            response = await provider.send(request)

        assert response.success is False
        assert response.error == "수신 이메일 주소가 없습니다"
        mock_send.assert_not_called()

    @pytest.mark.asyncio
    async def test_timeout_is_failure(
        self, smtp_settings: SMTPSettings, email_request: SendMessageRequest
    ) -> None:
        """Test an SMTP timeout is returned as a timeout failure."""
        provider = EmailProvider(smtp_settings)

        with patch(
            SEND_PATH,
            new_callable=AsyncMock,
            side_effect=aiosmtplib.SMTPTimeoutError("Timed out connecting"),
        ):
            response = await provider.send(email_request)

        assert response.success is False
        assert response.error.startswith("SMTP timeout")

    @pytest.mark.asyncio
    async def test_connection_error_is_failure(
        self, smtp_settings: SMTPSettings, email_request: SendMessageRequest
    ) -> None:
        """Test a refused connection is returned as an SMTP error."""
        provider = EmailProvider(smtp_settings)

        with patch(
            SEND_PATH,
            new_callable=AsyncMock,
            side_effect=ConnectionRefusedError("refused"),
        ):
            response = await provider.send(email_request)

        assert response.success is False
        assert response.error == "SMTP error: refused"

    @pytest.mark.asyncio
    async def test_balance_is_unlimited(self, smtp_settings: SMTPSettings) -> None:
        """Test SMTP reports no sending limit."""
        balance = await EmailProvider(smtp_settings).check_balance()

        assert math.isinf(balance.balance)
        assert balance.currency == "unlimited"

    @pytest.mark.asyncio
    async def test_status_is_pending(self, smtp_settings: SMTPSettings) -> None:
        """Test SMTP has no delivery receipts."""
        status = await EmailProvider(smtp_settings).get_delivery_status("<id@acadesk.site>")

        assert status.status == DeliveryStatus.PENDING
