# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the Solapi SMS/LMS and Alimtalk providers."""

import hashlib
import hmac
import json
from datetime import datetime, timezone

import httpx
import pytest

from src.core.config.settings import SolapiSettings
from src.infrastructure.notifications.channels.base import (
    DeliveryStatus,
    MessageChannel,
    MessageContent,
    MessageRecipient,
    ProviderConfigurationError,
    ProviderRequestError,
    SendMessageRequest,
)
from src.infrastructure.notifications.channels.solapi import (
    SolapiKakaoProvider,
    SolapiProvider,
    build_auth_header,
)


@pytest.fixture
def solapi_settings() -> SolapiSettings:
    """Provide configured Solapi settings with a Kakao profile."""
    return SolapiSettings(
        api_key="key-1",  # type: ignore[arg-type]
        api_secret="secret-1",  # type: ignore[arg-type]
        sender_phone="02-123-4567",
        kakao_pf_id="KA01PF",
    )


class Recorder:
    """Records requests and answers with a canned response."""

    def __init__(self, response: httpx.Response | None = None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        assert self.response is not None
        return self.response

    def message(self) -> dict:
        return json.loads(self.requests[-1].content)["message"]


def group_created() -> httpx.Response:
    return httpx.Response(200, json={"groupId": "G4V20250401", "statusCode": "2000"})


def text_request(body: str, channel: MessageChannel = MessageChannel.SMS) -> SendMessageRequest:
    return SendMessageRequest(
        channel=channel,
        recipient=MessageRecipient(name="김보호", phone="010-1234-5678"),
        content=MessageContent(body=body, subject="[Acadesk] 리포트"),
    )


class TestAuthHeader:
    """Tests for the HMAC Authorization header."""

    def test_signature(self) -> None:
        """Test the signature is HMAC-SHA256 over date and salt."""
        date = "2025-04-01T00:00:00+00:00"
        expected = hmac.new(b"secret", f"{date}abc".encode(), hashlib.sha256).hexdigest()

        header = build_auth_header("key", "secret", date, "abc")

        assert header == (
            f"HMAC-SHA256 apiKey=key, date={date}, salt=abc, signature={expected}"
        )


class TestSolapiSend:
    """Tests for SolapiProvider.send."""

    @pytest.mark.asyncio
    async def test_short_body_sends_sms(self, solapi_settings: SolapiSettings) -> None:
        """Test a short body goes out as SMS without a subject."""
        recorder = Recorder(group_created())
        provider = SolapiProvider(solapi_settings, transport=httpx.MockTransport(recorder))

        response = await provider.send(text_request("안녕하세요"))

        assert response.success is True
        assert response.message_id == "G4V20250401"
        assert response.cost == 8.0
        message = recorder.message()
        assert message["type"] == "SMS"
        assert message["to"] == "01012345678"
        assert message["from"] == "021234567"
        assert "subject" not in message
        request = recorder.requests[-1]
        assert request.url.path == "/messages/v4/send"
        assert request.headers["Authorization"].startswith("HMAC-SHA256 apiKey=key-1, ")

    @pytest.mark.asyncio
    async def test_lms_channel_sends_lms_with_subject(
        self, solapi_settings: SolapiSettings
    ) -> None:
        """Test the LMS channel sends LMS with the subject."""
        recorder = Recorder(group_created())
        provider = SolapiProvider(
            solapi_settings,
            channel=MessageChannel.LMS,
            transport=httpx.MockTransport(recorder),
        )

        response = await provider.send(text_request("짧은 본문", channel=MessageChannel.LMS))

        assert response.cost == 24.0
        assert recorder.message()["type"] == "LMS"
        assert recorder.message()["subject"] == "[Acadesk] 리포트"

    @pytest.mark.asyncio
    async def test_api_error_is_failure(self, solapi_settings: SolapiSettings) -> None:
        """Test an error payload is returned as a failure."""
        recorder = Recorder(
            httpx.Response(
                400,
                json={"errorCode": "NotEnoughBalance", "errorMessage": "잔액이 부족합니다"},
            )
        )
        provider = SolapiProvider(solapi_settings, transport=httpx.MockTransport(recorder))

        response = await provider.send(text_request("hello"))

        assert response.success is False
        assert response.error == "Solapi API error: 잔액이 부족합니다"

    @pytest.mark.asyncio
    async def test_missing_group_id_is_failure(self, solapi_settings: SolapiSettings) -> None:
        """Test a success payload without a group id is a failure."""
        recorder = Recorder(httpx.Response(200, json={"statusCode": "2000"}))
        provider = SolapiProvider(solapi_settings, transport=httpx.MockTransport(recorder))

        response = await provider.send(text_request("hello"))

        assert response.success is False
        assert response.error == "Solapi API did not return a group ID"

    @pytest.mark.asyncio
    async def test_network_error_is_failure(self, solapi_settings: SolapiSettings) -> None:
        """Test a connection failure is reported as a network error."""
        request = httpx.Request("POST", "https://api.solapi.com/messages/v4/send")
        recorder = Recorder(error=httpx.ConnectError("connection refused", request=request))
        provider = SolapiProvider(solapi_settings, transport=httpx.MockTransport(recorder))

        response = await provider.send(text_request("hello"))

        assert response.success is False
        assert response.error.startswith("solapi network error")

    @pytest.mark.asyncio
    async def test_server_error_is_failure(self, solapi_settings: SolapiSettings) -> None:
        """Test a 5xx response is reported as a server error."""
        recorder = Recorder(httpx.Response(503))
        provider = SolapiProvider(solapi_settings, transport=httpx.MockTransport(recorder))

        response = await provider.send(text_request("hello"))

        assert response.error == "solapi server error: HTTP 503"

    def test_missing_credentials_raise(self) -> None:
        """Test construction fails without credentials."""
        with pytest.raises(ProviderConfigurationError):
            SolapiProvider(SolapiSettings(api_key="", api_secret="", sender_phone=""))  # type: ignore[arg-type]


class TestSolapiKakao:
    """Tests for SolapiKakaoProvider."""

    @pytest.mark.asyncio
    async def test_sends_alimtalk_with_variables(self, solapi_settings: SolapiSettings) -> None:
        """Test an ATA message carries the profile, template and variables."""
        recorder = Recorder(group_created())
        provider = SolapiKakaoProvider(solapi_settings, transport=httpx.MockTransport(recorder))
        request = SendMessageRequest(
            channel=MessageChannel.KAKAO,
            recipient=MessageRecipient(name="김보호", phone="010-1234-5678"),
            content=MessageContent(
                body="",
                template_id="student_report",
                variables={"studentName": "김민준", "avgScore": "90"},
            ),
        )

        response = await provider.send(request)

        assert response.success is True
        assert response.cost == 7.5
        message = recorder.message()
        assert message["type"] == "ATA"
        assert message["kakaoOptions"] == {
            "pfId": "KA01PF",
            "templateId": "student_report",
            "variables": {"#{studentName}": "김민준", "#{avgScore}": "90"},
        }
        assert provider.name == "solapi_kakao"
        assert provider.channel == MessageChannel.KAKAO

    @pytest.mark.asyncio
    async def test_template_id_required(self, solapi_settings: SolapiSettings) -> None:
        """Test a Kakao request without a template fails without a call."""
        recorder = Recorder(group_created())
        provider = SolapiKakaoProvider(solapi_settings, transport=httpx.MockTransport(recorder))

        response = await provider.send(text_request("hello", channel=MessageChannel.KAKAO))

        assert response.success is False
        assert recorder.requests == []

    def test_missing_profile_raises(self, solapi_settings: SolapiSettings) -> None:
        """Test construction fails without a Kakao channel profile."""
        settings = solapi_settings.model_copy(update={"kakao_pf_id": ""})

        with pytest.raises(ProviderConfigurationError):
            SolapiKakaoProvider(settings)


class TestSolapiQueries:
    """Tests for balance and status queries."""

    @pytest.mark.asyncio
    async def test_balance(self, solapi_settings: SolapiSettings) -> None:
        """Test the cash balance is reported in KRW."""
        recorder = Recorder(httpx.Response(200, json={"balance": 15230.5, "point": 0}))
        provider = SolapiProvider(solapi_settings, transport=httpx.MockTransport(recorder))

        balance = await provider.check_balance()

        assert balance.balance == 15230.5
        assert balance.currency == "KRW"
        assert recorder.requests[-1].url.path == "/cash/v1/balance"

    @pytest.mark.asyncio
    async def test_balance_failure_raises(self, solapi_settings: SolapiSettings) -> None:
        """Test a rejected balance query raises ProviderRequestError."""
        recorder = Recorder(httpx.Response(401, json={"errorCode": "InvalidApiKey"}))
        provider = SolapiProvider(solapi_settings, transport=httpx.MockTransport(recorder))

        with pytest.raises(ProviderRequestError):
            await provider.check_balance()

    @pytest.mark.asyncio
    async def test_status_delivered(self, solapi_settings: SolapiSettings) -> None:
        """Test statusCode SENT maps to delivered."""
        recorder = Recorder(
            httpx.Response(200, json={"statusCode": "SENT", "sentAt": "2025-04-01T09:30:00Z"})
        )
        provider = SolapiProvider(solapi_settings, transport=httpx.MockTransport(recorder))

        status = await provider.get_delivery_status("G4V20250401")

        assert status.status == DeliveryStatus.DELIVERED
        assert status.delivered_at == datetime(2025, 4, 1, 9, 30, tzinfo=timezone.utc)
        assert recorder.requests[-1].url.path == "/messages/v4/groups/G4V20250401"

    @pytest.mark.asyncio
    async def test_status_failed(self, solapi_settings: SolapiSettings) -> None:
        """Test statusCode FAILED carries the reason."""
        recorder = Recorder(httpx.Response(200, json={"statusCode": "FAILED", "reason": "결번"}))
        provider = SolapiProvider(solapi_settings, transport=httpx.MockTransport(recorder))

        status = await provider.get_delivery_status("G4V20250401")

        assert status.status == DeliveryStatus.FAILED
        assert status.failure_reason == "결번"

    @pytest.mark.asyncio
    async def test_status_pending(self, solapi_settings: SolapiSettings) -> None:
        """Test any other statusCode is pending."""
        recorder = Recorder(httpx.Response(200, json={"statusCode": "PENDING"}))
        provider = SolapiProvider(solapi_settings, transport=httpx.MockTransport(recorder))

        status = await provider.get_delivery_status("G4V20250401")

        assert status.status == DeliveryStatus.PENDING
