# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Solapi SMS/LMS and Kakao Alimtalk providers.

Solapi authenticates every request with an HMAC-SHA256 signature over a
timestamp and a random salt:

    Authorization: HMAC-SHA256 apiKey=<key>, date=<iso>, salt=<hex>,
                   signature=hex(hmac_sha256(secret, date + salt))

Endpoints:
- POST /messages/v4/send: send one message; the returned groupId is used
  as the message id
- GET /messages/v4/groups/{groupId}: delivery status of a sent message
- GET /cash/v1/balance: remaining balance in KRW

Kakao Alimtalk messages are sent through the same endpoint with type
``ATA`` and a ``kakaoOptions`` block naming the channel profile, the
approved template and its variables.
"""

import hashlib
import hmac
import secrets
from typing import Any

import httpx

from src.core.config.settings import SolapiSettings
from src.infrastructure.notifications.channels.base import (
    BalanceInfo,
    DeliveryStatus,
    DeliveryStatusResponse,
    HTTPProvider,
    MessageChannel,
    ProviderConfigurationError,
    ProviderRequestError,
    SendMessageRequest,
    SendMessageResponse,
    determine_message_type,
    sanitize_phone,
)
from src.utils.datetime import parse_iso, utc_now

SEND_PATH = "/messages/v4/send"
BALANCE_PATH = "/cash/v1/balance"


def build_auth_header(api_key: str, api_secret: str, date: str, salt: str) -> str:
    """Build the Solapi HMAC-SHA256 Authorization header value.

    Args:
        api_key: Solapi API key.
        api_secret: Solapi API secret.
        date: ISO 8601 timestamp of the request.
        salt: Random hex salt.

    Returns:
        Authorization header value.
    """
    signature = hmac.new(
        api_secret.encode("utf-8"),
        f"{date}{salt}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"HMAC-SHA256 apiKey={api_key}, date={date}, salt={salt}, signature={signature}"


class SolapiProvider(HTTPProvider):
    """SMS/LMS provider backed by the Solapi API.

    Attributes:
        name: "solapi".
    """

    name = "solapi"
    supported_channels: tuple[MessageChannel, ...] = (MessageChannel.SMS, MessageChannel.LMS)

    def __init__(
        self,
        settings: SolapiSettings,
        channel: MessageChannel = MessageChannel.SMS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Solapi provider.

        Args:
            settings: Solapi credentials and costs.
            channel: Channel served by this instance.
            transport: Optional httpx transport (tests).

        Raises:
            ProviderConfigurationError: If credentials are missing or the
                channel is not supported.
        """
        if not settings.is_configured:
            raise ProviderConfigurationError(
                "Solapi credentials not configured. Set SOLAPI_API_KEY, "
                "SOLAPI_API_SECRET and SOLAPI_SENDER_PHONE."
            )
        if channel not in self.supported_channels:
            raise ProviderConfigurationError(
                f"{self.__class__.__name__} does not support channel {channel.value}"
            )

        super().__init__(channel, settings.base_url, settings.timeout, transport)
        self._settings = settings
        self._sender = sanitize_phone(settings.sender_phone)

    def _auth_headers(self) -> dict[str, str]:
        date = utc_now().isoformat()
        salt = secrets.token_hex(16)
        return {
            "Authorization": build_auth_header(
                self._settings.api_key.get_secret_value(),
                self._settings.api_secret.get_secret_value(),
                date,
                salt,
            )
        }

    def _build_message(self, request: SendMessageRequest) -> tuple[dict[str, Any], float]:
        """Build the message object and its recorded cost."""
        body = request.content.body
        msg_type = determine_message_type(body, request.channel)
        message: dict[str, Any] = {
            "to": sanitize_phone(request.recipient.phone or ""),
            "from": self._sender,
            "text": body,
            "type": msg_type,
        }
        if msg_type == "LMS" and request.content.subject:
            message["subject"] = request.content.subject
        cost = self._settings.sms_cost if msg_type == "SMS" else self._settings.lms_cost
        return message, cost

    async def send(self, request: SendMessageRequest) -> SendMessageResponse:
        """Send a message through Solapi.

        Args:
            request: The message to send.

        Returns:
            SendMessageResponse with the group id and cost on success.
        """
        if request.channel not in self.supported_channels:
            return self.create_failure_response(
                f"Unsupported channel: {request.channel.value}. "
                f"{self.__class__.__name__} supports "
                f"{', '.join(c.value for c in self.supported_channels)}."
            )

        if not request.recipient.phone:
            return self.create_failure_response("수신번호가 없습니다")

        message, cost = self._build_message(request)

        try:
            response = await self._client.post(
                SEND_PATH,
                json={"message": message},
                headers=self._auth_headers(),
            )
            if response.status_code >= 500:
                response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            error = self.describe_transport_error(e)
            self.logger.warning("Solapi send to %s failed: %s", request.recipient.name, error)
            return self.create_failure_response(error)
        except ValueError as e:
            self.logger.warning("Solapi returned an unreadable response: %s", e)
            return self.create_failure_response(f"Solapi returned an invalid response: {e}")

        if response.is_error or payload.get("errorCode"):
            reason = payload.get("errorMessage") or payload.get("statusMessage") or "Unknown error"
            self.logger.warning(
                "Solapi rejected message to %s: code=%s message=%s",
                request.recipient.name,
                payload.get("errorCode"),
                reason,
            )
            return self.create_failure_response(f"Solapi API error: {reason}")

        group_id = payload.get("groupId")
        if not group_id:
            return self.create_failure_response("Solapi API did not return a group ID")

        self.logger.info(
            "Solapi %s sent to %s: group_id=%s",
            message["type"],
            request.recipient.name,
            group_id,
        )
        return self.create_success_response(str(group_id), cost)

    async def _get(self, path: str) -> dict[str, Any]:
        response = await self._client.get(path, headers=self._auth_headers())
        response.raise_for_status()
        return response.json()

    async def check_balance(self) -> BalanceInfo:
        """Query the Solapi cash balance.

        Returns:
            BalanceInfo in KRW.

        Raises:
            ProviderRequestError: If the query fails.
        """
        try:
            payload = await self._get(BALANCE_PATH)
        except (httpx.HTTPError, ValueError) as e:
            self.logger.error("Solapi balance check failed: %s", e)
            raise ProviderRequestError(f"Solapi balance check failed: {e}") from e

        return BalanceInfo(balance=float(payload.get("balance") or 0), currency="KRW")

    async def get_delivery_status(self, message_id: str) -> DeliveryStatusResponse:
        """Look up the delivery state of a message group.

        Args:
            message_id: Solapi group id returned by send.

        Returns:
            DeliveryStatusResponse mapped from ``statusCode``.

        Raises:
            ProviderRequestError: If the query fails.
        """
        try:
            payload = await self._get(f"/messages/v4/groups/{message_id}")
        except (httpx.HTTPError, ValueError) as e:
            self.logger.error("Solapi status check for %s failed: %s", message_id, e)
            raise ProviderRequestError(f"Solapi status check failed: {e}") from e

        status_code = payload.get("statusCode")
        if status_code == "SENT":
            sent_at = payload.get("sentAt")
            return DeliveryStatusResponse(
                status=DeliveryStatus.DELIVERED,
                delivered_at=parse_iso(sent_at) if sent_at else None,
            )
        if status_code == "FAILED":
            return DeliveryStatusResponse(
                status=DeliveryStatus.FAILED,
                failure_reason=payload.get("reason") or "전송 실패",
            )
        return DeliveryStatusResponse(status=DeliveryStatus.PENDING)


class SolapiKakaoProvider(SolapiProvider):
    """Kakao Alimtalk provider backed by the Solapi API.

    The message body is rendered by Kakao from an approved template; the
    request only carries the template id and its variables.

    Attributes:
        name: "solapi_kakao".
    """

    name = "solapi_kakao"
    supported_channels = (MessageChannel.KAKAO,)

    def __init__(
        self,
        settings: SolapiSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Alimtalk provider.

        Args:
            settings: Solapi credentials, Kakao profile id and costs.
            transport: Optional httpx transport (tests).

        Raises:
            ProviderConfigurationError: If credentials or the Kakao profile
                id are missing.
        """
        if not settings.kakao_pf_id:
            raise ProviderConfigurationError(
                "Kakao channel profile not configured. Set SOLAPI_KAKAO_PF_ID."
            )
        super().__init__(settings, MessageChannel.KAKAO, transport)

    def _build_message(self, request: SendMessageRequest) -> tuple[dict[str, Any], float]:
        """Build an ATA message with template variables."""
        variables = {
            f"#{{{key}}}": value for key, value in request.content.variables.items()
        }
        message: dict[str, Any] = {
            "to": sanitize_phone(request.recipient.phone or ""),
            "from": self._sender,
            "type": "ATA",
            "kakaoOptions": {
                "pfId": self._settings.kakao_pf_id,
                "templateId": request.content.template_id,
                "variables": variables,
            },
        }
        return message, self._settings.alimtalk_cost

    async def send(self, request: SendMessageRequest) -> SendMessageResponse:
        """Send an Alimtalk message.

        Args:
            request: The message to send; content must carry a template id.

        Returns:
            SendMessageResponse.
        """
        if not request.content.template_id:
            return self.create_failure_response("Alimtalk template id is required")
        return await super().send(request)
