# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Aligo SMS/LMS provider.

Sends text messages through the Aligo HTTP API (https://apis.aligo.in).
All endpoints take form-encoded POSTs and answer with JSON whose
``result_code`` is ``"1"`` on success.

Endpoints:
- /send/: send one message (msg_type SMS or LMS)
- /list/: look up a sent message by ``mid``
- /remain/: remaining SMS/LMS/MMS credits

Configuration (via environment variables):
- ALIGO_API_KEY: API key
- ALIGO_USER_ID: Account id
- ALIGO_SENDER_PHONE: Registered sender number
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from src.core.config.settings import AligoSettings
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

# Aligo reports timestamps in Korea Standard Time without an offset
KST = timezone(timedelta(hours=9))

SUCCESS_CODE = "1"


class AligoProvider(HTTPProvider):
    """SMS/LMS provider backed by the Aligo API.

    One instance serves one channel. On the SMS channel the message type
    follows the body length; on the LMS channel every message is LMS.

    Attributes:
        name: "aligo".
    """

    name = "aligo"

    def __init__(
        self,
        settings: AligoSettings,
        channel: MessageChannel = MessageChannel.SMS,
        test_mode: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Aligo provider.

        Args:
            settings: Aligo credentials and costs.
            channel: SMS or LMS.
            test_mode: Send with testmode_yn=Y (not delivered to handsets).
            transport: Optional httpx transport (tests).

        Raises:
            ProviderConfigurationError: If credentials are missing or the
                channel is not SMS/LMS.
        """
        if not settings.is_configured:
            raise ProviderConfigurationError(
                "Aligo credentials not configured. Set ALIGO_API_KEY, "
                "ALIGO_USER_ID and ALIGO_SENDER_PHONE."
            )
        if channel not in (MessageChannel.SMS, MessageChannel.LMS):
            raise ProviderConfigurationError(
                f"Aligo supports only sms and lms channels, got {channel.value}"
            )

        super().__init__(channel, settings.base_url, settings.timeout, transport)
        self._settings = settings
        self._test_mode = test_mode
        self._sender = sanitize_phone(settings.sender_phone)

    def _auth_fields(self) -> dict[str, str]:
        return {
            "key": self._settings.api_key.get_secret_value(),
            "user_id": self._settings.user_id,
        }

    async def _post(self, path: str, data: dict[str, str]) -> dict[str, Any]:
        response = await self._client.post(path, data=data)
        response.raise_for_status()
        return response.json()

    async def send(self, request: SendMessageRequest) -> SendMessageResponse:
        """Send an SMS or LMS message.

        Args:
            request: The message to send.

        Returns:
            SendMessageResponse with msg_id and cost on success.
        """
        if request.channel not in (MessageChannel.SMS, MessageChannel.LMS):
            return self.create_failure_response(
                f"Unsupported channel: {request.channel.value}. "
                "Aligo supports only sms and lms."
            )

        if not request.recipient.phone:
            return self.create_failure_response("수신번호가 없습니다")

        body = request.content.body
        msg_type = determine_message_type(body, request.channel)

        data = {
            **self._auth_fields(),
            "sender": self._sender,
            "receiver": sanitize_phone(request.recipient.phone),
            "msg": body,
            "msg_type": msg_type,
            "testmode_yn": "Y" if self._test_mode else "N",
        }
        if msg_type == "LMS" and request.content.subject:
            data["title"] = request.content.subject

        try:
            payload = await self._post("/send/", data)
        except httpx.HTTPError as e:
            error = self.describe_transport_error(e)
            self.logger.warning("Aligo send to %s failed: %s", request.recipient.name, error)
            return self.create_failure_response(error)
        except ValueError as e:
            self.logger.warning("Aligo returned an unreadable response: %s", e)
            return self.create_failure_response(f"Aligo returned an invalid response: {e}")

        result_code = str(payload.get("result_code", ""))
        if result_code != SUCCESS_CODE or not payload.get("msg_id"):
            self.logger.warning(
                "Aligo rejected message to %s: code=%s message=%s",
                request.recipient.name,
                result_code,
                payload.get("message"),
            )
            return self.create_failure_response(
                f"알리고 전송 실패 ({result_code}): {payload.get('message', '알 수 없는 오류')}"
            )

        cost = self._settings.sms_cost if msg_type == "SMS" else self._settings.lms_cost
        self.logger.info(
            "Aligo %s sent to %s: msg_id=%s",
            msg_type,
            request.recipient.name,
            payload["msg_id"],
        )
        return self.create_success_response(str(payload["msg_id"]), cost)

    async def check_balance(self) -> BalanceInfo:
        """Query remaining Aligo credits.

        Returns:
            BalanceInfo with the sum of SMS, LMS and MMS credits.

        Raises:
            ProviderRequestError: If the query fails.
        """
        try:
            payload = await self._post("/remain/", self._auth_fields())
        except (httpx.HTTPError, ValueError) as e:
            self.logger.error("Aligo balance check failed: %s", e)
            raise ProviderRequestError(f"알리고 잔액 조회 실패: {e}") from e

        if str(payload.get("result_code", "")) != SUCCESS_CODE:
            raise ProviderRequestError(
                f"알리고 잔액 조회 실패 ({payload.get('result_code')}): {payload.get('message', '')}"
            )

        total = sum(
            float(payload.get(key) or 0)
            for key in ("SMS_CNT", "LMS_CNT", "MMS_CNT")
        )
        return BalanceInfo(balance=total, currency="credits")

    async def get_delivery_status(self, message_id: str) -> DeliveryStatusResponse:
        """Look up the delivery state of a sent message.

        Args:
            message_id: Aligo msg_id returned by send.

        Returns:
            DeliveryStatusResponse mapped from ``sms_state``.

        Raises:
            ProviderRequestError: If the query fails.
        """
        data = {
            **self._auth_fields(),
            "mid": message_id,
            "page": "1",
            "page_size": "1",
        }
        try:
            payload = await self._post("/list/", data)
        except (httpx.HTTPError, ValueError) as e:
            self.logger.error("Aligo status check for %s failed: %s", message_id, e)
            raise ProviderRequestError(f"Aligo status check failed: {e}") from e

        rows = payload.get("list") or []
        if str(payload.get("result_code", "")) != SUCCESS_CODE or not rows:
            return DeliveryStatusResponse(
                status=DeliveryStatus.FAILED,
                failure_reason="메시지를 찾을 수 없습니다",
            )

        row = rows[0]
        state = str(row.get("sms_state", ""))
        if state == "1":
            return DeliveryStatusResponse(
                status=DeliveryStatus.DELIVERED,
                delivered_at=_parse_kst(row.get("reg_date")),
            )
        if state == "2":
            return DeliveryStatusResponse(
                status=DeliveryStatus.FAILED,
                failure_reason="전송 실패",
            )
        return DeliveryStatusResponse(status=DeliveryStatus.PENDING)


def _parse_kst(value: str | None) -> datetime | None:
    """Parse an Aligo ``YYYY-MM-DD HH:MM:SS`` timestamp into UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=KST)
    return parsed.astimezone(timezone.utc)
