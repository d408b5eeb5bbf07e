# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Classification of report send failures.

Raw failure text from providers and internal errors is mapped to a
structured, human-actionable entry so the UI can tell the operator what
to do instead of showing the vendor's error string.

Kinds:
- structural: configuration or data problem; resending will not help
  until it is fixed.
- recoverable: account-level condition fixed out of band (balance,
  sender number, credentials).
- temporary: network or server fault; resending as-is may succeed.

Rules are ordered data matched by case-insensitive substring. The first
matching rule wins and unmatched text falls back to a retryable
temporary entry, so classification never fails.

Example:
    >>> info = classify_send_error("알리고 전송 실패 (-101): 잔액이 부족합니다")
    >>> info.kind, info.retryable
    (<ErrorKind.RECOVERABLE: 'recoverable'>, True)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

RULE_TABLE_VERSION = "2025.2"


class ErrorKind(str, Enum):
    """Send failure categories."""

    STRUCTURAL = "structural"
    RECOVERABLE = "recoverable"
    TEMPORARY = "temporary"

    @property
    def label(self) -> str:
        """Short UI label for the category."""
        return _KIND_LABELS[self]


_KIND_LABELS = {
    ErrorKind.STRUCTURAL: "설정 필요",
    ErrorKind.RECOVERABLE: "조치 필요",
    ErrorKind.TEMPORARY: "일시적 오류",
}


@dataclass(frozen=True)
class SendErrorInfo:
    """Structured description of a send failure.

    Attributes:
        kind: Failure category.
        title: Short headline.
        description: What went wrong.
        remedy: What the operator should do.
        retryable: Whether a retry affordance should be shown.
        help_link: Settings page to fix the problem, if any.
    """

    kind: ErrorKind
    title: str
    description: str
    remedy: str
    retryable: bool
    help_link: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "kind": self.kind.value,
            "label": self.kind.label,
            "title": self.title,
            "description": self.description,
            "remedy": self.remedy,
            "retryable": self.retryable,
            "help_link": self.help_link,
        }


@dataclass(frozen=True)
class ClassificationRule:
    """One classification rule.

    ``patterns`` is a sequence of alternatives groups: the rule matches
    when every group has at least one pattern contained in the message.

    Attributes:
        name: Rule identifier.
        patterns: Lower-case substring groups.
        info: Entry returned when the rule matches.
    """

    name: str
    patterns: tuple[tuple[str, ...], ...]
    info: SendErrorInfo

    def matches(self, message: str) -> bool:
        return all(any(p in message for p in group) for group in self.patterns)


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    # Structural
    ClassificationRule(
        name="messaging_not_configured",
        patterns=(("메시징 서비스", "메시징 설정", "활성화된 메시징", "no provider configured"),),
        info=SendErrorInfo(
            kind=ErrorKind.STRUCTURAL,
            title="메시징 서비스 미설정",
            description="문자 발송을 위한 메시징 서비스가 설정되어 있지 않습니다.",
            remedy="설정 > 메시징 설정에서 알리고 또는 솔라피 서비스를 연동하고 활성화해주세요.",
            retryable=False,
            help_link="/settings/messaging",
        ),
    ),
    ClassificationRule(
        name="guardian_without_contact",
        patterns=(("전송 가능한 보호자가 없습니다",),),
        info=SendErrorInfo(
            kind=ErrorKind.STRUCTURAL,
            title="보호자 연락처 미등록",
            description="보호자는 등록되어 있지만, 이 채널로 보낼 연락처(전화번호 또는 이메일)가 없습니다.",
            remedy="학생 관리 > 학생 상세 > 보호자 탭에서 보호자의 연락처를 추가해주세요.",
            retryable=False,
            help_link="/students",
        ),
    ),
    ClassificationRule(
        name="guardian_missing",
        patterns=(("보호자",), ("찾을 수 없", "없습니다")),
        info=SendErrorInfo(
            kind=ErrorKind.STRUCTURAL,
            title="보호자 정보 없음",
            description="해당 학생에게 등록된 보호자가 없거나, 모든 보호자의 연락처가 비어있습니다.",
            remedy="학생 관리 > 학생 상세 > 보호자 탭에서 보호자를 추가하고 전화번호를 입력해주세요.",
            retryable=False,
            help_link="/students",
        ),
    ),
    ClassificationRule(
        name="recipient_contact_missing",
        patterns=(("수신번호가 없습니다", "수신 이메일 주소가 없습니다"),),
        info=SendErrorInfo(
            kind=ErrorKind.STRUCTURAL,
            title="수신자 연락처 없음",
            description="수신자의 전화번호 또는 이메일 주소가 비어있습니다.",
            remedy="학생 관리 > 학생 상세 > 보호자 탭에서 연락처를 입력해주세요.",
            retryable=False,
            help_link="/students",
        ),
    ),
    ClassificationRule(
        name="academy_info_missing",
        patterns=(("학원 정보",),),
        info=SendErrorInfo(
            kind=ErrorKind.STRUCTURAL,
            title="학원 정보 미설정",
            description="학원 기본 정보가 설정되어 있지 않습니다.",
            remedy="설정 > 학원 정보에서 학원명과 연락처를 입력해주세요.",
            retryable=False,
            help_link="/settings/academy",
        ),
    ),
    ClassificationRule(
        name="report_missing",
        patterns=(("리포트", "report"), ("찾을 수 없", "not found")),
        info=SendErrorInfo(
            kind=ErrorKind.STRUCTURAL,
            title="리포트 없음",
            description="전송하려는 리포트를 찾을 수 없습니다. 삭제되었거나 접근 권한이 없을 수 있습니다.",
            remedy="리포트 목록에서 해당 리포트가 존재하는지 확인해주세요.",
            retryable=False,
        ),
    ),
    ClassificationRule(
        name="student_missing",
        patterns=(("학생", "student"), ("찾을 수 없", "not found")),
        info=SendErrorInfo(
            kind=ErrorKind.STRUCTURAL,
            title="학생 정보 없음",
            description="해당 학생을 찾을 수 없습니다. 삭제되었거나 접근 권한이 없을 수 있습니다.",
            remedy="학생 목록에서 해당 학생이 존재하는지 확인해주세요.",
            retryable=False,
        ),
    ),
    # Recoverable
    ClassificationRule(
        name="insufficient_balance",
        patterns=(("잔액", "포인트", "충전"),),
        info=SendErrorInfo(
            kind=ErrorKind.RECOVERABLE,
            title="SMS 잔액 부족",
            description="SMS 발송을 위한 잔액이 부족합니다.",
            remedy="알리고 또는 솔라피 홈페이지에서 포인트를 충전한 후 다시 시도해주세요.",
            retryable=True,
        ),
    ),
    ClassificationRule(
        name="sender_not_registered",
        patterns=(("발신번호", "sender", "발신자"),),
        info=SendErrorInfo(
            kind=ErrorKind.RECOVERABLE,
            title="발신번호 미등록",
            description="SMS 발송에 사용할 발신번호가 등록되어 있지 않습니다.",
            remedy="알리고/솔라피 홈페이지에서 발신번호를 등록하고, 설정 페이지에서 발신번호를 입력해주세요.",
            retryable=False,
            help_link="/settings/messaging",
        ),
    ),
    ClassificationRule(
        name="authentication_failed",
        patterns=(("api key", "api_key", "인증", "401"),),
        info=SendErrorInfo(
            kind=ErrorKind.RECOVERABLE,
            title="API 인증 실패",
            description="메시징 서비스 API 인증에 실패했습니다. API 키가 올바르지 않을 수 있습니다.",
            remedy="설정 > 메시징 설정에서 API 키가 올바르게 입력되어 있는지 확인해주세요.",
            retryable=False,
            help_link="/settings/messaging",
        ),
    ),
    # Temporary
    ClassificationRule(
        name="network_error",
        patterns=(("network", "네트워크", "timeout", "시간 초과", "econnrefused", "enotfound"),),
        info=SendErrorInfo(
            kind=ErrorKind.TEMPORARY,
            title="네트워크 오류",
            description="메시지 서버와의 통신 중 일시적인 오류가 발생했습니다.",
            remedy="인터넷 연결을 확인한 후 잠시 후 다시 시도해주세요.",
            retryable=True,
        ),
    ),
    ClassificationRule(
        name="server_error",
        patterns=(("500", "502", "503", "504", "서버 오류", "server error"),),
        info=SendErrorInfo(
            kind=ErrorKind.TEMPORARY,
            title="서버 일시적 오류",
            description="메시지 발송 서버에 일시적인 오류가 발생했습니다.",
            remedy="잠시 후 다시 시도해주세요. 문제가 지속되면 관리자에게 문의해주세요.",
            retryable=True,
        ),
    ),
    ClassificationRule(
        name="short_url_failed",
        patterns=(("단축 url", "short url"),),
        info=SendErrorInfo(
            kind=ErrorKind.TEMPORARY,
            title="링크 생성 실패",
            description="리포트 링크 생성 중 오류가 발생했습니다.",
            remedy="잠시 후 다시 시도해주세요.",
            retryable=True,
        ),
    ),
)

FALLBACK_TITLE = "전송 실패"
FALLBACK_DESCRIPTION = "알 수 없는 오류가 발생했습니다."
FALLBACK_REMEDY = "문제가 지속되면 관리자에게 문의해주세요."


def classify_send_error(
    error: str | BaseException | None,
    rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> SendErrorInfo:
    """Classify a send failure.

    Args:
        error: Raw error text or the exception that was raised.
        rules: Ordered rule table.

    Returns:
        The first matching rule's entry, or a retryable temporary entry
        describing the raw message.
    """
    if isinstance(error, BaseException):
        raw = str(error) or error.__class__.__name__
    else:
        raw = str(error) if error is not None else ""

    message = raw.lower()
    if message:
        for rule in rules:
            if rule.matches(message):
                return rule.info

    return SendErrorInfo(
        kind=ErrorKind.TEMPORARY,
        title=FALLBACK_TITLE,
        description=raw.strip() or FALLBACK_DESCRIPTION,
        remedy=FALLBACK_REMEDY,
        retryable=True,
    )
