# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Channel-specific content formatting for report notifications.

Every function here is pure: it reads the Report and the explicit
FormatOptions, performs no I/O, never consults settings and never
modifies the Report.

Per channel:
- SMS: compact link message, body only. Whether it leaves as SMS or LMS
  is decided by the provider from the body's byte length.
- LMS: subject plus a link message with the key metrics.
- KAKAO: Alimtalk template id plus TemplateVariables; no free body.
- EMAIL: LMS subject plus a self-contained HTML document, with the LMS
  link message as its plain text part.
- Anything else: the LMS link message without a subject.
"""

from dataclasses import dataclass
from html import escape

from src.domains.report.entities import Report
from src.infrastructure.notifications.channels.base import MessageChannel, MessageContent

DEFAULT_ACADEMY_NAME = "Acadesk"
DIVIDER = "━━━━━━━━━━━━━━━━━━━━"


@dataclass(frozen=True)
class FormatOptions:
    """Inputs to formatting that do not come from the Report.

    Attributes:
        base_url: Public base URL; report links are ``{base_url}/r/{id}``.
        academy_name: Per-send academy display name, overriding the report.s own.
        academy_phone: Per-send academy contact number, overriding the report.s own.
        default_academy_name: Configured fallback when neither the send nor
            the report names the academy.
        default_academy_phone: Configured fallback contact number.
        kakao_template_id: Alimtalk template for report notifications.
    """

    base_url: str
    academy_name: str | None = None
    academy_phone: str | None = None
    default_academy_name: str | None = None
    default_academy_phone: str | None = None
    kakao_template_id: str = "student_report"


@dataclass(frozen=True)
class TemplateVariables:
    """Variables of the ``student_report`` Alimtalk template."""

    student_name: str
    grade: str
    period: str
    avg_score: str
    attendance_rate: str
    homework_rate: str
    present_days: str
    total_days: str
    report_url: str

    def to_dict(self) -> dict[str, str]:
        """Return the variables keyed by template variable name."""
        return {
            "studentName": self.student_name,
            "grade": self.grade,
            "period": self.period,
            "avgScore": self.avg_score,
            "attendanceRate": self.attendance_rate,
            "homeworkRate": self.homework_rate,
            "presentDays": self.present_days,
            "totalDays": self.total_days,
            "reportUrl": self.report_url,
        }


def resolve_academy_name(report: Report, options: FormatOptions) -> str:
    """Academy display name: send override, report data, configured default."""
    return (
        options.academy_name
        or report.data.academy_name
        or options.default_academy_name
        or DEFAULT_ACADEMY_NAME
    )


def resolve_academy_phone(report: Report, options: FormatOptions) -> str | None:
    return options.academy_phone or report.data.academy_phone or options.default_academy_phone


def _number(value: float) -> str:
    """Render 90.0 as "90" and 87.5 as "87.5"."""
    return f"{value:g}"


def _month_label(report_month: str) -> str:
    try:
        return f"{int(report_month.split('-')[1])}월"
    except (IndexError, ValueError):
        return "이번 달"


def build_subject(report: Report, options: FormatOptions) -> str:
    """Subject line shared by LMS and email."""
    return f"[{resolve_academy_name(report, options)}] {report.data.student_name} 학습 리포트"


def build_sms_message(report: Report, options: FormatOptions) -> str:
    """Compact message with three metrics and the report link."""
    data = report.data
    achievement = data.achievement_rate or 0
    return (
        f"[{resolve_academy_name(report, options)}] {data.student_name} 학습리포트\n"
        f"평균 {data.avg_score}점 / 출석 {data.attendance_rate}% / 성취 {achievement}%\n"
        f"{report.link(options.base_url)}"
    )


def build_link_message(report: Report, options: FormatOptions) -> str:
    """Link message with the key metrics, used for LMS."""
    data = report.data
    month = _month_label(data.report_month)
    phone = resolve_academy_phone(report, options)

    lines = [
        f"[{resolve_academy_name(report, options)}] {month} 학습 리포트 도착 📚",
        "",
        f"안녕하세요, {data.student_name} 학부모님!",
        f"{month} 학습 리포트를 확인하실 수 있습니다.",
        "",
        DIVIDER,
        "📊 핵심 지표",
        DIVIDER,
        f"• 평균 성적: {data.avg_score}점",
        f"• 출석률: {data.attendance_rate}%",
        f"• 과제 완료율: {data.homework_rate}%",
    ]
    if data.achievement_rate:
        lines.append(f"• 목표 달성률: {data.achievement_rate}%")
    lines.extend([
        DIVIDER,
        "",
        "📱 상세 리포트 보기",
        report.link(options.base_url),
        "",
        "※ 성장 그래프, 과목별 상세, 담임 코멘트 등을 확인하실 수 있습니다.",
        "",
        f"문의: {phone}" if phone else "문의사항은 학원으로 연락 주세요.",
    ])
    return "\n".join(lines)


def build_template_variables(report: Report, options: FormatOptions) -> TemplateVariables:
    """Alimtalk template variables for the report."""
    data = report.data
    return TemplateVariables(
        student_name=data.student_name,
        grade=data.grade,
        period=f"{data.start_date} ~ {data.end_date}",
        avg_score=str(data.avg_score),
        attendance_rate=str(data.attendance_rate),
        homework_rate=str(data.homework_rate),
        present_days=str(data.present_days),
        total_days=str(data.total_days),
        report_url=report.link(options.base_url),
    )


def build_email_html(report: Report, options: FormatOptions) -> str:
    """Self-contained HTML report for email.

    All text taken from the report is HTML-escaped.
    """
    data = report.data
    academy = escape(resolve_academy_name(report, options))
    student = escape(data.student_name)
    phone = resolve_academy_phone(report, options)
    link = escape(report.link(options.base_url), quote=True)

    exam_rows = "".join(
        f"<tr><td>{escape(exam.name)}</td><td>{escape(exam.date)}</td>"
        f"<td>{_number(exam.score)}</td><td>{_number(exam.percentage)}%</td></tr>"
        for exam in data.exams
    )
    exams_section = (
        "<table style=\"width: 100%; border-collapse: collapse;\">"
        "<tr><th align=\"left\">시험</th><th align=\"left\">날짜</th>"
        "<th align=\"left\">점수</th><th align=\"left\">백분율</th></tr>"
        f"{exam_rows}</table>"
        if data.exams
        else "<p>기간 내 시험 기록이 없습니다.</p>"
    )

    consultation_items = "".join(
        f"<li><strong>{escape(c.date)} ({escape(c.type)})</strong><br>{escape(c.summary)}</li>"
        for c in data.consultations
    )
    consultations_section = (
        f"<h2>💬 상담 기록</h2><ul>{consultation_items}</ul>" if data.consultations else ""
    )

    comment_section = (
        f"<h2>💡 종합 평가</h2><p>{escape(data.overall_comment).replace(chr(10), '<br>')}</p>"
        if data.overall_comment
        else ""
    )

    achievement_item = (
        f"<li>목표 달성률: {data.achievement_rate}%</li>" if data.achievement_rate else ""
    )
    contact = f"문의: {escape(phone)}" if phone else "문의사항은 학원으로 연락 주세요."

    return f"""<!DOCTYPE html>
<html lang="ko">
<head>
<meta charset="utf-8">
<title>{academy} {student} 학습 리포트</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
             line-height: 1.6; color: #1F2937; max-width: 600px; margin: 0 auto; padding: 20px;">
<h1 style="color: #4F46E5;">{academy} 학습 리포트</h1>
<p><strong>{student}</strong> ({escape(data.grade)}) · {escape(data.start_date)} ~ {escape(data.end_date)}</p>

<h2>📊 핵심 지표</h2>
<ul>
<li>평균 성적: {data.avg_score}점</li>
<li>출석률: {data.attendance_rate}% (출석 {data.present_days}일 / 지각 {data.late_days}일 / 결석 {data.absent_days}일, 총 {data.total_days}일)</li>
<li>과제 완료율: {data.homework_rate}% (총 {data.total_todos}개 중 {data.completed_todos}개 완료)</li>
{achievement_item}
</ul>

<h2>📝 최근 시험</h2>
{exams_section}
{consultations_section}
{comment_section}
<div style="margin: 24px 0;">
<a href="{link}"
   style="background-color: #4F46E5; color: white; padding: 12px 24px;
          text-decoration: none; border-radius: 6px; font-weight: 500;">
상세 리포트 보기
</a>
</div>
<p style="color: #6B7280; font-size: 14px;">{contact}</p>
</body>
</html>
"""


def format_report_content(
    report: Report,
    channel: MessageChannel,
    options: FormatOptions,
) -> MessageContent:
    """Format a report notification for a channel.

    Args:
        report: The report to announce.
        channel: Target channel.
        options: Link base URL and academy display overrides.

    Returns:
        MessageContent for the channel.
    """
    if channel == MessageChannel.SMS:
        return MessageContent(body=build_sms_message(report, options))

    if channel == MessageChannel.LMS:
        return MessageContent(
            subject=build_subject(report, options),
            body=build_link_message(report, options),
        )

    if channel == MessageChannel.KAKAO:
        return MessageContent(
            body="",
            template_id=options.kakao_template_id,
            variables=build_template_variables(report, options).to_dict(),
        )

    if channel == MessageChannel.EMAIL:
        return MessageContent(
            subject=build_subject(report, options),
            body=build_email_html(report, options),
            text_body=build_link_message(report, options),
        )

    return MessageContent(body=build_link_message(report, options))
