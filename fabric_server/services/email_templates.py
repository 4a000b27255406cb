"""HTML and plain-text bodies for meeting summary and discovery report emails."""
from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import Optional

from fabric_server.models import DiscoveryReport
from fabric_server.services.file_storage import parse_meeting_date

_BOLD = re.compile(r"\*\*(.*?)\*\*")

_HEADER = (
    '<div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); '
    'padding: 40px 32px; text-align: center;">'
    '<h1 style="margin: 0; color: #ffffff; font-size: 28px; font-weight: 700;">Fabric</h1>'
    '<p style="margin: 8px 0 0 0; color: #e9d5ff; font-size: 14px;">Client Management Platform</p>'
    "</div>"
)

REPORT_SECTIONS = (
    ("risk_tolerance", "Risk Tolerance Assessment"),
    ("fact_find", "Fact Find Summary"),
    ("capacity_for_loss", "Capacity for Loss Analysis"),
    ("financial_objectives", "Financial Objectives Overview"),
)


@dataclass
class MeetingSummaryEmailParams:
    recipient_email: str
    recipient_name: str
    client_name: str
    meeting_type: str
    meeting_date: str
    advisor_name: str
    summary: str
    transcription: Optional[str] = None
    include_transcription: bool = False
    advisor_actions: list[str] = field(default_factory=list)
    client_actions: list[str] = field(default_factory=list)


@dataclass
class DiscoveryReportEmailParams:
    recipient_email: str
    recipient_name: str
    client_name: str
    meeting_date: str
    advisor_name: str
    report: DiscoveryReport


def format_long_date(value: str) -> str:
    """``January 5, 2025``; unparseable input is returned unchanged."""
    try:
        dt = parse_meeting_date(value)
    except ValueError:
        return value
    return f"{dt:%B} {dt.day}, {dt.year}"


def format_short_date(value: str) -> str:
    """``Jan 5, 2025``; unparseable input is returned unchanged."""
    try:
        dt = parse_meeting_date(value)
    except ValueError:
        return value
    return f"{dt:%b} {dt.day}, {dt.year}"


def _inline(text: str) -> str:
    return _BOLD.sub(r"<strong>\1</strong>", html.escape(text))


def markdown_to_html(summary: str) -> str:
    """Convert the summary's headings, bullets and bold markers to HTML."""
    parts: list[str] = []
    in_list = False

    def close_list() -> None:
        nonlocal in_list
        if in_list:
            parts.append("</ul>")
            in_list = False

    for line in summary.split("\n"):
        stripped = line.strip()
        if line.startswith("### "):
            close_list()
            parts.append(
                '<h4 style="margin: 20px 0 12px 0; color: #374151; font-size: 15px;">'
                f"{_inline(line[4:])}</h4>"
            )
        elif line.startswith("## "):
            close_list()
            parts.append(
                '<h3 style="margin: 24px 0 12px 0; color: #1a1a1a; font-size: 16px;">'
                f"{_inline(line[3:])}</h3>"
            )
        elif stripped.startswith("- ") or stripped.startswith("* "):
            if not in_list:
                parts.append('<ul style="margin: 8px 0; padding-left: 24px;">')
                in_list = True
            parts.append(
                '<li style="margin: 6px 0; line-height: 1.6; color: #374151;">'
                f"{_inline(stripped[2:])}</li>"
            )
        elif not stripped:
            close_list()
            parts.append('<div style="height: 8px;"></div>')
        else:
            close_list()
            parts.append(
                '<p style="margin: 8px 0; line-height: 1.6; color: #374151;">'
                f"{_inline(line)}</p>"
            )
    close_list()
    return "".join(parts)


def _info_rows(rows: list[tuple[str, str]]) -> str:
    return "".join(
        '<tr><td style="padding: 8px 0; color: #6b7280; font-size: 14px; width: 120px;">'
        f"{html.escape(label)}:</td>"
        f'<td style="padding: 8px 0; color: #1a1a1a; font-size: 14px;">{html.escape(value)}</td></tr>'
        for label, value in rows
    )


def _action_list(title: str, actions: list[str]) -> str:
    if not actions:
        return ""
    items = "".join(
        f'<li style="margin-bottom: 8px;">{html.escape(action)}</li>' for action in actions
    )
    return (
        '<div style="margin-bottom: 20px;">'
        f'<h4 style="margin: 0 0 12px 0; color: #667eea; font-size: 16px;">{title}</h4>'
        f'<ul style="margin: 0; padding-left: 20px; color: #374151; font-size: 14px;">{items}</ul>'
        "</div>"
    )


def _document(title: str, body: str, footer: str) -> str:
    return (
        "<!DOCTYPE html>"
        '<html lang="en"><head><meta charset="UTF-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">'
        f"<title>{html.escape(title)}</title></head>"
        '<body style="margin: 0; padding: 0; font-family: -apple-system, Helvetica, Arial, '
        'sans-serif; background-color: #f5f5f5;">'
        '<div style="max-width: 600px; margin: 0 auto; background-color: #ffffff;">'
        f"{_HEADER}"
        f'<div style="padding: 32px;">{body}</div>'
        '<div style="padding: 24px 32px; background-color: #f9fafb; border-top: 1px solid #e5e7eb;">'
        f"{footer}"
        '<p style="margin: 0; color: #9ca3af; font-size: 12px;">'
        "Generated by Fabric Client Management Platform</p>"
        "</div></div></body></html>"
    )


def render_meeting_summary_html(params: MeetingSummaryEmailParams) -> str:
    info = _info_rows(
        [
            ("Client", params.client_name),
            ("Meeting Type", params.meeting_type),
            ("Date", format_long_date(params.meeting_date)),
            ("Advisor", params.advisor_name),
        ]
    )
    body = (
        '<div style="margin-bottom: 24px; padding-bottom: 24px; border-bottom: 2px solid #e5e7eb;">'
        '<h2 style="margin: 0 0 16px 0; color: #1a1a1a; font-size: 22px;">Meeting Summary</h2>'
        f'<table style="width: 100%;">{info}</table></div>'
        '<div style="margin-bottom: 24px;">'
        '<h3 style="margin: 0 0 16px 0; color: #1a1a1a; font-size: 18px;">Summary</h3>'
        f"{markdown_to_html(params.summary)}</div>"
    )
    if params.advisor_actions or params.client_actions:
        body += (
            '<div style="margin-top: 32px; padding: 24px; background-color: #f0f9ff; '
            'border-left: 4px solid #667eea; border-radius: 8px;">'
            '<h3 style="margin: 0 0 16px 0; color: #1a1a1a; font-size: 18px;">Action Items</h3>'
            f"{_action_list('Advisor Actions', params.advisor_actions)}"
            f"{_action_list('Client Actions', params.client_actions)}"
            "</div>"
        )
    if params.include_transcription and params.transcription:
        body += (
            '<div style="margin-top: 32px; padding: 20px; background-color: #f8f9fa; border-radius: 8px;">'
            '<h2 style="margin: 0 0 16px 0; color: #1a1a1a; font-size: 18px;">Full Transcription</h2>'
            '<div style="color: #4a5568; font-size: 14px; line-height: 1.8; white-space: pre-wrap;">'
            f"{html.escape(params.transcription)}</div></div>"
        )
    footer = (
        '<p style="margin: 0 0 8px 0; color: #6b7280; font-size: 12px;">'
        "<strong>Confidential:</strong> This email contains confidential financial information. "
        "Please do not forward or share without authorization.</p>"
    )
    return _document(f"Meeting Summary - {params.meeting_type}", body, footer)


def render_meeting_summary_text(params: MeetingSummaryEmailParams) -> str:
    clean_summary = re.sub(r"#{2,3}\s+", "", params.summary)
    clean_summary = _BOLD.sub(r"\1", clean_summary).strip()

    lines = [
        "MEETING SUMMARY",
        "===============",
        "",
        f"Client: {params.client_name}",
        f"Meeting Type: {params.meeting_type}",
        f"Date: {format_long_date(params.meeting_date)}",
        f"Advisor: {params.advisor_name}",
        "",
        "SUMMARY",
        "-------",
        clean_summary,
    ]
    if params.advisor_actions or params.client_actions:
        lines += ["", "", "ACTION ITEMS", "------------"]
        for title, actions in (
            ("Advisor Actions:", params.advisor_actions),
            ("Client Actions:", params.client_actions),
        ):
            if actions:
                lines += ["", title]
                lines += [f"  {index}. {action}" for index, action in enumerate(actions, 1)]
    if params.include_transcription and params.transcription:
        lines += ["", "", "FULL TRANSCRIPTION", "------------------", params.transcription]
    lines += [
        "",
        "",
        "---",
        "Confidential: This email contains confidential financial information.",
        "Generated by Fabric Client Management Platform",
    ]
    return "\n".join(lines).strip()


def render_discovery_report_html(params: DiscoveryReportEmailParams) -> str:
    info = _info_rows(
        [
            ("Client", params.client_name),
            ("Date", format_long_date(params.meeting_date)),
            ("Advisor", params.advisor_name),
        ]
    )
    body = (
        '<div style="margin-bottom: 24px; padding-bottom: 24px; border-bottom: 2px solid #e5e7eb;">'
        '<h2 style="margin: 0 0 16px 0; color: #1a1a1a; font-size: 22px;">Discovery Report</h2>'
        f'<table style="width: 100%;">{info}</table></div>'
    )
    for attr, title in REPORT_SECTIONS:
        content = html.escape(getattr(params.report, attr)).replace("\n", "<br>")
        body += (
            '<div style="margin-bottom: 32px;">'
            f'<h3 style="margin: 0 0 12px 0; color: #667eea; font-size: 18px;">{title}</h3>'
            f'<p style="margin: 0; color: #374151; font-size: 14px; line-height: 1.6;">{content}</p>'
            "</div>"
        )
    footer = (
        '<p style="margin: 0 0 8px 0; color: #6b7280; font-size: 12px;">'
        "<strong>Confidential:</strong> This discovery report contains highly confidential "
        "financial information. Please do not forward or share without authorization.</p>"
        '<p style="margin: 0 0 8px 0; color: #6b7280; font-size: 12px;">'
        "<strong>Disclaimer:</strong> This report is for informational purposes only and does "
        "not constitute financial advice. Please consult with your financial advisor before "
        "making any investment decisions.</p>"
    )
    return _document(f"Discovery Report - {params.client_name}", body, footer)


def render_discovery_report_text(params: DiscoveryReportEmailParams) -> str:
    lines = [
        "DISCOVERY REPORT",
        "================",
        "",
        f"Client: {params.client_name}",
        f"Date: {format_long_date(params.meeting_date)}",
        f"Advisor: {params.advisor_name}",
    ]
    for attr, title in REPORT_SECTIONS:
        heading = title.upper()
        lines += ["", "", heading, "-" * len(heading), getattr(params.report, attr)]
    lines += [
        "",
        "",
        "---",
        "Confidential: This discovery report contains highly confidential financial information.",
        "Disclaimer: This report is for informational purposes only and does not constitute "
        "financial advice.",
        "Generated by Fabric Client Management Platform",
    ]
    return "\n".join(lines).strip()
