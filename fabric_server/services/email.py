"""Transactional email through Resend.

Expected failures (bad recipient, missing configuration, provider errors)
come back as ``EmailResult(success=False, error=...)`` rather than being
raised.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import resend

from fabric_server.config import Settings
from fabric_server.services.email_templates import (
    DiscoveryReportEmailParams,
    MeetingSummaryEmailParams,
    format_short_date,
    render_discovery_report_html,
    render_discovery_report_text,
    render_meeting_summary_html,
    render_meeting_summary_text,
)

INVALID_RECIPIENT = "Invalid recipient email address"
NOT_CONFIGURED = "Email service not configured (RESEND_API_KEY missing)"


@dataclass
class EmailResult:
    success: bool
    email_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data: dict = {"success": self.success}
        if self.email_id is not None:
            data["emailId"] = self.email_id
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class EmailConfigStatus:
    valid: bool
    error: Optional[str] = None


class EmailService:
    """Service for sending meeting emails via Resend."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.resend_api_key
        self._sender_email = settings.sender_email
        self._sender_name = settings.sender_name
        self._logger = logging.getLogger("fabric.email")
        if not self._api_key:
            self._logger.warning("RESEND_API_KEY not configured - emails will not be sent")

    @property
    def sender(self) -> str:
        return f"{self._sender_name} <{self._sender_email}>"

    def validate_configuration(self) -> EmailConfigStatus:
        if not self._api_key:
            return EmailConfigStatus(False, "RESEND_API_KEY environment variable is not set")
        if not self._api_key.startswith("re_"):
            return EmailConfigStatus(
                False, 'RESEND_API_KEY appears to be invalid (should start with "re_")'
            )
        if not self._sender_email or "@" not in self._sender_email:
            return EmailConfigStatus(
                False, "SENDER_EMAIL environment variable is not set or invalid"
            )
        return EmailConfigStatus(True)

    def _deliver(self, to: str, subject: str, html: str, text: str) -> str:
        resend.api_key = self._api_key
        params: resend.Emails.SendParams = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        }
        result = resend.Emails.send(params)
        return result.get("id", "") if result else ""

    async def _send(self, kind: str, to: str, subject: str, html: str, text: str) -> EmailResult:
        if not self._api_key:
            return EmailResult(success=False, error=NOT_CONFIGURED)
        try:
            email_id = await asyncio.to_thread(self._deliver, to, subject, html, text)
        except Exception as exc:
            self._logger.exception("Failed to send %s email to=%s", kind, to)
            return EmailResult(success=False, error=str(exc) or "Failed to send email")
        self._logger.info("Sent %s email id=%s to=%s", kind, email_id, to)
        return EmailResult(success=True, email_id=email_id)

    async def send_meeting_summary(self, params: MeetingSummaryEmailParams) -> EmailResult:
        if not params.recipient_email or "@" not in params.recipient_email:
            return EmailResult(success=False, error=INVALID_RECIPIENT)

        html = render_meeting_summary_html(params)
        text = render_meeting_summary_text(params)
        subject = (
            f"Meeting Summary - {params.meeting_type} - {format_short_date(params.meeting_date)}"
        )
        return await self._send("meeting summary", params.recipient_email, subject, html, text)

    async def send_discovery_report(self, params: DiscoveryReportEmailParams) -> EmailResult:
        if not params.recipient_email or "@" not in params.recipient_email:
            return EmailResult(success=False, error=INVALID_RECIPIENT)

        html = render_discovery_report_html(params)
        text = render_discovery_report_text(params)
        subject = (
            f"Discovery Report - {params.client_name} - {format_short_date(params.meeting_date)}"
        )
        return await self._send("discovery report", params.recipient_email, subject, html, text)
