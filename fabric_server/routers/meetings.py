import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter
from pydantic import ConfigDict, Field

from fabric_server.context import AppContext
from fabric_server.errors import EmailDeliveryError, NotFoundError, StorageError
from fabric_server.models import CamelModel, MeetingActionItem, MeetingNote, ReportSection
from fabric_server.services.discovery_report import DiscoveryReportGenerator
from fabric_server.services.email import EmailService
from fabric_server.services.email_templates import (
    DiscoveryReportEmailParams,
    MeetingSummaryEmailParams,
)
from fabric_server.services.file_storage import FileStorage
from fabric_server.services.meeting_store import MeetingStore
from fabric_server.services.summarization import SummarizationService


class RequestModel(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class ProcessMeetingRequest(RequestModel):
    client_id: str = Field(..., min_length=1)
    meeting_type: str = Field(..., min_length=1)
    duration: Optional[float] = Field(None, ge=0, description="Recording length in seconds")


class SaveMeetingRequest(RequestModel):
    client_id: str = Field(..., min_length=1)
    meeting_id: str = Field(..., min_length=1)
    meeting_type: str = Field(..., min_length=1)
    summary: str = Field(..., min_length=1)
    transcription: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    has_audio: bool = True
    client_actions: Optional[list[MeetingActionItem]] = None
    advisor_actions: Optional[list[MeetingActionItem]] = None
    report_sections: Optional[list[ReportSection]] = None


class DiscoveryReportRequest(RequestModel):
    client_id: str = Field(..., min_length=1)
    meeting_id: str = Field(..., min_length=1)
    transcription: str = Field(..., min_length=1)
    meeting_date: str = Field(..., min_length=1)
    meeting_type: str = Field(..., min_length=1)


class SendEmailRequest(RequestModel):
    recipient_email: str = Field(..., min_length=1)
    client_name: str = Field(..., min_length=1)
    advisor_name: str = Field(..., min_length=1)
    recipient_name: Optional[str] = None
    include_transcription: bool = False
    include_report: bool = False


def _utc_now_iso() -> str:
    # Example: 2025-01-14T09:30:00.000Z
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_meetings_router(
    meeting_store: MeetingStore,
    summarization_service: SummarizationService,
    report_generator: DiscoveryReportGenerator,
    file_storage: FileStorage,
    email_service: EmailService,
    ctx: AppContext,
) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("fabric.api.meetings")

    def _read_transcript() -> str:
        with open(ctx.mock_transcript_path, "r", encoding="utf-8") as f:
            return f.read()

    @router.get("/api/meetings")
    async def list_meetings() -> dict:
        return {
            client_id: [note.to_dict() for note in notes]
            for client_id, notes in meeting_store.get_all().items()
        }

    @router.get("/api/meetings/{client_id}")
    async def list_client_meetings(client_id: str) -> list[dict]:
        return [note.to_dict() for note in meeting_store.get_client_notes(client_id)]

    @router.post("/api/meetings/process")
    async def process_meeting(payload: ProcessMeetingRequest) -> dict:
        meeting_type = payload.meeting_type
        logger.info(
            "Processing meeting client=%s type=%s duration=%s",
            payload.client_id,
            meeting_type,
            payload.duration,
        )

        try:
            transcription = await asyncio.to_thread(_read_transcript)
        except OSError as exc:
            logger.error("Mock transcript unavailable: %s", exc)
            raise StorageError("Failed to load meeting transcript") from exc

        summary = await summarization_service.summarize(transcription, meeting_type)
        meeting_id = str(uuid.uuid4())
        meeting_date = _utc_now_iso()

        # Action files are best-effort: the summary is returned regardless.
        try:
            await file_storage.save_meeting_actions(
                payload.client_id,
                meeting_id,
                meeting_date,
                meeting_type,
                summary.client_actions,
                summary.adviser_actions,
            )
        except StorageError as exc:
            logger.warning("Action items not saved for meeting=%s: %s", meeting_id, exc)

        logger.info("Meeting processed id=%s", meeting_id)
        return {
            "transcription": transcription,
            "summary": summary.meeting_summary,
            "meetingId": meeting_id,
            "meetingDate": meeting_date,
            "structuredData": summary.model_dump(),
        }

    @router.post("/api/meetings/save")
    async def save_meeting(payload: SaveMeetingRequest) -> dict:
        note = MeetingNote(
            id=payload.meeting_id,
            date=payload.date,
            type=payload.meeting_type,
            summary=payload.summary,
            transcription=payload.transcription,
            has_audio=payload.has_audio,
            client_actions=payload.client_actions,
            advisor_actions=payload.advisor_actions,
            report_sections=payload.report_sections,
        )
        saved = meeting_store.save(payload.client_id, note)
        return {"success": True, "meetingNote": saved.to_dict()}

    @router.post("/api/meetings/discovery-report")
    async def discovery_report(payload: DiscoveryReportRequest) -> dict:
        logger.info("Generating discovery report meeting=%s", payload.meeting_id)
        report = await report_generator.generate(payload.transcription)
        # Unlike action items, a report that cannot be saved fails the request.
        await file_storage.save_discovery_report(
            payload.client_id,
            payload.meeting_id,
            payload.meeting_date,
            payload.meeting_type,
            report,
        )
        return {"success": True, "report": report.to_dict()}

    @router.delete("/api/meetings/{client_id}/{meeting_id}")
    async def delete_meeting(client_id: str, meeting_id: str) -> dict:
        if not meeting_store.delete(client_id, meeting_id):
            raise NotFoundError("Meeting not found")
        return {"success": True}

    @router.post("/api/meetings/{client_id}/{meeting_id}/send-email")
    async def send_meeting_email(client_id: str, meeting_id: str, payload: SendEmailRequest) -> dict:
        note = meeting_store.get_note(client_id, meeting_id)
        if note is None:
            raise NotFoundError("Meeting not found")

        config = email_service.validate_configuration()
        if not config.valid:
            raise EmailDeliveryError(config.error or "Email service not configured")

        recipient_name = payload.recipient_name or payload.client_name
        result = await email_service.send_meeting_summary(
            MeetingSummaryEmailParams(
                recipient_email=payload.recipient_email,
                recipient_name=recipient_name,
                client_name=payload.client_name,
                meeting_type=note.type,
                meeting_date=note.date,
                advisor_name=payload.advisor_name,
                summary=note.summary,
                transcription=note.transcription,
                include_transcription=payload.include_transcription,
                advisor_actions=[item.text for item in note.advisor_actions or []],
                client_actions=[item.text for item in note.client_actions or []],
            )
        )
        if not result.success:
            raise EmailDeliveryError(result.error or "Failed to send email")

        response = {"success": True, "emailId": result.email_id}
        if not payload.include_report:
            return response

        report = await file_storage.load_discovery_report(client_id, note.date, note.type)
        if report is None:
            logger.warning("No discovery report stored for meeting=%s", meeting_id)
            response["reportIncluded"] = False
            return response

        report_result = await email_service.send_discovery_report(
            DiscoveryReportEmailParams(
                recipient_email=payload.recipient_email,
                recipient_name=recipient_name,
                client_name=payload.client_name,
                meeting_date=note.date,
                advisor_name=payload.advisor_name,
                report=report,
            )
        )
        if not report_result.success:
            raise EmailDeliveryError(report_result.error or "Failed to send email")
        response["reportIncluded"] = True
        response["reportEmailId"] = report_result.email_id
        return response

    return router
