"""Domain records shared by services and routers.

Everything that leaves the process (HTTP bodies, JSON files) is dumped with
``by_alias=True`` so keys come out camelCase.
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ActionStatus = Literal["pending", "completed"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class MeetingActionItem(CamelModel):
    id: str
    text: str
    status: ActionStatus = "pending"
    due_date: Optional[str] = None


class ReportSection(CamelModel):
    title: str
    content: str


class MeetingNote(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    date: str
    type: str
    summary: str
    transcription: str
    has_audio: bool = True
    client_actions: Optional[list[MeetingActionItem]] = None
    advisor_actions: Optional[list[MeetingActionItem]] = None
    report_sections: Optional[list[ReportSection]] = None


class ActionItem(CamelModel):
    id: str
    text: str
    status: ActionStatus = "pending"
    from_meeting_date: str
    meeting_id: str


class ActionItemsFile(CamelModel):
    client_id: str
    meeting_id: str
    meeting_date: str
    actions: list[ActionItem] = Field(default_factory=list)


class MeetingSummary(BaseModel):
    """Structured output of the summary call (snake_case on the wire)."""

    meeting_summary: str
    adviser_actions: list[str]
    client_actions: list[str]


class DiscoveryReport(CamelModel):
    risk_tolerance: str
    fact_find: str
    capacity_for_loss: str
    financial_objectives: str


class DiscoveryReportFile(CamelModel):
    client_id: str
    meeting_id: str
    meeting_date: str
    meeting_type: str
    generated_at: str
    report: DiscoveryReport
