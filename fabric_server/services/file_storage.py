"""Per-client, per-meeting JSON files under the data folder.

Layout::

    data_folder/{client-folder}/{YYYYMMDD-HHMMSS}-{type-slug}/
        client_actions.json
        adviser_actions.json
        discovery_report.json
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import uuid
from datetime import datetime, timezone
from typing import Mapping, Optional

from fabric_server.errors import StorageError
from fabric_server.models import (
    ActionItem,
    ActionItemsFile,
    DiscoveryReport,
    DiscoveryReportFile,
)

CLIENT_ACTIONS_FILE = "client_actions.json"
ADVISER_ACTIONS_FILE = "adviser_actions.json"
DISCOVERY_REPORT_FILE = "discovery_report.json"
JSON_INDENT = 2

SAVE_FAILED = "Failed to save action items to file"


class ActionItemSaveError(StorageError):
    """One or more action files could not be written.

    ``failures`` maps each failed filename to its exception.
    """

    def __init__(self, failures: dict[str, BaseException]) -> None:
        detail = ", ".join(
            f"{name} ({type(exc).__name__}: {exc})" for name, exc in failures.items()
        )
        super().__init__(f"{SAVE_FAILED}: {detail}")
        self.failures = failures


def slugify(value: str) -> str:
    """Lower-case ``value`` and collapse every run outside ``[a-z0-9]`` to ``-``."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "unknown"


def parse_meeting_date(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def meeting_folder_name(meeting_date: str, meeting_type: str) -> str:
    # Example: 20250114-093000-discovery
    stamp = parse_meeting_date(meeting_date).astimezone(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return f"{stamp[:15]}-{slugify(meeting_type)}"


class FileStorage:
    def __init__(self, data_dir: str, client_folders: Optional[Mapping[str, str]] = None) -> None:
        self._data_dir = data_dir
        self._client_folders = dict(client_folders or {})
        self._logger = logging.getLogger("fabric.storage")

    @property
    def data_dir(self) -> str:
        return self._data_dir

    def client_folder_name(self, client_id: str) -> str:
        mapped = self._client_folders.get(client_id)
        return slugify(mapped or client_id)

    def meeting_dir(self, client_id: str, meeting_date: str, meeting_type: str) -> str:
        path = os.path.join(
            self._data_dir,
            self.client_folder_name(client_id),
            meeting_folder_name(meeting_date, meeting_type),
        )
        root = os.path.realpath(self._data_dir)
        if os.path.commonpath([root, os.path.realpath(path)]) != root:
            raise StorageError(f"Meeting folder resolves outside the data folder: {path}")
        return path

    @staticmethod
    def _ensure_directory(path: str) -> None:
        if not os.path.isdir(path):
            os.makedirs(path, exist_ok=True)

    def _write_json(self, path: str, data: dict) -> None:
        self._ensure_directory(os.path.dirname(path))
        temp_path = f"{path}.tmp"
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=JSON_INDENT, ensure_ascii=False)
        os.replace(temp_path, path)

    @staticmethod
    def build_action_items(meeting_id: str, meeting_date: str, actions: list[str]) -> list[ActionItem]:
        return [
            ActionItem(
                id=str(uuid.uuid4()),
                text=text,
                status="pending",
                from_meeting_date=meeting_date,
                meeting_id=meeting_id,
            )
            for text in actions
        ]

    def _write_actions_file(
        self,
        filename: str,
        client_id: str,
        meeting_id: str,
        meeting_date: str,
        meeting_type: str,
        actions: list[str],
    ) -> str:
        folder = self.meeting_dir(client_id, meeting_date, meeting_type)
        envelope = ActionItemsFile(
            client_id=client_id,
            meeting_id=meeting_id,
            meeting_date=meeting_date,
            actions=self.build_action_items(meeting_id, meeting_date, actions),
        )
        path = os.path.join(folder, filename)
        self._write_json(path, envelope.to_dict())
        self._logger.info(
            "Saved %d actions for client=%s meeting=%s to %s",
            len(actions),
            client_id,
            meeting_id,
            path,
        )
        return path

    async def save_meeting_actions(
        self,
        client_id: str,
        meeting_id: str,
        meeting_date: str,
        meeting_type: str,
        client_actions: list[str],
        adviser_actions: list[str],
    ) -> list[str]:
        """Write both action files concurrently.

        Every write is attempted; failures are collected into a single
        ActionItemSaveError naming each file that failed.
        """
        jobs = {
            CLIENT_ACTIONS_FILE: client_actions,
            ADVISER_ACTIONS_FILE: adviser_actions,
        }
        results = await asyncio.gather(
            *(
                asyncio.to_thread(
                    self._write_actions_file,
                    filename,
                    client_id,
                    meeting_id,
                    meeting_date,
                    meeting_type,
                    actions,
                )
                for filename, actions in jobs.items()
            ),
            return_exceptions=True,
        )
        failures: dict[str, BaseException] = {}
        paths: list[str] = []
        for filename, result in zip(jobs, results):
            if isinstance(result, BaseException):
                self._logger.error("Error saving %s: %s", filename, result)
                failures[filename] = result
            else:
                paths.append(result)
        if failures:
            raise ActionItemSaveError(failures)
        return paths

    def _write_report_file(self, envelope: DiscoveryReportFile) -> str:
        folder = self.meeting_dir(envelope.client_id, envelope.meeting_date, envelope.meeting_type)
        path = os.path.join(folder, DISCOVERY_REPORT_FILE)
        self._write_json(path, envelope.to_dict())
        return path

    async def save_discovery_report(
        self,
        client_id: str,
        meeting_id: str,
        meeting_date: str,
        meeting_type: str,
        report: DiscoveryReport,
    ) -> str:
        envelope = DiscoveryReportFile(
            client_id=client_id,
            meeting_id=meeting_id,
            meeting_date=meeting_date,
            meeting_type=meeting_type,
            generated_at=datetime.now(timezone.utc).isoformat(),
            report=report,
        )
        try:
            path = await asyncio.to_thread(self._write_report_file, envelope)
        except (OSError, ValueError, StorageError) as exc:
            self._logger.error("Error saving discovery report meeting=%s: %s", meeting_id, exc)
            raise StorageError("Failed to save discovery report to file") from exc
        self._logger.info("Saved discovery report for meeting=%s to %s", meeting_id, path)
        return path

    def _read_report_file(self, path: str) -> Optional[DiscoveryReport]:
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return DiscoveryReportFile.model_validate(data).report

    async def load_discovery_report(
        self, client_id: str, meeting_date: str, meeting_type: str
    ) -> Optional[DiscoveryReport]:
        """Return the stored report for a meeting, or None if none was saved."""
        try:
            path = os.path.join(
                self.meeting_dir(client_id, meeting_date, meeting_type), DISCOVERY_REPORT_FILE
            )
            return await asyncio.to_thread(self._read_report_file, path)
        except (OSError, ValueError, StorageError) as exc:
            self._logger.warning("Failed to read discovery report: %s", exc)
            return None
