from __future__ import annotations

import logging
import threading

from fabric_server.models import MeetingNote


class MeetingStore:
    """In-memory meeting notes, newest first per client.

    Contents are lost on restart. One instance is built per process and
    handed to the routers.
    """

    def __init__(self, notes: dict[str, list[MeetingNote]] | None = None) -> None:
        self._lock = threading.RLock()
        self._notes: dict[str, list[MeetingNote]] = notes if notes is not None else {}
        self._logger = logging.getLogger("fabric.meetings")

    def save(self, client_id: str, note: MeetingNote) -> MeetingNote:
        """Prepend ``note`` to the client's list. Ids are not deduplicated."""
        with self._lock:
            existing = self._notes.get(client_id, [])
            self._notes[client_id] = [note, *existing]
            count = len(self._notes[client_id])
        self._logger.info(
            "Saved meeting note id=%s client=%s (total=%d)", note.id, client_id, count
        )
        return note

    def get_client_notes(self, client_id: str) -> list[MeetingNote]:
        with self._lock:
            return list(self._notes.get(client_id, []))

    def get_all(self) -> dict[str, list[MeetingNote]]:
        with self._lock:
            return {client_id: list(notes) for client_id, notes in self._notes.items()}

    def get_note(self, client_id: str, meeting_id: str) -> MeetingNote | None:
        with self._lock:
            for note in self._notes.get(client_id, []):
                if note.id == meeting_id:
                    return note
        return None

    def delete(self, client_id: str, meeting_id: str) -> bool:
        with self._lock:
            notes = self._notes.get(client_id)
            if not notes:
                return False
            for index, note in enumerate(notes):
                if note.id == meeting_id:
                    self._notes[client_id] = notes[:index] + notes[index + 1:]
                    self._logger.info("Deleted meeting note id=%s client=%s", meeting_id, client_id)
                    return True
        return False
