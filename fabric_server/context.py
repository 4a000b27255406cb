"""Runtime paths for one server instance.

Services and routers take this object rather than loose path strings, so a
test can point a whole app at a temporary directory through ``base_dir``.
"""

from __future__ import annotations

import os


class AppContext:
    def __init__(self, *, base_dir: str, data_dir: str | None = None) -> None:
        self._base_dir = base_dir
        self._data_dir = data_dir or os.path.join(base_dir, "data_folder")
        self._package_dir = os.path.dirname(__file__)

    @property
    def base_dir(self) -> str:
        return self._base_dir

    # ── Per-client meeting folders ─────────────────────────────────────

    @property
    def data_dir(self) -> str:
        return self._data_dir

    @property
    def config_path(self) -> str:
        return os.path.join(self._data_dir, "config.json")

    # ── Shipped with the package ───────────────────────────────────────

    @property
    def prompts_dir(self) -> str:
        return os.path.join(self._package_dir, "prompts")

    @property
    def mock_transcript_path(self) -> str:
        return os.path.join(self.prompts_dir, "mock_transcript.txt")

    # ── Logs stay beside the data folder, not inside it ────────────────

    @property
    def logs_dir(self) -> str:
        return os.path.join(self._base_dir, "logs")

    def ensure_dirs(self) -> None:
        for path in (self._data_dir, self.logs_dir):
            os.makedirs(path, exist_ok=True)
