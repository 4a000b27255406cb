"""Runtime settings read from the environment (and ``.env`` when present)."""
from __future__ import annotations

import json
import logging
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_CLIENT_FOLDERS = {
    "1": "rebecca-flemming",
    "2": "james-francis",
}

GEMINI_MODEL = "gemini-2.5-flash"
ANTHROPIC_MODEL = "claude-sonnet-4-5-20250929"

# Token ceilings per call type
SUMMARY_MAX_TOKENS = 2048
REPORT_SECTION_MAX_TOKENS = 800


class Settings(BaseModel):
    ai_provider: str = "gemini"
    gemini_api_key: str = ""
    gemini_model: str = GEMINI_MODEL
    anthropic_api_key: str = ""
    anthropic_model: str = ANTHROPIC_MODEL
    resend_api_key: str = ""
    sender_email: str = "onboarding@resend.dev"
    sender_name: str = "Fabric Client Management"
    cors_origin: str = "http://localhost:8080"
    port: int = 3001
    base_dir: str = Field(default_factory=os.getcwd)
    client_folders: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_CLIENT_FOLDERS)
    )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        ``.env`` is only loaded when reading the real process environment.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        gemini_key = environ.get("GEMINI_API_KEY", "")
        provider = environ.get("AI_PROVIDER", "").strip().lower()
        if not provider:
            provider = "gemini" if gemini_key else "anthropic"

        return cls(
            ai_provider=provider,
            gemini_api_key=gemini_key,
            gemini_model=environ.get("GEMINI_MODEL") or GEMINI_MODEL,
            anthropic_api_key=environ.get("ANTHROPIC_API_KEY", ""),
            anthropic_model=environ.get("ANTHROPIC_MODEL") or ANTHROPIC_MODEL,
            resend_api_key=environ.get("RESEND_API_KEY", ""),
            sender_email=environ.get("SENDER_EMAIL") or "onboarding@resend.dev",
            sender_name=environ.get("SENDER_NAME") or "Fabric Client Management",
            cors_origin=environ.get("CORS_ORIGIN") or "http://localhost:8080",
            port=int(environ.get("PORT") or 3001),
            base_dir=environ.get("FABRIC_BASE_DIR") or os.getcwd(),
        )

    def ai_configured(self) -> bool:
        if self.ai_provider == "gemini":
            return bool(self.gemini_api_key)
        if self.ai_provider == "anthropic":
            return bool(self.anthropic_api_key)
        return False

    def with_config_file(self, config_path: str) -> "Settings":
        """Overlay ``client_folders`` from a JSON config file, if one exists."""
        logger = logging.getLogger("fabric.config")
        if not os.path.exists(config_path):
            logger.info("Config file missing=%s, using defaults", config_path)
            return self
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        folders = data.get("client_folders")
        if not isinstance(folders, dict):
            return self
        merged = dict(self.client_folders)
        merged.update({str(k): str(v) for k, v in folders.items()})
        logger.info("Config: loaded %d client folder mappings", len(folders))
        return self.model_copy(update={"client_folders": merged})


def mask_api_key(key: str) -> str:
    if not key:
        return "not configured"
    if len(key) <= 16:
        return "configured"
    return f"{key[:12]}...{key[-4:]}"
