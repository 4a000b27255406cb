import asyncio
import logging
import os

from typing import Optional

from pydantic import ValidationError

from fabric_server.config import SUMMARY_MAX_TOKENS, Settings
from fabric_server.models import MeetingSummary
from fabric_server.services.llm import (
    AnthropicProvider,
    FailureCause,
    GeminiProvider,
    GenerationFailedError,
    LLMProvider,
    LLMProviderError,
)
from fabric_server.services.llm.base import SUMMARY_SCHEMA, BaseLLMProvider, check_completion

PROMPT_FILES = {
    "discovery": "meeting_summary_discovery.txt",
    "regular": "meeting_summary_regular.txt",
}


def build_provider(settings: Settings) -> LLMProvider:
    """Create the provider selected by ``AI_PROVIDER``."""
    provider_name = settings.ai_provider.lower()

    if provider_name == "gemini":
        if not settings.gemini_api_key:
            raise LLMProviderError("Missing Gemini API key. Set GEMINI_API_KEY.")
        return GeminiProvider(api_key=settings.gemini_api_key, model=settings.gemini_model)

    if provider_name == "anthropic":
        if not settings.anthropic_api_key:
            raise LLMProviderError("Missing Anthropic API key. Set ANTHROPIC_API_KEY.")
        return AnthropicProvider(api_key=settings.anthropic_api_key, model=settings.anthropic_model)

    raise LLMProviderError(f"Unknown provider: {provider_name}")


class SummarizationService:
    """Structured meeting summaries from a transcript.

    The prompt file is picked by meeting type: ``discovery`` meetings use the
    discovery prompt, every other type uses the regular one.
    """

    def __init__(
        self,
        prompts_dir: str,
        settings: Optional[Settings] = None,
        provider: Optional[LLMProvider] = None,
    ) -> None:
        self._prompts_dir = prompts_dir
        self._settings = settings
        self._provider = provider
        self._logger = logging.getLogger("fabric.summarization")

    def get_provider(self) -> LLMProvider:
        if self._provider is None:
            if self._settings is None:
                raise LLMProviderError("No AI provider configured")
            self._provider = build_provider(self._settings)
        return self._provider

    def prompt_path(self, meeting_type: str) -> str:
        key = "discovery" if meeting_type.strip().lower() == "discovery" else "regular"
        return os.path.join(self._prompts_dir, PROMPT_FILES[key])

    def load_prompt(self, meeting_type: str) -> str:
        path = self.prompt_path(meeting_type)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except OSError as exc:
            raise GenerationFailedError(
                f"Missing summary prompt file: {path}", FailureCause.PROMPT_UNAVAILABLE
            ) from exc

    def _summarize_sync(self, transcript: str, meeting_type: str) -> MeetingSummary:
        system_prompt = self.load_prompt(meeting_type)
        try:
            provider = self.get_provider()
        except LLMProviderError as exc:
            raise GenerationFailedError(str(exc)) from exc
        self._logger.info(
            "Summarization using provider=%s meeting_type=%s",
            provider.__class__.__name__,
            meeting_type,
        )
        try:
            completion = provider.complete(
                transcript,
                system_prompt=system_prompt,
                max_tokens=SUMMARY_MAX_TOKENS,
                temperature=0.0,
                response_schema=SUMMARY_SCHEMA,
            )
        except GenerationFailedError:
            raise
        except Exception as exc:
            raise GenerationFailedError(str(exc)) from exc
        text = check_completion(completion)
        parsed = BaseLLMProvider.parse_json_object(text)
        try:
            return MeetingSummary.model_validate(parsed)
        except ValidationError as exc:
            raise GenerationFailedError(
                f"Summary JSON did not match schema: {exc.error_count()} errors",
                FailureCause.MALFORMED_RESPONSE,
            ) from exc

    async def summarize(self, transcript: str, meeting_type: str = "discovery") -> MeetingSummary:
        if not transcript.strip():
            raise GenerationFailedError("Transcript is empty", FailureCause.EMPTY_TRANSCRIPT)
        try:
            result = await asyncio.to_thread(self._summarize_sync, transcript, meeting_type)
        except GenerationFailedError as exc:
            self._logger.error("Summary generation failed cause=%s: %s", exc.cause.value, exc)
            raise
        self._logger.info(
            "Summary generated: %d chars, %d adviser actions, %d client actions",
            len(result.meeting_summary),
            len(result.adviser_actions),
            len(result.client_actions),
        )
        return result
