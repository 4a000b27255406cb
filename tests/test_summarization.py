"""Tests for SummarizationService and provider selection."""

import json
import os

import pytest

from fabric_server.config import Settings
from fabric_server.context import AppContext
from fabric_server.services.llm import (
    AnthropicProvider,
    Completion,
    EmptyResponseError,
    FailureCause,
    FinishReason,
    GeminiProvider,
    GenerationFailedError,
    LLMProviderError,
    SafetyBlockedError,
    TokenLimitReachedError,
    UnexpectedTerminationError,
)
from fabric_server.services.summarization import SummarizationService, build_provider
from tests.fakes import SUMMARY_PAYLOAD, FakeProvider, stop

TRANSCRIPT = "Adviser: How are you?\nClient: Ready to plan for retirement."


@pytest.fixture
def prompts_dir(tmp_path) -> str:
    return AppContext(base_dir=str(tmp_path)).prompts_dir


def _service(prompts_dir: str, provider: FakeProvider) -> SummarizationService:
    return SummarizationService(prompts_dir, provider=provider)


def _read(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


class TestSummarize:
    @pytest.mark.asyncio
    async def test_returns_structured_summary(self, prompts_dir, fake_provider):
        service = _service(prompts_dir, fake_provider)

        summary = await service.summarize(TRANSCRIPT, "discovery")

        assert summary.meeting_summary == SUMMARY_PAYLOAD["meeting_summary"]
        assert summary.adviser_actions == SUMMARY_PAYLOAD["adviser_actions"]
        assert summary.client_actions == SUMMARY_PAYLOAD["client_actions"]

        call = fake_provider.calls[0]
        assert call["prompt"] == TRANSCRIPT
        assert call["max_tokens"] == 2048
        assert call["temperature"] == 0.0
        assert call["response_schema"]["required"] == [
            "meeting_summary",
            "adviser_actions",
            "client_actions",
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "meeting_type,prompt_file",
        [
            ("discovery", "meeting_summary_discovery.txt"),
            ("Discovery", "meeting_summary_discovery.txt"),
            ("regular", "meeting_summary_regular.txt"),
            ("annual", "meeting_summary_regular.txt"),
            ("quarterly check-in", "meeting_summary_regular.txt"),
        ],
    )
    async def test_prompt_selected_by_meeting_type(
        self, prompts_dir, fake_provider, meeting_type, prompt_file
    ):
        service = _service(prompts_dir, fake_provider)

        await service.summarize(TRANSCRIPT, meeting_type)

        expected = _read(os.path.join(prompts_dir, prompt_file))
        assert fake_provider.calls[0]["system_prompt"] == expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "finish_reason,error_cls,cause",
        [
            (FinishReason.SAFETY, SafetyBlockedError, FailureCause.SAFETY_BLOCKED),
            (FinishReason.MAX_TOKENS, TokenLimitReachedError, FailureCause.TOKEN_LIMIT_REACHED),
            (FinishReason.OTHER, UnexpectedTerminationError, FailureCause.UNEXPECTED_TERMINATION),
        ],
    )
    async def test_abnormal_finish_reason_raises(
        self, prompts_dir, finish_reason, error_cls, cause
    ):
        provider = FakeProvider(
            lambda **_: Completion(
                text=json.dumps(SUMMARY_PAYLOAD), finish_reason=finish_reason, raw_reason="X"
            )
        )
        service = _service(prompts_dir, provider)

        with pytest.raises(error_cls) as exc_info:
            await service.summarize(TRANSCRIPT)

        assert exc_info.value.cause is cause
        assert exc_info.value.public_message == (
            "Failed to generate meeting summary. Please try again."
        )

    @pytest.mark.asyncio
    async def test_empty_text_raises_empty_response(self, prompts_dir):
        service = _service(prompts_dir, FakeProvider(lambda **_: stop("   ")))

        with pytest.raises(EmptyResponseError):
            await service.summarize(TRANSCRIPT)

    @pytest.mark.asyncio
    async def test_non_json_text_is_malformed(self, prompts_dir):
        service = _service(prompts_dir, FakeProvider(lambda **_: stop("Here is your summary!")))

        with pytest.raises(GenerationFailedError) as exc_info:
            await service.summarize(TRANSCRIPT)

        assert exc_info.value.cause is FailureCause.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_missing_field_is_malformed(self, prompts_dir):
        partial = {"meeting_summary": "Short meeting.", "adviser_actions": []}
        service = _service(prompts_dir, FakeProvider(lambda **_: stop(json.dumps(partial))))

        with pytest.raises(GenerationFailedError) as exc_info:
            await service.summarize(TRANSCRIPT)

        assert exc_info.value.cause is FailureCause.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_code_fenced_json_is_accepted(self, prompts_dir):
        fenced = "```json\n" + json.dumps(SUMMARY_PAYLOAD) + "\n```"
        service = _service(prompts_dir, FakeProvider(lambda **_: stop(fenced)))

        summary = await service.summarize(TRANSCRIPT)

        assert len(summary.adviser_actions) == 3

    @pytest.mark.asyncio
    async def test_empty_transcript_never_reaches_provider(self, prompts_dir, fake_provider):
        service = _service(prompts_dir, fake_provider)

        with pytest.raises(GenerationFailedError) as exc_info:
            await service.summarize("  \n ")

        assert exc_info.value.cause is FailureCause.EMPTY_TRANSCRIPT
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_missing_prompt_file(self, tmp_path, fake_provider):
        service = _service(str(tmp_path / "no-prompts"), fake_provider)

        with pytest.raises(GenerationFailedError) as exc_info:
            await service.summarize(TRANSCRIPT)

        assert exc_info.value.cause is FailureCause.PROMPT_UNAVAILABLE
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_provider_exception_is_wrapped(self, prompts_dir):
        def explode(**_):
            raise RuntimeError("connection reset")

        service = _service(prompts_dir, FakeProvider(explode))

        with pytest.raises(GenerationFailedError) as exc_info:
            await service.summarize(TRANSCRIPT)

        assert exc_info.value.cause is FailureCause.PROVIDER_ERROR

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_generation(self, prompts_dir):
        service = SummarizationService(prompts_dir, Settings(ai_provider="gemini"))

        with pytest.raises(GenerationFailedError, match="GEMINI_API_KEY"):
            await service.summarize(TRANSCRIPT)


class TestBuildProvider:
    def test_gemini(self):
        provider = build_provider(Settings(ai_provider="gemini", gemini_api_key="g-key"))
        assert isinstance(provider, GeminiProvider)

    def test_anthropic(self):
        provider = build_provider(Settings(ai_provider="anthropic", anthropic_api_key="a-key"))
        assert isinstance(provider, AnthropicProvider)

    def test_missing_key(self):
        with pytest.raises(LLMProviderError, match="ANTHROPIC_API_KEY"):
            build_provider(Settings(ai_provider="anthropic"))

    def test_unknown_provider(self):
        with pytest.raises(LLMProviderError, match="Unknown provider"):
            build_provider(Settings(ai_provider="mistral", gemini_api_key="g-key"))
