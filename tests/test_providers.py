"""Tests for the Gemini and Anthropic HTTP providers."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from fabric_server.services.llm import (
    AnthropicProvider,
    FinishReason,
    GeminiProvider,
    GenerationFailedError,
)
from fabric_server.services.llm.anthropic_provider import STRUCTURED_OUTPUTS_BETA
from fabric_server.services.llm.base import SUMMARY_SCHEMA


def _response(status_code: int = 200, data: dict | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = data or {}
    response.text = str(data)
    return response


def _gemini_data(finish_reason: str | None = "STOP", text: str = "hello") -> dict:
    candidate = {"content": {"parts": [{"text": text}]}}
    if finish_reason is not None:
        candidate["finishReason"] = finish_reason
    return {"candidates": [candidate]}


class TestGeminiProvider:
    def test_request_shape(self):
        provider = GeminiProvider(api_key="g-key", model="gemini-2.5-flash")
        with patch("fabric_server.services.llm.gemini_provider.requests.post") as mock_post:
            mock_post.return_value = _response(data=_gemini_data(text=' {"a": 1} '))

            completion = provider.complete(
                "transcript text",
                system_prompt="be brief",
                max_tokens=2048,
                response_schema=SUMMARY_SCHEMA,
            )

        assert completion.text == '{"a": 1}'
        assert completion.finish_reason is FinishReason.STOP

        url = mock_post.call_args.args[0]
        kwargs = mock_post.call_args.kwargs
        assert url == (
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"
        )
        assert kwargs["headers"]["x-goog-api-key"] == "g-key"
        payload = kwargs["json"]
        assert payload["contents"][0]["parts"][0]["text"] == "transcript text"
        assert payload["systemInstruction"] == {"parts": [{"text": "be brief"}]}
        config = payload["generationConfig"]
        assert config["maxOutputTokens"] == 2048
        assert config["temperature"] == 0.0
        assert config["responseMimeType"] == "application/json"
        assert "additionalProperties" not in config["responseSchema"]
        assert config["responseSchema"]["required"] == SUMMARY_SCHEMA["required"]

    def test_plain_text_request_has_no_schema(self):
        provider = GeminiProvider(api_key="g-key", model="models/gemini-2.5-flash")
        with patch("fabric_server.services.llm.gemini_provider.requests.post") as mock_post:
            mock_post.return_value = _response(data=_gemini_data())
            provider.complete("prompt")

        payload = mock_post.call_args.kwargs["json"]
        assert "responseSchema" not in payload["generationConfig"]
        assert "systemInstruction" not in payload
        assert "/models/gemini-2.5-flash:" in mock_post.call_args.args[0]

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("STOP", FinishReason.STOP),
            (None, FinishReason.STOP),
            ("SAFETY", FinishReason.SAFETY),
            ("PROHIBITED_CONTENT", FinishReason.SAFETY),
            ("MAX_TOKENS", FinishReason.MAX_TOKENS),
            ("RECITATION", FinishReason.OTHER),
        ],
    )
    def test_finish_reason_mapping(self, raw, expected):
        provider = GeminiProvider(api_key="g-key", model="gemini-2.5-flash")
        with patch("fabric_server.services.llm.gemini_provider.requests.post") as mock_post:
            mock_post.return_value = _response(data=_gemini_data(raw))
            completion = provider.complete("prompt")

        assert completion.finish_reason is expected
        assert completion.raw_reason == raw

    def test_blocked_prompt(self):
        provider = GeminiProvider(api_key="g-key", model="gemini-2.5-flash")
        with patch("fabric_server.services.llm.gemini_provider.requests.post") as mock_post:
            mock_post.return_value = _response(data={"promptFeedback": {"blockReason": "SAFETY"}})
            completion = provider.complete("prompt")

        assert completion.finish_reason is FinishReason.SAFETY
        assert completion.text == ""

    def test_http_error(self):
        provider = GeminiProvider(api_key="g-key", model="gemini-2.5-flash")
        with patch("fabric_server.services.llm.gemini_provider.requests.post") as mock_post:
            mock_post.return_value = _response(status_code=429, data={"error": "quota"})
            with pytest.raises(GenerationFailedError, match="429"):
                provider.complete("prompt")

    def test_transport_error(self):
        provider = GeminiProvider(api_key="g-key", model="gemini-2.5-flash")
        with patch("fabric_server.services.llm.gemini_provider.requests.post") as mock_post:
            mock_post.side_effect = requests.ConnectionError("refused")
            with pytest.raises(GenerationFailedError):
                provider.complete("prompt")


class TestAnthropicProvider:
    def test_structured_request(self):
        provider = AnthropicProvider(api_key="a-key", model="claude-sonnet-4-5-20250929")
        data = {
            "content": [
                {"type": "text", "text": '{"meeting_summary": '},
                {"type": "tool_use", "id": "ignored"},
                {"type": "text", "text": '"x"}'},
            ],
            "stop_reason": "end_turn",
        }
        with patch("fabric_server.services.llm.anthropic_provider.requests.post") as mock_post:
            mock_post.return_value = _response(data=data)

            completion = provider.complete(
                "transcript", system_prompt="system", max_tokens=2048, response_schema=SUMMARY_SCHEMA
            )

        assert completion.text == '{"meeting_summary": "x"}'
        assert completion.finish_reason is FinishReason.STOP

        assert mock_post.call_args.args[0] == "https://api.anthropic.com/v1/messages"
        headers = mock_post.call_args.kwargs["headers"]
        assert headers["x-api-key"] == "a-key"
        assert headers["anthropic-version"] == "2023-06-01"
        assert headers["anthropic-beta"] == STRUCTURED_OUTPUTS_BETA
        payload = mock_post.call_args.kwargs["json"]
        assert payload["system"] == "system"
        assert payload["max_tokens"] == 2048
        assert payload["messages"] == [{"role": "user", "content": "transcript"}]
        assert payload["output_format"] == {"type": "json_schema", "schema": SUMMARY_SCHEMA}

    def test_plain_request_has_no_beta_header(self):
        provider = AnthropicProvider(api_key="a-key", model="claude-sonnet-4-5-20250929")
        data = {"content": [{"type": "text", "text": "ok"}], "stop_reason": "end_turn"}
        with patch("fabric_server.services.llm.anthropic_provider.requests.post") as mock_post:
            mock_post.return_value = _response(data=data)
            provider.complete("prompt")

        assert "anthropic-beta" not in mock_post.call_args.kwargs["headers"]
        assert "output_format" not in mock_post.call_args.kwargs["json"]

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("end_turn", FinishReason.STOP),
            ("stop_sequence", FinishReason.STOP),
            ("max_tokens", FinishReason.MAX_TOKENS),
            ("refusal", FinishReason.SAFETY),
            ("pause_turn", FinishReason.OTHER),
        ],
    )
    def test_stop_reason_mapping(self, raw, expected):
        provider = AnthropicProvider(api_key="a-key", model="claude-sonnet-4-5-20250929")
        data = {"content": [{"type": "text", "text": "ok"}], "stop_reason": raw}
        with patch("fabric_server.services.llm.anthropic_provider.requests.post") as mock_post:
            mock_post.return_value = _response(data=data)
            completion = provider.complete("prompt")

        assert completion.finish_reason is expected

    def test_http_error(self):
        provider = AnthropicProvider(api_key="a-key", model="claude-sonnet-4-5-20250929")
        with patch("fabric_server.services.llm.anthropic_provider.requests.post") as mock_post:
            mock_post.return_value = _response(status_code=401, data={"error": "bad key"})
            with pytest.raises(GenerationFailedError, match="401"):
                provider.complete("prompt")
