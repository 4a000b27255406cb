from __future__ import annotations

from typing import Optional

import requests

from fabric_server.services.llm.base import (
    BaseLLMProvider,
    Completion,
    FinishReason,
    GenerationFailedError,
)

STRUCTURED_OUTPUTS_BETA = "structured-outputs-2025-11-13"

_STOP_REASONS = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "max_tokens": FinishReason.MAX_TOKENS,
    "refusal": FinishReason.SAFETY,
}


class AnthropicProvider(BaseLLMProvider):
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.anthropic.com",
        timeout: int = 120,
    ) -> None:
        super().__init__(logger_name="fabric.llm.anthropic", timeout=timeout)
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")

    def complete(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        response_schema: Optional[dict] = None,
    ) -> Completion:
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }
        payload: dict = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            payload["system"] = system_prompt
        if response_schema is not None:
            headers["anthropic-beta"] = STRUCTURED_OUTPUTS_BETA
            payload["output_format"] = {"type": "json_schema", "schema": response_schema}

        try:
            response = requests.post(
                f"{self._base_url}/v1/messages",
                headers=headers,
                json=payload,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise GenerationFailedError("Failed to reach Anthropic") from exc

        if response.status_code != 200:
            self._logger.error("Anthropic error: %s - %s", response.status_code, response.text[:500])
            raise GenerationFailedError(f"Anthropic error: {response.status_code}")

        data = response.json()
        content_blocks = data.get("content") or []
        text = "".join(
            str(block.get("text", ""))
            for block in content_blocks
            if block.get("type") == "text"
        )
        raw_reason = data.get("stop_reason")
        reason = _STOP_REASONS.get(raw_reason, FinishReason.OTHER)

        self._logger.debug(
            "Anthropic completion model=%s stop=%s chars=%d", self._model, raw_reason, len(text)
        )
        return Completion(text=text.strip(), finish_reason=reason, raw_reason=raw_reason)
