"""Gemini LLM provider using Google's Generative Language API."""
from __future__ import annotations

from typing import Optional

import requests

from fabric_server.services.llm.base import (
    BaseLLMProvider,
    Completion,
    FinishReason,
    GenerationFailedError,
)

_SAFETY_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}


def _gemini_schema(schema: dict) -> dict:
    """Drop JSON-schema keywords the responseSchema subset rejects."""
    result: dict = {}
    for key, value in schema.items():
        if key == "additionalProperties":
            continue
        if key == "properties":
            value = {name: _gemini_schema(sub) for name, sub in value.items()}
        elif isinstance(value, dict):
            value = _gemini_schema(value)
        result[key] = value
    return result


class GeminiProvider(BaseLLMProvider):
    """LLM provider for Google Gemini models."""

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout: int = 120,
    ) -> None:
        super().__init__(logger_name="fabric.llm.gemini", timeout=timeout)
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")

    def _build_payload(
        self,
        prompt: str,
        system_prompt: Optional[str],
        max_tokens: int,
        temperature: float,
        response_schema: Optional[dict],
    ) -> dict:
        generation_config: dict = {
            "temperature": temperature,
            "maxOutputTokens": max_tokens,
        }
        if response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = _gemini_schema(response_schema)

        payload: dict = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        return payload

    def complete(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        response_schema: Optional[dict] = None,
    ) -> Completion:
        # Handle model name format (may include "models/" prefix)
        model_name = self._model
        if not model_name.startswith("models/"):
            model_name = f"models/{model_name}"

        url = f"{self._base_url}/v1beta/{model_name}:generateContent"
        payload = self._build_payload(
            prompt, system_prompt, max_tokens, temperature, response_schema
        )

        try:
            response = requests.post(
                url,
                headers={
                    "Content-Type": "application/json",
                    "x-goog-api-key": self._api_key,
                },
                json=payload,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise GenerationFailedError("Failed to reach Gemini API") from exc

        if response.status_code != 200:
            self._logger.error("Gemini error: %s - %s", response.status_code, response.text[:500])
            raise GenerationFailedError(f"Gemini error: {response.status_code}")

        data = response.json()
        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                self._logger.warning("Gemini prompt blocked: %s", block_reason)
                return Completion(text="", finish_reason=FinishReason.SAFETY, raw_reason=block_reason)
            raise GenerationFailedError("Gemini response missing candidates")

        candidate = candidates[0]
        raw_reason = candidate.get("finishReason")
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(str(part.get("text", "")) for part in parts)

        if raw_reason in (None, "STOP"):
            reason = FinishReason.STOP
        elif raw_reason in _SAFETY_REASONS:
            reason = FinishReason.SAFETY
        elif raw_reason == "MAX_TOKENS":
            reason = FinishReason.MAX_TOKENS
        else:
            reason = FinishReason.OTHER

        self._logger.debug(
            "Gemini completion model=%s finish=%s chars=%d", self._model, raw_reason, len(text)
        )
        return Completion(text=text.strip(), finish_reason=reason, raw_reason=raw_reason)
