from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LLMProviderError(RuntimeError):
    pass


class FinishReason(Enum):
    STOP = "stop"
    SAFETY = "safety"
    MAX_TOKENS = "max_tokens"
    OTHER = "other"


class FailureCause(Enum):
    SAFETY_BLOCKED = "safety_blocked"
    TOKEN_LIMIT_REACHED = "token_limit_reached"
    UNEXPECTED_TERMINATION = "unexpected_termination"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    PROMPT_UNAVAILABLE = "prompt_unavailable"
    EMPTY_TRANSCRIPT = "empty_transcript"
    PROVIDER_ERROR = "provider_error"


class GenerationFailedError(LLMProviderError):
    """A completion could not be turned into a usable result.

    ``cause`` tells callers why; the HTTP layer only ever shows
    ``public_message``.
    """

    public_message = "Failed to generate meeting summary. Please try again."

    def __init__(self, message: str, cause: FailureCause = FailureCause.PROVIDER_ERROR) -> None:
        super().__init__(message)
        self.cause = cause


class SafetyBlockedError(GenerationFailedError):
    def __init__(self, message: str = "Response blocked due to safety guidelines") -> None:
        super().__init__(message, FailureCause.SAFETY_BLOCKED)


class TokenLimitReachedError(GenerationFailedError):
    def __init__(self, message: str = "Generation incomplete - token limit reached") -> None:
        super().__init__(message, FailureCause.TOKEN_LIMIT_REACHED)


class UnexpectedTerminationError(GenerationFailedError):
    def __init__(self, message: str = "Unexpected finish reason") -> None:
        super().__init__(message, FailureCause.UNEXPECTED_TERMINATION)


class EmptyResponseError(GenerationFailedError):
    def __init__(self, message: str = "Empty response from AI provider") -> None:
        super().__init__(message, FailureCause.EMPTY_RESPONSE)


@dataclass
class Completion:
    text: str
    finish_reason: FinishReason
    raw_reason: Optional[str] = None


def check_completion(completion: Completion) -> str:
    """Return the completion text, or raise the error matching how it ended."""
    reason = completion.finish_reason
    if reason is FinishReason.SAFETY:
        raise SafetyBlockedError(f"Response blocked (finish_reason={completion.raw_reason})")
    if reason is FinishReason.MAX_TOKENS:
        raise TokenLimitReachedError()
    if reason is not FinishReason.STOP:
        raise UnexpectedTerminationError(
            f"Unexpected finish reason: {completion.raw_reason}"
        )
    if not completion.text.strip():
        raise EmptyResponseError()
    return completion.text


# JSON schema for the structured meeting summary.
SUMMARY_SCHEMA = {
    "type": "object",
    "properties": {
        "meeting_summary": {
            "type": "string",
            "description": "A concise summary of the meeting with key discussion points",
        },
        "adviser_actions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Action items assigned to the financial adviser",
        },
        "client_actions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Action items assigned to the client",
        },
    },
    "required": ["meeting_summary", "adviser_actions", "client_actions"],
    "additionalProperties": False,
}


class LLMProvider(ABC):
    name = "base"

    @abstractmethod
    def complete(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        response_schema: Optional[dict] = None,
    ) -> Completion:
        """Send one single-turn request and return the normalized completion."""
        raise NotImplementedError


class BaseLLMProvider(LLMProvider):
    """Shared plumbing for HTTP providers.

    Subclasses only need to implement complete() for their specific API.
    """

    def __init__(self, logger_name: str = "fabric.llm", timeout: int = 120) -> None:
        self._logger = logging.getLogger(logger_name)
        self._timeout = timeout

    @staticmethod
    def _strip_markdown_code_blocks(text: str) -> str:
        """Remove markdown code block wrappers from text."""
        text = text.strip()
        if not text.startswith("```"):
            return text

        lines = text.split("\n")
        json_lines = []
        for line in lines:
            if line.startswith("```"):
                continue
            json_lines.append(line)
        return "\n".join(json_lines).strip()

    @classmethod
    def parse_json_object(cls, text: str) -> dict:
        cleaned = cls._strip_markdown_code_blocks(text)
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise GenerationFailedError(
                f"Non-JSON response: {cleaned[:200]}", FailureCause.MALFORMED_RESPONSE
            ) from exc
        if not isinstance(parsed, dict):
            raise GenerationFailedError(
                f"Expected JSON object, got {type(parsed).__name__}",
                FailureCause.MALFORMED_RESPONSE,
            )
        return parsed
