from fabric_server.services.llm.base import (
    Completion,
    EmptyResponseError,
    FailureCause,
    FinishReason,
    GenerationFailedError,
    LLMProvider,
    LLMProviderError,
    SafetyBlockedError,
    TokenLimitReachedError,
    UnexpectedTerminationError,
)
from fabric_server.services.llm.anthropic_provider import AnthropicProvider
from fabric_server.services.llm.gemini_provider import GeminiProvider

__all__ = [
    "Completion",
    "EmptyResponseError",
    "FailureCause",
    "FinishReason",
    "GenerationFailedError",
    "LLMProvider",
    "LLMProviderError",
    "SafetyBlockedError",
    "TokenLimitReachedError",
    "UnexpectedTerminationError",
    "AnthropicProvider",
    "GeminiProvider",
]
