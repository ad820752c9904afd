"""LLM provider abstraction module."""

from clario.providers.base import (
    UNAVAILABLE_MESSAGE,
    LLMProvider,
    ModelOutcome,
    TextOutcome,
    ToolCallRequest,
    ToolCallsOutcome,
)
from clario.providers.factory import build_provider
from clario.providers.responses import ResponsesProvider

__all__ = [
    "LLMProvider",
    "ModelOutcome",
    "ResponsesProvider",
    "TextOutcome",
    "ToolCallRequest",
    "ToolCallsOutcome",
    "UNAVAILABLE_MESSAGE",
    "build_provider",
]
