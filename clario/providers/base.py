"""Base LLM provider interface."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

UNAVAILABLE_MESSAGE = "Sorry, I had trouble processing that. Please try again."


@dataclass(frozen=True, slots=True)
class ToolCallRequest:
    """A tool call requested by the LLM."""
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def to_openai(self) -> dict[str, Any]:
        """Chat-completions shaped entry for an assistant tool_calls list."""
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.name,
                "arguments": json.dumps(self.arguments, ensure_ascii=False),
            },
        }


@dataclass(frozen=True, slots=True)
class TextOutcome:
    """Final natural-language reply."""
    text: str


@dataclass(frozen=True, slots=True)
class ToolCallsOutcome:
    """One or more tool calls to execute before asking the model again."""
    calls: tuple[ToolCallRequest, ...]


ModelOutcome = TextOutcome | ToolCallsOutcome


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Implementations never raise for transport or parse failures: they
    return the documented fallback instead.
    """

    @abstractmethod
    async def chat_with_tools(
        self,
        instructions: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
    ) -> ModelOutcome:
        """
        Send the conversation and classify the reply.

        Args:
            instructions: System instructions (persona, time context, summaries).
            messages: Chat-shaped turns, oldest first.
            tools: Tool definitions the model may call.

        Returns:
            TextOutcome or ToolCallsOutcome.
        """
        pass

    @abstractmethod
    async def chat(self, system_prompt: str, user_message: str) -> str:
        """Single-shot completion. Returns `user_message` unchanged on failure."""
        pass

    @abstractmethod
    async def format_tool_result(
        self,
        persona: str,
        user_message: str,
        tool_name: str,
        result: Any,
    ) -> str:
        """Turn one raw tool result into a short friendly message."""
        pass
