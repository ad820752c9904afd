"""Context builder for assembling model instructions and turns."""

from datetime import datetime, timezone
from typing import Any

from clario.services.profiles import ProfileService

TIME_CONTEXT = (
    "\n\n--- Current time (use this to resolve relative times like 'tomorrow at 3pm', "
    "'next Friday', 'in 2 hours') ---\n"
    "Current date and time in ISO-8601 (UTC): {now}\n"
    "Always output dueTime and reminderTime as full ISO-8601 timestamps "
    "(e.g. 2025-02-24T15:00:00Z). Never use placeholders or incomplete values."
)

TOOL_RESULT_RULE = (
    "\n\nAfter receiving any tool result, respond to the user in natural language. "
    "Do not call the same tool again without a new explicit user request."
)

SUMMARY_HEADING = "\n\n--- Conversation summary ---\n"


class ContextBuilder:
    """
    Builds the instructions and turn list for one model call.

    Instructions carry the user's persona, the current UTC time and the
    tool-result rule. Compaction summaries stored as system turns are
    folded into the instructions instead of being sent as turns.
    """

    def __init__(self, profiles: ProfileService):
        self.profiles = profiles

    def build_instructions(
        self,
        user_id: str,
        summaries: list[str] | None = None,
        now: datetime | None = None,
    ) -> str:
        current = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        parts = [self.profiles.system_prompt(user_id)]
        parts.append(TIME_CONTEXT.format(now=current.isoformat().replace("+00:00", "Z")))
        parts.append(TOOL_RESULT_RULE)
        notes = [s.strip() for s in summaries or [] if s and s.strip()]
        if notes:
            parts.append(SUMMARY_HEADING + "\n\n".join(notes))
        return "".join(parts)

    @staticmethod
    def split_system(messages: list[dict[str, Any]]) -> tuple[list[str], list[dict[str, Any]]]:
        """Separate system turns (summaries) from conversational turns."""
        summaries: list[str] = []
        turns: list[dict[str, Any]] = []
        for message in messages:
            if message.get("role") == "system":
                summaries.append(str(message.get("content") or ""))
            else:
                turns.append(message)
        return summaries, turns

    def add_assistant_message(
        self,
        messages: list[dict[str, Any]],
        content: str | None,
        tool_calls: list[dict[str, Any]] | None = None,
    ) -> list[dict[str, Any]]:
        msg: dict[str, Any] = {"role": "assistant", "content": content or ""}
        if tool_calls:
            msg["tool_calls"] = tool_calls
        messages.append(msg)
        return messages

    def add_tool_result(
        self,
        messages: list[dict[str, Any]],
        tool_call_id: str,
        result: str,
    ) -> list[dict[str, Any]]:
        messages.append({
            "role": "tool",
            "content": result,
            "tool_call_id": tool_call_id,
        })
        return messages
