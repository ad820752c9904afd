"""Conversation memory: writes turns and rebuilds model context from the log."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from loguru import logger

from clario.session.models import Role, StoredMessage, Visibility
from clario.session.store import HistoryStore

if TYPE_CHECKING:
    from clario.providers.base import LLMProvider

DEFAULT_HISTORY_LIMIT = 50
LEGACY_TOOL_CALL_ID = "legacy"
NOTHING_TO_COMPACT = "Nothing to compact."
COMPACTED = "Context compacted successfully."

COMPACTION_PROMPT = (
    "Summarize this conversation history into a highly concise context block. "
    "Retain key facts, pending tasks, and user preferences. "
    "Drop pleasantries and filler. Output only the summary, nothing else."
)


def _assistant_turn(content: str) -> dict[str, Any]:
    if not content.strip().startswith("{"):
        return {"role": "assistant", "content": content}
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        return {"role": "assistant", "content": content}
    tool_calls = parsed.get("tool_calls") if isinstance(parsed, dict) else None
    if isinstance(tool_calls, list) and tool_calls:
        return {
            "role": "assistant",
            "content": str(parsed.get("content") or ""),
            "tool_calls": tool_calls,
        }
    return {"role": "assistant", "content": content}


def _tool_turn(content: str) -> dict[str, Any]:
    legacy = {"role": "tool", "content": content, "tool_call_id": LEGACY_TOOL_CALL_ID}
    if not content.strip().startswith("{"):
        return legacy
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        return legacy
    if not isinstance(parsed, dict):
        return legacy
    call_id = parsed.get("tool_call_id")
    result = parsed.get("result")
    return {
        "role": "tool",
        "content": str(result) if result is not None else content,
        "tool_call_id": str(call_id) if call_id is not None else LEGACY_TOOL_CALL_ID,
    }


def to_context_message(message: StoredMessage) -> dict[str, Any]:
    """Rehydrate one stored row into a chat-shaped message dict."""
    if message.role == Role.USER:
        return {"role": "user", "content": message.content}
    if message.role == Role.SYSTEM:
        return {"role": "system", "content": message.content}
    if message.role == Role.TOOL:
        return _tool_turn(message.content)
    return _assistant_turn(message.content)


def _call_ids(message: dict[str, Any]) -> set[str]:
    return {
        str(call.get("id"))
        for call in message.get("tool_calls") or []
        if isinstance(call, dict) and call.get("id")
    }


def drop_partial_rounds(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Remove tool rounds the model could not correlate.

    Leading tool turns lost their assistant call turn to the window edge.
    An assistant call turn whose results do not all follow it (an interrupted
    round) is dropped together with the results it does have.
    """
    start = 0
    while start < len(messages) and messages[start]["role"] == "tool":
        start += 1
    if start:
        logger.debug(f"Dropping {start} tool turn(s) cut off by the history window")

    kept: list[dict[str, Any]] = []
    i = start
    while i < len(messages):
        message = messages[i]
        expected = _call_ids(message) if message["role"] == "assistant" else set()
        if not expected:
            kept.append(message)
            i += 1
            continue
        end = i + 1
        while end < len(messages) and messages[end]["role"] == "tool":
            end += 1
        answered = {str(m.get("tool_call_id")) for m in messages[i + 1:end]}
        if expected <= answered:
            kept.extend(messages[i:end])
        else:
            logger.warning(f"Dropping incomplete tool round: missing results for {sorted(expected - answered)}")
        i = end
    return kept


class ChatMemory:
    """Per-user conversation memory backed by the history log."""

    def __init__(self, store: HistoryStore, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.store = store
        self.history_limit = history_limit

    def save_user_message(self, user_id: str, content: str) -> StoredMessage:
        return self.store.append(user_id, Role.USER, content, Visibility.USER_FACING)

    def save_assistant_message(
        self,
        user_id: str,
        content: str,
        visibility: Visibility = Visibility.USER_FACING,
    ) -> StoredMessage:
        return self.store.append(user_id, Role.ASSISTANT, content, visibility)

    def save_tool_calls(self, user_id: str, tool_calls: list[dict[str, Any]]) -> StoredMessage:
        """Persist an assistant tool-call turn (INTERNAL)."""
        payload = json.dumps({"content": "", "tool_calls": tool_calls}, ensure_ascii=False)
        return self.store.append(user_id, Role.ASSISTANT, payload, Visibility.INTERNAL)

    def save_tool_result(self, user_id: str, tool_call_id: str, result: str) -> StoredMessage:
        """Persist a tool result (INTERNAL), keyed by the call id it answers."""
        payload = json.dumps(
            {"tool_call_id": tool_call_id, "result": result or ""},
            ensure_ascii=False,
        )
        return self.store.append(user_id, Role.TOOL, payload, Visibility.INTERNAL)

    def get_context(self, user_id: str, limit: int | None = None) -> list[dict[str, Any]]:
        """
        Recent history in model shape, oldest first, all visibilities.

        The window never starts or ends inside a tool round, and the newest
        compaction summary is kept even after it ages out of the window.
        """
        rows = self.store.recent(user_id, limit or self.history_limit)
        messages = drop_partial_rounds([to_context_message(row) for row in rows])
        if not any(row.role == Role.SYSTEM for row in rows):
            summary = self.store.latest(user_id, Role.SYSTEM)
            if summary is not None:
                messages.insert(0, to_context_message(summary))
        return messages

    def get_transcript(self, user_id: str, limit: int | None = None) -> list[StoredMessage]:
        """USER_FACING messages only, oldest first."""
        return self.store.recent(
            user_id,
            limit or self.history_limit,
            visibility=Visibility.USER_FACING,
        )

    async def compact(self, user_id: str, provider: LLMProvider) -> str:
        """
        Replace the user's whole history with one summary message.

        Returns a short status line for the user. An empty history is left
        untouched.
        """
        history = self.store.recent(user_id)
        if not history:
            logger.debug(f"No chat history to compact for user {user_id}")
            return NOTHING_TO_COMPACT

        raw_history = "\n".join(f"{m.role.value.upper()}: {m.content}" for m in history)
        logger.info(f"Compacting {len(history)} messages for user {user_id}")
        summary = await provider.chat(COMPACTION_PROMPT, raw_history)

        self.store.replace_with_summary(user_id, summary, up_to_id=history[-1].id)
        logger.info(f"Context compacted for user {user_id}")
        return COMPACTED
