"""Agent loop: the core conversation orchestration engine."""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from loguru import logger

from clario.agent.context import ContextBuilder
from clario.agent.tools.base import ToolArgumentError, UnknownToolError
from clario.agent.tools.registry import ToolRegistry
from clario.providers.base import LLMProvider, TextOutcome, ToolCallRequest
from clario.session.memory import DEFAULT_HISTORY_LIMIT, ChatMemory
from clario.session.models import Visibility

MAX_ITERATIONS = 5
BUDGET_EXHAUSTED_MESSAGE = "I couldn't complete that in time. Please try again."
COMPACT_COMMAND = "/compact"


def _result_json(result: Any) -> str:
    return json.dumps(result, ensure_ascii=False, default=str)


def dedupe_tool_calls(calls: tuple[ToolCallRequest, ...] | list[ToolCallRequest]) -> list[ToolCallRequest]:
    """Keep the first call for each id, preserving order."""
    seen: set[str] = set()
    unique: list[ToolCallRequest] = []
    for call in calls:
        if call.id in seen:
            logger.warning(f"Skipping duplicate tool call id: {call.id} ({call.name})")
            continue
        seen.add(call.id)
        unique.append(call)
    return unique


class AgentLoop:
    """
    Turns one inbound user message into a reply.

    1. Persists the user message and loads recent history
    2. Asks the model, which answers or requests tool calls
    3. Executes requested tools for the calling user and records results
    4. Repeats until a reply arrives or the iteration budget is spent

    Messages from the same user are processed one at a time.
    """

    def __init__(
        self,
        provider: LLMProvider,
        memory: ChatMemory,
        tools: ToolRegistry,
        context: ContextBuilder,
        max_iterations: int = MAX_ITERATIONS,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self.provider = provider
        self.memory = memory
        self.tools = tools
        self.context = context
        self.max_iterations = max_iterations
        self.history_limit = history_limit
        self._user_locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}
        self._locks_loop: asyncio.AbstractEventLoop | None = None

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        # Locks belong to one event loop; sync callers may run several in turn.
        running = asyncio.get_running_loop()
        if running is not self._locks_loop:
            self._user_locks.clear()
            self._lock_holders.clear()
            self._locks_loop = running
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        return lock

    @asynccontextmanager
    async def _user_turn(self, user_id: str) -> AsyncIterator[None]:
        """Hold the user's lock; forget it once no task holds or awaits it."""
        lock = self._lock_for(user_id)
        self._lock_holders[user_id] = self._lock_holders.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_holders.get(user_id, 1) - 1
            if remaining > 0:
                self._lock_holders[user_id] = remaining
            else:
                self._lock_holders.pop(user_id, None)
                if self._user_locks.get(user_id) is lock:
                    del self._user_locks[user_id]

    async def handle_inbound(self, user_id: str, text: str) -> str:
        """Entry point for channel messages; recognizes the /compact command."""
        if (text or "").strip().lower() == COMPACT_COMMAND:
            return await self.compact(user_id)
        return await self.process_message(user_id, text)

    async def compact(self, user_id: str) -> str:
        async with self._user_turn(user_id):
            return await self.memory.compact(user_id, self.provider)

    async def process_message(self, user_id: str, text: str) -> str:
        async with self._user_turn(user_id):
            return await self._process_message(user_id, text)

    async def _process_message(self, user_id: str, text: str) -> str:
        preview = text[:80] + "..." if len(text) > 80 else text
        logger.info(f"Processing message from {user_id}: {preview}")

        self.memory.save_user_message(user_id, text)
        history = self.memory.get_context(user_id, self.history_limit)
        summaries, messages = self.context.split_system(history)
        instructions = self.context.build_instructions(user_id, summaries)
        tool_definitions = self.tools.get_definitions()

        iteration = 0
        while iteration < self.max_iterations:
            outcome = await self.provider.chat_with_tools(instructions, messages, tool_definitions)

            if isinstance(outcome, TextOutcome):
                self.memory.save_assistant_message(user_id, outcome.text, Visibility.USER_FACING)
                logger.info(f"Reply to {user_id} after {iteration} tool round(s)")
                return outcome.text

            calls = dedupe_tool_calls(outcome.calls)
            tool_call_dicts = [call.to_openai() for call in calls]
            messages = self.context.add_assistant_message(messages, "", tool_call_dicts)
            self.memory.save_tool_calls(user_id, tool_call_dicts)

            for call in calls:
                result = await self._execute_tool(user_id, call)
                messages = self.context.add_tool_result(messages, call.id, result)
                self.memory.save_tool_result(user_id, call.id, result)

            iteration += 1

        logger.warning(f"Iteration budget ({self.max_iterations}) exhausted for {user_id}")
        self.memory.save_assistant_message(user_id, BUDGET_EXHAUSTED_MESSAGE, Visibility.USER_FACING)
        return BUDGET_EXHAUSTED_MESSAGE

    async def _execute_tool(self, user_id: str, call: ToolCallRequest) -> str:
        """Run one call as `user_id`; failures become error payloads."""
        arguments = dict(call.arguments)
        arguments["userId"] = user_id
        logger.debug(f"Executing tool: {call.name} with arguments: {_result_json(arguments)}")
        try:
            result = await self.tools.invoke(call.name, arguments)
        except ToolArgumentError as e:
            logger.warning(f"Tool {call.name} argument error: {e}")
            result = {"error": "validation_error", "message": str(e)}
        except UnknownToolError as e:
            logger.warning(str(e))
            result = {"error": "unknown_tool", "message": str(e)}
        except Exception as e:
            logger.error(f"Tool {call.name} failed: {e}")
            result = {"error": "tool_failed", "message": f"Could not run {call.name}: {e}"}
        return _result_json(result)
