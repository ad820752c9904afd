"""Embeddable Assistant API for Python applications."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from clario.agent.context import ContextBuilder
from clario.agent.loop import AgentLoop
from clario.agent.tools.registry import build_default_registry
from clario.config.loader import load_config
from clario.config.schema import Config
from clario.providers.base import LLMProvider
from clario.providers.factory import build_provider
from clario.services.people import PeopleService
from clario.services.profiles import ProfileService
from clario.services.tasks import TaskService
from clario.services.users import UserService
from clario.session.memory import ChatMemory
from clario.session.models import StoredMessage
from clario.session.store import HistoryStore
from clario.storage.database import Database


class Assistant:
    """Wires storage, services, tools and the agent loop for one workspace."""

    def __init__(
        self,
        config: Config | None = None,
        *,
        workspace: str | Path | None = None,
        provider: LLMProvider | None = None,
    ):
        self.config = config or load_config()
        if workspace is not None:
            self.config.agent.workspace = str(Path(workspace).expanduser())

        self.db = Database(self.config.database_path)
        self.tasks = TaskService(self.db)
        self.people = PeopleService(self.db)
        self.profiles = ProfileService(self.db)
        self.users = UserService(self.db)
        self.tools = build_default_registry(self.tasks, self.people)
        self.memory = ChatMemory(HistoryStore(self.db), self.config.agent.history_limit)
        self.provider = provider or build_provider(self.config)
        self.loop = AgentLoop(
            provider=self.provider,
            memory=self.memory,
            tools=self.tools,
            context=ContextBuilder(self.profiles),
            max_iterations=self.config.agent.max_iterations,
            history_limit=self.config.agent.history_limit,
        )

    async def ask(self, content: str, *, user_id: str) -> str:
        """Process one inbound message, including the /compact command."""
        return await self.loop.handle_inbound(user_id, content)

    def ask_sync(self, content: str, *, user_id: str) -> str:
        """Sync wrapper for ask()."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.ask(content, user_id=user_id))
        raise RuntimeError("ask_sync() cannot run inside an active event loop; use await ask(...).")

    async def compact(self, user_id: str) -> str:
        return await self.loop.compact(user_id)

    def transcript(self, user_id: str, limit: int | None = None) -> list[StoredMessage]:
        return self.memory.get_transcript(user_id, limit)

    async def run_tool(self, user_id: str, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Invoke one tool directly as `user_id`."""
        payload = dict(arguments)
        payload["userId"] = user_id
        return await self.tools.invoke(name, payload)
