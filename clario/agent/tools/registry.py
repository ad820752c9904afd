"""Tool registry: the fixed allow-list of operations the model may request."""

from types import MappingProxyType
from typing import Any, Iterable

from loguru import logger

from clario.agent.tools.base import Tool, UnknownToolError
from clario.agent.tools.people import AddPersonTool, RetrievePeopleTool
from clario.agent.tools.tasks import (
    CreateTaskTool,
    DeleteTaskTool,
    FindTasksTool,
    ListTasksTool,
    ResolveAndActOnTaskTool,
    UpdateTaskStatusTool,
)
from clario.services.people import PeopleService
from clario.services.tasks import TaskService

ALLOWED_TOOLS = frozenset({
    "create_task",
    "list_tasks",
    "find_tasks",
    "update_task_status",
    "delete_task",
    "resolve_and_act_on_task",
    "add_person",
    "retrieve_people",
})


class ToolRegistry:
    """
    Immutable name -> tool table.

    Built once at startup. Names outside the allow-list are refused at
    construction and at invocation; lookup ignores case.
    """

    def __init__(self, tools: Iterable[Tool]):
        table: dict[str, Tool] = {}
        for tool in tools:
            key = tool.name.strip().lower()
            if key not in ALLOWED_TOOLS:
                raise ValueError(f"Tool not on allow-list: {tool.name}")
            if key in table:
                raise ValueError(f"Duplicate tool: {tool.name}")
            table[key] = tool
        self._tools = MappingProxyType(table)

    def get(self, name: str) -> Tool | None:
        key = (name or "").strip().lower()
        if key not in ALLOWED_TOOLS:
            return None
        return self._tools.get(key)

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def get_definitions(self) -> list[dict[str, Any]]:
        """All tool definitions in Responses API format."""
        return [tool.to_schema() for tool in self._tools.values()]

    async def invoke(self, name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Decode arguments and run one tool.

        Raises:
            UnknownToolError: name is not registered or not allowed.
            ToolArgumentError: a required argument is missing or malformed.
        """
        tool = self.get(name)
        if tool is None:
            raise UnknownToolError(name)
        args = tool.parse_args(arguments or {})
        logger.debug(f"Invoking tool: {tool.name}")
        return await tool.execute(args)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return self.has(name)


def build_default_registry(tasks: TaskService, people: PeopleService) -> ToolRegistry:
    return ToolRegistry((
        CreateTaskTool(tasks),
        ListTasksTool(tasks),
        FindTasksTool(tasks),
        UpdateTaskStatusTool(tasks),
        DeleteTaskTool(tasks),
        ResolveAndActOnTaskTool(tasks),
        AddPersonTool(people),
        RetrievePeopleTool(people),
    ))
