import asyncio
from typing import Any

import pytest

from clario.agent.tools.base import Tool, ToolArgumentError, UnknownToolError
from clario.agent.tools.registry import ALLOWED_TOOLS, ToolRegistry, build_default_registry
from clario.services.people import PeopleService
from clario.services.tasks import TaskService
from clario.storage.database import Database


class ShellTool(Tool):
    @property
    def name(self) -> str:
        return "exec"

    @property
    def description(self) -> str:
        return "Run a shell command"

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}}

    async def execute(self, args: Any) -> dict[str, Any]:
        return {"ran": True}


def _registry(tmp_path) -> ToolRegistry:
    db = Database(tmp_path / "clario.db")
    return build_default_registry(TaskService(db), PeopleService(db))


def test_default_registry_exposes_exactly_the_allow_list(tmp_path):
    registry = _registry(tmp_path)
    assert set(registry.tool_names) == set(ALLOWED_TOOLS)
    assert len(registry) == 8


def test_definitions_use_flat_function_shape(tmp_path):
    definitions = _registry(tmp_path).get_definitions()
    by_name = {d["name"]: d for d in definitions}
    create = by_name["create_task"]
    assert create["type"] == "function"
    assert create["description"]
    assert create["parameters"]["type"] == "object"
    assert "title" in create["parameters"]["required"]
    assert "dueTime" in create["parameters"]["properties"]


def test_lookup_is_case_insensitive(tmp_path):
    registry = _registry(tmp_path)
    assert registry.get("CREATE_TASK") is registry.get("create_task")
    assert "List_Tasks" in registry

    result = asyncio.run(registry.invoke("LIST_TASKS", {"userId": "u1"}))
    assert result == {"tasks": [], "count": 0}


def test_unknown_tool_is_rejected(tmp_path):
    registry = _registry(tmp_path)
    with pytest.raises(UnknownToolError, match="Unknown or disallowed tool: drop_tables"):
        asyncio.run(registry.invoke("drop_tables", {"userId": "u1"}))


def test_registry_refuses_tools_outside_allow_list():
    with pytest.raises(ValueError, match="allow-list"):
        ToolRegistry([ShellTool()])


def test_missing_required_argument_names_the_key(tmp_path):
    registry = _registry(tmp_path)
    with pytest.raises(ToolArgumentError, match="title is required") as exc_info:
        asyncio.run(registry.invoke("create_task", {"userId": "u1"}))
    assert exc_info.value.key == "title"

    with pytest.raises(ToolArgumentError, match="taskId is required"):
        asyncio.run(registry.invoke("delete_task", {"userId": "u1"}))


def test_blank_required_argument_counts_as_missing(tmp_path):
    registry = _registry(tmp_path)
    with pytest.raises(ToolArgumentError, match="title is required"):
        asyncio.run(registry.invoke("create_task", {"userId": "u1", "title": "   "}))


def test_numeric_ids_and_string_numbers_are_coerced(tmp_path):
    registry = _registry(tmp_path)
    created = asyncio.run(registry.invoke("create_task", {"userId": 42, "title": "Pay rent"}))
    assert created["userId"] == "42"

    found = asyncio.run(
        registry.invoke("find_tasks", {"userId": "42", "query": "rent", "maxResults": "5"})
    )
    assert found["count"] == 1

    not_found = asyncio.run(
        registry.invoke("update_task_status", {"userId": "42", "taskId": 12345, "status": "DONE"})
    )
    assert not_found == {"success": False, "error": "Task not found"}
