"""Task tools: create, list, search, update, delete, resolve-and-act."""

from datetime import datetime, timezone
from typing import Any

from loguru import logger
from pydantic import Field, field_validator

from clario.agent.tools.base import Tool, ToolArgs
from clario.services.tasks import Task, TaskService, TaskStatus

DEFAULT_MAX_RESULTS = 10
MAX_CANDIDATES = 10

_USER_ID_PARAM = {"type": "string", "description": "The user ID (filled in automatically)."}
_PLACEHOLDER_CHARS = ("?", "*", "_")


def is_placeholder_date(value: str) -> bool:
    """True for strings that only pretend to be a date, like '2024-10-???'."""
    if len(value) < 10:
        return True
    if any(ch in value for ch in _PLACEHOLDER_CHARS):
        return True
    if value[4] != "-" or value[7] != "-":
        return True
    return not all(ch.isdigit() for i, ch in enumerate(value[:10]) if i not in (4, 7))


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a model-supplied timestamp into an aware UTC datetime.

    Returns None for missing, placeholder, date-only or unparseable values
    so a task can still be created without that field. Values without a
    zone are read as local time.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value).strip()
        if not raw:
            return None
        if is_placeholder_date(raw) or len(raw) == 10:
            logger.debug(f"Skipping invalid or placeholder date: {raw!r}")
            return None
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00").replace("z", "+00:00"))
        except ValueError:
            logger.debug(f"Unparseable date: {raw!r}")
            return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed.astimezone(timezone.utc)


class CreateTaskArgs(ToolArgs):
    title: str = Field(min_length=1)
    description: str | None = None
    due_time: Any = Field(default=None, alias="dueTime")
    reminder_time: Any = Field(default=None, alias="reminderTime")


class FindTasksArgs(ToolArgs):
    query: str = ""
    max_results: int = Field(default=DEFAULT_MAX_RESULTS, alias="maxResults")

    @field_validator("max_results", mode="before")
    @classmethod
    def _default_when_invalid(cls, value: Any) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError):
            return DEFAULT_MAX_RESULTS
        return number if number > 0 else DEFAULT_MAX_RESULTS


class TaskIdArgs(ToolArgs):
    task_id: str = Field(alias="taskId", min_length=1)


class UpdateStatusArgs(TaskIdArgs):
    status: str = Field(min_length=1)


class ResolveArgs(ToolArgs):
    user_description: str = Field(default="", alias="userDescription")
    action: str = Field(min_length=1)


class _TaskTool(Tool):
    def __init__(self, tasks: TaskService):
        self.tasks = tasks


class CreateTaskTool(_TaskTool):
    args_model = CreateTaskArgs

    @property
    def name(self) -> str:
        return "create_task"

    @property
    def description(self) -> str:
        return (
            "Use when the user wants to add, create, or save a task, to-do, or reminder "
            "(e.g. 'add task buy milk', 'remind me to call John', 'I have a meet tomorrow at 3pm'). "
            "Creates a new task. dueTime and reminderTime must be full ISO-8601 timestamps "
            "(e.g. 2025-02-24T15:00:00Z); resolve 'tomorrow at 3pm' using the current time "
            "from context and omit them if not specified."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "userId": _USER_ID_PARAM,
                "title": {"type": "string", "description": "Short task title."},
                "description": {"type": "string", "description": "Optional details."},
                "dueTime": {"type": "string", "description": "Full ISO-8601 due time."},
                "reminderTime": {"type": "string", "description": "Full ISO-8601 reminder time."},
            },
            "required": ["title"],
        }

    async def execute(self, args: CreateTaskArgs) -> dict[str, Any]:
        try:
            task = self.tasks.create_task(
                args.user_id,
                title=args.title,
                description=args.description,
                due_time=parse_timestamp(args.due_time),
                reminder_time=parse_timestamp(args.reminder_time),
            )
        except ValueError as e:
            logger.warning(f"create_task validation error: {e}")
            return {"error": "validation_error", "message": str(e)}
        return task.to_dict()


class ListTasksTool(_TaskTool):
    @property
    def name(self) -> str:
        return "list_tasks"

    @property
    def description(self) -> str:
        return (
            "Use when the user asks to see their tasks, to-dos, what they need to do, what's "
            "pending, or what they have scheduled (e.g. 'what are my tasks?', 'show my to-do "
            "list'). Returns active tasks (pending and in progress)."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"userId": _USER_ID_PARAM},
            "required": [],
        }

    async def execute(self, args: ToolArgs) -> dict[str, Any]:
        items = [task.to_dict() for task in self.tasks.list_active(args.user_id)]
        return {"tasks": items, "count": len(items)}


class FindTasksTool(_TaskTool):
    args_model = FindTasksArgs

    @property
    def name(self) -> str:
        return "find_tasks"

    @property
    def description(self) -> str:
        return (
            "Use when the user refers to a task by description (e.g. 'the milk task', 'call "
            "John', 'tomorrow's meeting') or when you need to find which task they mean before "
            "acting. Returns matching tasks (id, title, description, status). For search-only "
            "requests call this; use resolve_and_act_on_task to find and act in one step."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "userId": _USER_ID_PARAM,
                "query": {"type": "string", "description": "Normalized task reference."},
                "maxResults": {
                    "type": "integer",
                    "description": f"Maximum matches to return (default {DEFAULT_MAX_RESULTS}).",
                },
            },
            "required": ["query"],
        }

    async def execute(self, args: FindTasksArgs) -> dict[str, Any]:
        matches = self.tasks.search(args.user_id, args.query, args.max_results)
        items = [task.to_dict() for task in matches]
        return {"tasks": items, "count": len(items)}


class UpdateTaskStatusTool(_TaskTool):
    args_model = UpdateStatusArgs

    @property
    def name(self) -> str:
        return "update_task_status"

    @property
    def description(self) -> str:
        return (
            "Use to set a task's status to PENDING, IN_PROGRESS, or DONE. Requires taskId from "
            "find_tasks or from a previous resolve_and_act_on_task disambiguation (e.g. after "
            "the user picks 'the first one')."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "userId": _USER_ID_PARAM,
                "taskId": {"type": "string", "description": "Task id."},
                "status": {
                    "type": "string",
                    "enum": [s.value for s in TaskStatus],
                    "description": "New status.",
                },
            },
            "required": ["taskId", "status"],
        }

    async def execute(self, args: UpdateStatusArgs) -> dict[str, Any]:
        try:
            task = self.tasks.update_status(args.user_id, args.task_id, args.status)
        except ValueError as e:
            logger.warning(f"update_task_status: {e}")
            return {"success": False, "error": str(e)}
        return {"success": True, "task": task.to_dict()}


class DeleteTaskTool(_TaskTool):
    args_model = TaskIdArgs

    @property
    def name(self) -> str:
        return "delete_task"

    @property
    def description(self) -> str:
        return (
            "Use to delete (remove) a task. Requires taskId from find_tasks or from a previous "
            "resolve_and_act_on_task disambiguation."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "userId": _USER_ID_PARAM,
                "taskId": {"type": "string", "description": "Task id."},
            },
            "required": ["taskId"],
        }

    async def execute(self, args: TaskIdArgs) -> dict[str, Any]:
        try:
            self.tasks.delete(args.user_id, args.task_id)
        except ValueError as e:
            logger.warning(f"delete_task: {e}")
            return {"deleted": False, "error": str(e)}
        return {"deleted": True, "taskId": args.task_id}


# action -> (target status or None for delete, message prefix)
_ACTIONS: dict[str, tuple[TaskStatus | None, str]] = {
    "delete": (None, "Task deleted"),
    "mark_done": (TaskStatus.DONE, "Marked as done"),
    "mark_pending": (TaskStatus.PENDING, "Marked as pending"),
    "mark_in_progress": (TaskStatus.IN_PROGRESS, "Marked in progress"),
}


class ResolveAndActOnTaskTool(_TaskTool):
    """Find a task by description and act on it only when exactly one matches."""

    args_model = ResolveArgs

    @property
    def name(self) -> str:
        return "resolve_and_act_on_task"

    @property
    def description(self) -> str:
        return (
            "Use when the user wants to delete a task, mark it done, mark it pending, or mark it "
            "in progress and refers to the task by description (e.g. 'remove the milk task', "
            "'mark call John as done'). Extract a normalized task reference as userDescription. "
            "If exactly one task matches, the action is performed. If none match, reply that no "
            "task was found. If several match, candidates are returned: ask the user which one "
            "and do not auto-pick."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "userId": _USER_ID_PARAM,
                "userDescription": {
                    "type": "string",
                    "description": "Normalized task reference, e.g. 'milk' or 'call John'.",
                },
                "action": {"type": "string", "enum": list(_ACTIONS)},
            },
            "required": ["userDescription", "action"],
        }

    async def execute(self, args: ResolveArgs) -> dict[str, Any]:
        if not args.user_description:
            return {"resolved": False, "message": "No task description provided."}

        candidates = self.tasks.search(args.user_id, args.user_description, MAX_CANDIDATES)
        if not candidates:
            return {
                "resolved": False,
                "message": "No matching task found. Suggest the user list their tasks or rephrase.",
            }
        if len(candidates) > 1:
            return {
                "resolved": False,
                "ambiguous": True,
                "message": (
                    "Multiple tasks match; ask the user which one "
                    "(e.g. by number or more specific description)."
                ),
                "candidates": [task.to_dict() for task in candidates],
            }

        action = args.action.lower()
        if action not in _ACTIONS:
            return {"resolved": False, "message": f"Unknown action: {args.action}"}
        return self._apply(args.user_id, candidates[0], action)

    def _apply(self, user_id: str, task: Task, action: str) -> dict[str, Any]:
        status, label = _ACTIONS[action]
        try:
            if status is None:
                self.tasks.delete(user_id, task.id)
            else:
                task = self.tasks.update_status(user_id, task.id, status.value)
        except ValueError as e:
            logger.warning(f"resolve_and_act_on_task: {e}")
            return {"resolved": False, "message": str(e)}
        return {
            "resolved": True,
            "action": action,
            "task": task.to_dict(),
            "message": f"{label}: {task.title}",
        }
