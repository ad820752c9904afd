"""Task storage and status transitions."""

from __future__ import annotations

import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from loguru import logger

from clario.storage.database import Database
from clario.utils.helpers import to_iso
from clario.utils.sanitize import sanitize_text, sanitize_title

SEARCH_MAX_RESULTS = 10


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


ACTIVE_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)


@dataclass(slots=True)
class Task:
    id: str
    user_id: str
    title: str
    description: str | None
    due_time: str | None
    reminder_time: str | None
    status: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        """Result payload shape handed back to the model."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "description": self.description,
            "dueTime": self.due_time,
            "reminderTime": self.reminder_time,
            "status": self.status,
            "createdAt": self.created_at,
        }


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        title=row["title"],
        description=row["description"],
        due_time=row["due_time"],
        reminder_time=row["reminder_time"],
        status=row["status"],
        created_at=row["created_at"],
    )


class TaskService:
    """Per-user tasks with soft delete."""

    def __init__(self, db: Database):
        self.db = db

    def create_task(
        self,
        user_id: str,
        title: str,
        description: str | None = None,
        due_time: datetime | None = None,
        reminder_time: datetime | None = None,
    ) -> Task:
        clean_title = sanitize_title(title) or ""
        if not clean_title:
            raise ValueError("title must not be blank")
        task = Task(
            id=uuid.uuid4().hex[:8],
            user_id=user_id,
            title=clean_title,
            description=sanitize_text(description),
            due_time=to_iso(due_time) if due_time else None,
            reminder_time=to_iso(reminder_time) if reminder_time else None,
            status=TaskStatus.PENDING.value,
            created_at=to_iso(),
        )
        with self.db.connect() as conn:
            conn.execute(
                """INSERT INTO tasks
                   (id, user_id, title, description, due_time, reminder_time, status, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    task.id,
                    task.user_id,
                    task.title,
                    task.description,
                    task.due_time,
                    task.reminder_time,
                    task.status,
                    task.created_at,
                ),
            )
        logger.info(f"Task created: id={task.id}, user={user_id}, title={clean_title}")
        return task

    def get(self, user_id: str, task_id: str) -> Task:
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND user_id = ? AND deleted = 0",
                (str(task_id), user_id),
            ).fetchone()
        if row is None:
            raise ValueError("Task not found")
        return _row_to_task(row)

    def list_active(self, user_id: str, limit: int = 500) -> list[Task]:
        """PENDING and IN_PROGRESS tasks, oldest first."""
        with self.db.connect() as conn:
            rows = conn.execute(
                """SELECT * FROM tasks
                   WHERE user_id = ? AND deleted = 0 AND status IN (?, ?)
                   ORDER BY created_at, rowid LIMIT ?""",
                (user_id, *(s.value for s in ACTIVE_STATUSES), limit),
            ).fetchall()
        return [_row_to_task(row) for row in rows]

    def search(self, user_id: str, query: str, max_results: int = SEARCH_MAX_RESULTS) -> list[Task]:
        """
        Case-insensitive substring search over title and description.

        Title matches rank before description-only matches, newest first
        within each group. Deleted tasks are never returned.
        """
        q = (query or "").strip().lower()
        if not q:
            return []
        if max_results <= 0:
            max_results = SEARCH_MAX_RESULTS
        escaped = q.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        with self.db.connect() as conn:
            rows = conn.execute(
                """SELECT * FROM tasks
                   WHERE user_id = ? AND deleted = 0
                     AND (LOWER(title) LIKE ? ESCAPE '\\'
                          OR LOWER(COALESCE(description, '')) LIKE ? ESCAPE '\\')
                   ORDER BY CASE WHEN LOWER(title) LIKE ? ESCAPE '\\' THEN 0 ELSE 1 END,
                            created_at DESC, rowid DESC
                   LIMIT ?""",
                (user_id, pattern, pattern, pattern, max_results),
            ).fetchall()
        return [_row_to_task(row) for row in rows]

    def update_status(self, user_id: str, task_id: str, status: str) -> Task:
        try:
            new_status = TaskStatus((status or "").strip().upper())
        except ValueError:
            raise ValueError(f"Invalid status: {status}") from None
        task = self.get(user_id, task_id)
        with self.db.connect() as conn:
            conn.execute(
                "UPDATE tasks SET status = ? WHERE id = ? AND user_id = ?",
                (new_status.value, task.id, user_id),
            )
        task.status = new_status.value
        logger.info(f"Task status updated: id={task.id}, user={user_id}, status={new_status.value}")
        return task

    def delete(self, user_id: str, task_id: str) -> Task:
        """Soft delete; the row stays for reminder bookkeeping."""
        task = self.get(user_id, task_id)
        with self.db.connect() as conn:
            conn.execute(
                "UPDATE tasks SET deleted = 1 WHERE id = ? AND user_id = ?",
                (task.id, user_id),
            )
        logger.info(f"Task soft-deleted: id={task.id}, user={user_id}")
        return task

    def due_reminders(self, before: datetime) -> list[Task]:
        """Pending, undeleted tasks whose reminder time has passed, earliest first."""
        with self.db.connect() as conn:
            rows = conn.execute(
                """SELECT * FROM tasks
                   WHERE reminder_time IS NOT NULL AND reminder_time <= ?
                     AND status = ? AND deleted = 0
                   ORDER BY reminder_time, rowid""",
                (to_iso(before), TaskStatus.PENDING.value),
            ).fetchall()
        return [_row_to_task(row) for row in rows]
