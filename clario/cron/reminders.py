"""Reminder delivery job: sends each due task reminder exactly once."""

from __future__ import annotations

import asyncio
from datetime import datetime

from loguru import logger

from clario.channels.base import MessageSender
from clario.services.tasks import Task, TaskService
from clario.services.users import UserService
from clario.storage.database import Database
from clario.utils.helpers import mask_phone, parse_iso, to_iso, utc_now

STATUS_CLAIMED = "CLAIMED"
STATUS_SENT = "SENT"


def format_due(value: datetime) -> str:
    """'Feb 24, 3:00 PM' in local time."""
    local = value.astimezone()
    hour = local.hour % 12 or 12
    return f"{local:%b} {local.day}, {hour}:{local:%M} {local:%p}"


def format_reminder(task: Task) -> str:
    text = f"Reminder: {task.title}"
    due = parse_iso(task.due_time)
    if due is not None:
        text += f" (due {format_due(due)})"
    if task.description and task.description.strip():
        text += f"\n{task.description}"
    return text


class ReminderLog:
    """
    Sent-log keyed by task id.

    A row is claimed with a single INSERT OR IGNORE before sending, so two
    concurrent scans cannot both deliver the same reminder.
    """

    def __init__(self, db: Database):
        self.db = db

    def try_claim(self, task_id: str, now: datetime | None = None) -> bool:
        with self.db.connect() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO reminder_log (task_id, sent_at, status) VALUES (?, ?, ?)",
                (task_id, to_iso(now), STATUS_CLAIMED),
            )
            return cursor.rowcount == 1

    def mark_sent(self, task_id: str, now: datetime | None = None) -> None:
        with self.db.connect() as conn:
            conn.execute(
                "UPDATE reminder_log SET status = ?, sent_at = ? WHERE task_id = ?",
                (STATUS_SENT, to_iso(now), task_id),
            )

    def release(self, task_id: str) -> None:
        """Drop an unsent claim so a later scan can retry."""
        with self.db.connect() as conn:
            conn.execute(
                "DELETE FROM reminder_log WHERE task_id = ? AND status = ?",
                (task_id, STATUS_CLAIMED),
            )

    def status(self, task_id: str) -> str | None:
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT status FROM reminder_log WHERE task_id = ?", (task_id,)
            ).fetchone()
        return row["status"] if row else None


class ReminderJob:
    """Fixed-delay scanner for due reminders."""

    def __init__(
        self,
        tasks: TaskService,
        users: UserService,
        log: ReminderLog,
        sender: MessageSender,
        interval_seconds: float = 60.0,
    ):
        self.tasks = tasks
        self.users = users
        self.log = log
        self.sender = sender
        self.interval_seconds = interval_seconds
        self._running = False

    async def run_once(self, now: datetime | None = None) -> int:
        """Scan once and return the number of reminders delivered."""
        current = now or utc_now()
        due = self.tasks.due_reminders(current)
        if not due:
            return 0
        logger.debug(f"Reminder scan: {len(due)} task(s) due")

        sent = 0
        for task in due:
            if not self.log.try_claim(task.id, current):
                continue
            user = self.users.get(task.user_id)
            if user is None:
                logger.warning(f"User not found for task {task.id} (user={task.user_id}), skipping reminder")
                self.log.release(task.id)
                continue
            try:
                await self.sender.send(user.phone_number, format_reminder(task))
            except Exception as e:
                logger.error(f"Reminder send failed for task {task.id} to {mask_phone(user.phone_number)}: {e}")
                self.log.release(task.id)
                continue
            self.log.mark_sent(task.id, current)
            sent += 1
            logger.info(f"Reminder sent for task {task.id}: {task.title}")
        return sent

    async def run(self) -> None:
        """Scan, sleep the fixed delay, repeat until stopped."""
        self._running = True
        logger.info(f"Reminder job started (every {self.interval_seconds:.0f}s)")
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Reminder scan failed: {e}")
            await asyncio.sleep(self.interval_seconds)

    def stop(self) -> None:
        self._running = False
        logger.info("Reminder job stopping")
