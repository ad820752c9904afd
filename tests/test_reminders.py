import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from clario.channels.base import MessageSender
from clario.channels.whatsapp import BridgeWhatsAppSender, DeliveryError, format_jid
from clario.cron.reminders import ReminderJob, ReminderLog, format_due, format_reminder
from clario.services.tasks import TaskService
from clario.services.users import UserService
from clario.storage.database import Database

NOW = datetime(2025, 2, 24, 15, 0, tzinfo=timezone.utc)


class RecordingSender(MessageSender):
    def __init__(self, fail_times: int = 0):
        self.sent: list[tuple[str, str]] = []
        self.fail_times = fail_times

    async def send(self, phone_number: str, text: str) -> None:
        if self.fail_times > 0:
            self.fail_times -= 1
            raise DeliveryError("bridge down")
        self.sent.append((phone_number, text))


def _setup(tmp_path, sender: MessageSender):
    db = Database(tmp_path / "clario.db")
    tasks = TaskService(db)
    users = UserService(db)
    log = ReminderLog(db)
    job = ReminderJob(tasks, users, log, sender, interval_seconds=60)
    return tasks, users, log, job


def test_due_reminder_is_sent_exactly_once(tmp_path):
    sender = RecordingSender()
    tasks, users, log, job = _setup(tmp_path, sender)
    users.add("+14155550100", user_id="alice")
    task = tasks.create_task("alice", "Call mom", reminder_time=NOW - timedelta(minutes=1))

    assert asyncio.run(job.run_once(NOW)) == 1
    assert asyncio.run(job.run_once(NOW + timedelta(minutes=1))) == 0
    assert sender.sent == [("+14155550100", "Reminder: Call mom")]
    assert log.status(task.id) == "SENT"


def test_only_due_pending_reminders_are_sent(tmp_path):
    sender = RecordingSender()
    tasks, users, _, job = _setup(tmp_path, sender)
    users.add("+14155550100", user_id="alice")
    tasks.create_task("alice", "Later", reminder_time=NOW + timedelta(hours=1))
    done = tasks.create_task("alice", "Already done", reminder_time=NOW - timedelta(hours=1))
    tasks.update_status("alice", done.id, "DONE")
    gone = tasks.create_task("alice", "Deleted", reminder_time=NOW - timedelta(hours=1))
    tasks.delete("alice", gone.id)
    tasks.create_task("alice", "No reminder")
    tasks.create_task("alice", "Second", reminder_time=NOW - timedelta(minutes=5))
    tasks.create_task("alice", "First", reminder_time=NOW - timedelta(minutes=30))

    assert asyncio.run(job.run_once(NOW)) == 2
    assert [text for _, text in sender.sent] == ["Reminder: First", "Reminder: Second"]


def test_failed_send_releases_claim_for_retry(tmp_path):
    sender = RecordingSender(fail_times=1)
    tasks, users, log, job = _setup(tmp_path, sender)
    users.add("+14155550100", user_id="alice")
    task = tasks.create_task("alice", "Pay rent", reminder_time=NOW)

    assert asyncio.run(job.run_once(NOW)) == 0
    assert log.status(task.id) is None

    assert asyncio.run(job.run_once(NOW)) == 1
    assert len(sender.sent) == 1


def test_reminder_for_unknown_user_is_skipped(tmp_path):
    sender = RecordingSender()
    tasks, _, log, job = _setup(tmp_path, sender)
    task = tasks.create_task("ghost", "Haunt", reminder_time=NOW)

    assert asyncio.run(job.run_once(NOW)) == 0
    assert sender.sent == []
    assert log.status(task.id) is None


def test_claim_is_atomic(tmp_path):
    log = ReminderLog(Database(tmp_path / "clario.db"))
    assert log.try_claim("t1") is True
    assert log.try_claim("t1") is False
    log.mark_sent("t1")
    log.release("t1")
    assert log.status("t1") == "SENT"


def test_reminder_text_includes_due_time_and_description(tmp_path):
    tasks, _, _, _ = _setup(tmp_path, RecordingSender())
    due = datetime(2025, 2, 24, 15, 5, tzinfo=timezone.utc)
    task = tasks.create_task("alice", "Dentist", description="Bring insurance card", due_time=due)

    text = format_reminder(task)

    assert text == f"Reminder: Dentist (due {format_due(due)})\nBring insurance card"
    local = due.astimezone()
    assert format_due(due).startswith(f"{local:%b} {local.day}, ")
    assert format_due(due).endswith(("AM", "PM"))


def test_format_jid():
    assert format_jid(" +14155550100 ") == "+14155550100@s.whatsapp.net"
    assert format_jid("123@s.whatsapp.net") == "123@s.whatsapp.net"
    with pytest.raises(ValueError):
        format_jid("  ")


def test_bridge_sender_posts_to_send_endpoint():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True})

    sender = BridgeWhatsAppSender("http://bridge.test/", transport=httpx.MockTransport(handler))
    asyncio.run(sender.send("+14155550100", "hello"))

    assert seen["url"] == "http://bridge.test/send"
    assert seen["body"] == {"to": "+14155550100@s.whatsapp.net", "text": "hello"}


def test_bridge_sender_raises_on_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    sender = BridgeWhatsAppSender("http://bridge.test", transport=httpx.MockTransport(handler))
    with pytest.raises(DeliveryError):
        asyncio.run(sender.send("+14155550100", "hello"))
