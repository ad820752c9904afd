"""Scheduled jobs."""

from clario.cron.reminders import ReminderJob, ReminderLog, format_reminder

__all__ = ["ReminderJob", "ReminderLog", "format_reminder"]
