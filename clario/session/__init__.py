"""Conversation history."""

from clario.session.memory import ChatMemory
from clario.session.models import Role, StoredMessage, Visibility
from clario.session.store import HistoryStore

__all__ = ["ChatMemory", "HistoryStore", "Role", "StoredMessage", "Visibility"]
