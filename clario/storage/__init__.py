"""Persistence layer."""

from clario.storage.database import Database

__all__ = ["Database"]
