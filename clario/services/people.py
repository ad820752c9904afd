"""Contacts the user wants the assistant to remember."""

from __future__ import annotations

import sqlite3
import uuid
from dataclasses import dataclass
from typing import Any

from loguru import logger

from clario.storage.database import Database
from clario.utils.helpers import to_iso
from clario.utils.sanitize import sanitize_name, sanitize_text


@dataclass(slots=True)
class Person:
    id: str
    user_id: str
    name: str
    notes: str | None
    important_dates: str | None
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "notes": self.notes,
            "importantDates": self.important_dates,
            "createdAt": self.created_at,
        }


def _row_to_person(row: sqlite3.Row) -> Person:
    return Person(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        name=row["name"],
        notes=row["notes"],
        important_dates=row["important_dates"],
        created_at=row["created_at"],
    )


class PeopleService:
    def __init__(self, db: Database):
        self.db = db

    def add_person(
        self,
        user_id: str,
        name: str,
        notes: str | None = None,
        important_dates: str | None = None,
    ) -> Person:
        clean_name = sanitize_name(name) or ""
        if not clean_name:
            raise ValueError("name must not be blank")
        dates = sanitize_text(important_dates)
        person = Person(
            id=uuid.uuid4().hex[:8],
            user_id=user_id,
            name=clean_name,
            notes=sanitize_text(notes),
            important_dates=dates or None,
            created_at=to_iso(),
        )
        with self.db.connect() as conn:
            conn.execute(
                """INSERT INTO people (id, user_id, name, notes, important_dates, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    person.id,
                    person.user_id,
                    person.name,
                    person.notes,
                    person.important_dates,
                    person.created_at,
                ),
            )
        logger.info(f"Person added: id={person.id}, user={user_id}, name={clean_name}")
        return person

    def list_people(self, user_id: str) -> list[Person]:
        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM people WHERE user_id = ? AND deleted = 0 ORDER BY created_at, rowid",
                (user_id,),
            ).fetchall()
        return [_row_to_person(row) for row in rows]
