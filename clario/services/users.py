"""User directory keyed by WhatsApp phone number."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass

from loguru import logger

from clario.storage.database import Database
from clario.utils.helpers import mask_phone, to_iso


@dataclass(slots=True)
class User:
    id: str
    phone_number: str


def phone_candidates(phone: str) -> list[str]:
    """
    Lookup forms for a phone number, most specific first.

    "+digits", bare digits, then the last ten digits with and without "+".
    """
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        return []
    candidates = [f"+{digits}", digits]
    if len(digits) > 10:
        tail = digits[-10:]
        candidates.extend([tail, f"+{tail}"])
    return list(dict.fromkeys(candidates))


class UserService:
    def __init__(self, db: Database):
        self.db = db

    def add(self, phone_number: str, user_id: str | None = None) -> User:
        phone = (phone_number or "").strip()
        if not phone:
            raise ValueError("phone number is required")
        user = User(id=user_id or uuid.uuid4().hex[:8], phone_number=phone)
        with self.db.connect() as conn:
            conn.execute(
                "INSERT INTO users (id, phone_number, created_at) VALUES (?, ?, ?)",
                (user.id, user.phone_number, to_iso()),
            )
        logger.info(f"User registered: id={user.id}, phone={mask_phone(phone)}")
        return user

    def get(self, user_id: str) -> User | None:
        with self.db.connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return User(id=str(row["id"]), phone_number=row["phone_number"])

    def find_by_phone(self, phone: str) -> User | None:
        candidates = phone_candidates(phone)
        if not candidates:
            return None
        with self.db.connect() as conn:
            for candidate in candidates:
                row = conn.execute(
                    "SELECT * FROM users WHERE phone_number = ?", (candidate,)
                ).fetchone()
                if row is not None:
                    return User(id=str(row["id"]), phone_number=row["phone_number"])
        return None

    def list_users(self) -> list[User]:
        with self.db.connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY created_at, rowid").fetchall()
        return [User(id=str(row["id"]), phone_number=row["phone_number"]) for row in rows]
