"""Append-only per-user message log."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

from clario.session.models import Role, StoredMessage, Visibility
from clario.storage.database import Database


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_message(row: sqlite3.Row) -> StoredMessage:
    return StoredMessage(
        id=int(row["id"]),
        user_id=str(row["user_id"]),
        role=Role(row["role"]),
        content=row["content"] or "",
        visibility=Visibility(row["visibility"]),
        created_at=str(row["created_at"]),
    )


class HistoryStore:
    """
    Ordered message log keyed by user id.

    Rows are never updated. Order is insertion order (the autoincrement id),
    so ties on created_at cannot reorder a conversation.
    """

    def __init__(self, db: Database):
        self.db = db

    def append(
        self,
        user_id: str,
        role: Role,
        content: str,
        visibility: Visibility,
    ) -> StoredMessage:
        created_at = _now_iso()
        with self.db.connect() as conn:
            cursor = conn.execute(
                """INSERT INTO chat_messages (user_id, role, content, visibility, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (user_id, role.value, content or "", visibility.value, created_at),
            )
            message_id = int(cursor.lastrowid)
        return StoredMessage(
            id=message_id,
            user_id=user_id,
            role=role,
            content=content or "",
            visibility=visibility,
            created_at=created_at,
        )

    def recent(
        self,
        user_id: str,
        limit: int | None = None,
        visibility: Visibility | None = None,
    ) -> list[StoredMessage]:
        """Most recent `limit` messages (all when None), returned oldest first."""
        query = "SELECT * FROM chat_messages WHERE user_id = ?"
        params: list[object] = [user_id]
        if visibility is not None:
            query += " AND visibility = ?"
            params.append(visibility.value)
        query += " ORDER BY id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(max(0, int(limit)))
        with self.db.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_message(row) for row in reversed(rows)]

    def latest(self, user_id: str, role: Role) -> StoredMessage | None:
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM chat_messages WHERE user_id = ? AND role = ? ORDER BY id DESC LIMIT 1",
                (user_id, role.value),
            ).fetchone()
        return _row_to_message(row) if row else None

    def count(self, user_id: str) -> int:
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM chat_messages WHERE user_id = ?", (user_id,)
            ).fetchone()
        return int(row[0]) if row else 0

    def replace_with_summary(self, user_id: str, summary: str, up_to_id: int) -> StoredMessage:
        """Delete rows up to `up_to_id` and insert one system summary, in one transaction."""
        created_at = _now_iso()
        with self.db.connect() as conn:
            conn.execute(
                "DELETE FROM chat_messages WHERE user_id = ? AND id <= ?",
                (user_id, up_to_id),
            )
            cursor = conn.execute(
                """INSERT INTO chat_messages (user_id, role, content, visibility, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (user_id, Role.SYSTEM.value, summary, Visibility.INTERNAL.value, created_at),
            )
            message_id = int(cursor.lastrowid)
        return StoredMessage(
            id=message_id,
            user_id=user_id,
            role=Role.SYSTEM,
            content=summary,
            visibility=Visibility.INTERNAL,
            created_at=created_at,
        )
