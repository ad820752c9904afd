"""Assistant persona per user."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from clario.storage.database import Database
from clario.utils.helpers import to_iso
from clario.utils.sanitize import sanitize_name, sanitize_text

DEFAULT_ASSISTANT_NAME = "Astra"
DEFAULT_PERSONALITY = (
    "You are a highly intelligent, organized and emotionally aware personal assistant.\n"
    "You help the user remember tasks, people, and commitments clearly and concisely."
)


@dataclass(slots=True)
class AssistantProfile:
    user_id: str
    assistant_name: str
    personality_prompt: str


class ProfileService:
    """Reads and updates the persona prompt used as the model's system context."""

    def __init__(self, db: Database):
        self.db = db

    def get(self, user_id: str) -> AssistantProfile | None:
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM assistant_profiles WHERE user_id = ?", (user_id,)
            ).fetchone()
        if row is None:
            return None
        return AssistantProfile(
            user_id=str(row["user_id"]),
            assistant_name=row["assistant_name"],
            personality_prompt=row["personality_prompt"],
        )

    def ensure_default(self, user_id: str) -> AssistantProfile:
        """Create the default profile on first contact; existing profiles are untouched."""
        with self.db.connect() as conn:
            conn.execute(
                """INSERT OR IGNORE INTO assistant_profiles
                   (user_id, assistant_name, personality_prompt, updated_at)
                   VALUES (?, ?, ?, ?)""",
                (user_id, DEFAULT_ASSISTANT_NAME, DEFAULT_PERSONALITY, to_iso()),
            )
        profile = self.get(user_id)
        if profile is None:
            raise RuntimeError(f"Assistant profile for user {user_id} was not stored")
        return profile

    def system_prompt(self, user_id: str) -> str:
        """Personality prompt for the user, or the default when none is set."""
        profile = self.get(user_id)
        if profile and profile.personality_prompt.strip():
            return profile.personality_prompt
        return DEFAULT_PERSONALITY

    def update(
        self,
        user_id: str,
        personality_prompt: str | None = None,
        assistant_name: str | None = None,
    ) -> AssistantProfile:
        profile = self.ensure_default(user_id)
        if personality_prompt is not None:
            profile.personality_prompt = sanitize_text(personality_prompt) or ""
        if assistant_name is not None:
            profile.assistant_name = sanitize_name(assistant_name) or DEFAULT_ASSISTANT_NAME
        with self.db.connect() as conn:
            conn.execute(
                """UPDATE assistant_profiles
                   SET assistant_name = ?, personality_prompt = ?, updated_at = ?
                   WHERE user_id = ?""",
                (profile.assistant_name, profile.personality_prompt, to_iso(), user_id),
            )
        logger.info(f"Assistant profile updated for user {user_id}")
        return profile
