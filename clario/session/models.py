"""Persisted conversation message model."""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class Visibility(str, Enum):
    """INTERNAL rows are model bookkeeping; USER_FACING rows form the transcript."""
    INTERNAL = "INTERNAL"
    USER_FACING = "USER_FACING"


@dataclass(frozen=True, slots=True)
class StoredMessage:
    id: int
    user_id: str
    role: Role
    content: str
    visibility: Visibility
    created_at: str

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "role": self.role.value,
            "content": self.content,
            "visibility": self.visibility.value,
            "created_at": self.created_at,
        }
