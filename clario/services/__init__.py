"""Domain services the assistant's tools delegate to."""

from clario.services.people import PeopleService, Person
from clario.services.profiles import DEFAULT_PERSONALITY, AssistantProfile, ProfileService
from clario.services.tasks import Task, TaskService, TaskStatus
from clario.services.users import User, UserService

__all__ = [
    "AssistantProfile",
    "DEFAULT_PERSONALITY",
    "PeopleService",
    "Person",
    "ProfileService",
    "Task",
    "TaskService",
    "TaskStatus",
    "User",
    "UserService",
]
