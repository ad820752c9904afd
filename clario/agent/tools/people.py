"""Contact tools."""

import json
from typing import Any

from loguru import logger
from pydantic import Field, field_validator

from clario.agent.tools.base import Tool, ToolArgs
from clario.services.people import PeopleService

_USER_ID_PARAM = {"type": "string", "description": "The user ID (filled in automatically)."}


class AddPersonArgs(ToolArgs):
    name: str = Field(min_length=1)
    notes: str | None = None
    important_dates: str | None = Field(default=None, alias="importantDates")

    @field_validator("important_dates", mode="before")
    @classmethod
    def _dates_as_text(cls, value: Any) -> Any:
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False)
        return value


class _PeopleTool(Tool):
    def __init__(self, people: PeopleService):
        self.people = people


class AddPersonTool(_PeopleTool):
    args_model = AddPersonArgs

    @property
    def name(self) -> str:
        return "add_person"

    @property
    def description(self) -> str:
        return (
            "Use when the user wants to save a contact, add a person, remember someone, or store "
            "details about a person (e.g. 'add contact for my dentist', 'remember John's birthday "
            "is in March', 'save Sarah - she's my accountant')."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "userId": _USER_ID_PARAM,
                "name": {"type": "string", "description": "Person's name."},
                "notes": {"type": "string", "description": "Free-form notes."},
                "importantDates": {
                    "type": "string",
                    "description": "JSON string of dates such as birthdays.",
                },
            },
            "required": ["name"],
        }

    async def execute(self, args: AddPersonArgs) -> dict[str, Any]:
        try:
            person = self.people.add_person(
                args.user_id,
                name=args.name,
                notes=args.notes,
                important_dates=args.important_dates,
            )
        except ValueError as e:
            logger.warning(f"add_person validation error: {e}")
            return {"error": "validation_error", "message": str(e)}
        return person.to_dict()


class RetrievePeopleTool(_PeopleTool):
    @property
    def name(self) -> str:
        return "retrieve_people"

    @property
    def description(self) -> str:
        return (
            "Use when the user asks to see their contacts, people they've saved, or to look up "
            "someone (e.g. 'who are my contacts?', 'do I have John saved?'). Returns all saved "
            "people with name, notes, and important dates."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"userId": _USER_ID_PARAM},
            "required": [],
        }

    async def execute(self, args: ToolArgs) -> dict[str, Any]:
        items = [person.to_dict() for person in self.people.list_people(args.user_id)]
        return {"people": items, "count": len(items)}
