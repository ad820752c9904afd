"""Base class for assistant tools."""

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class ToolError(Exception):
    """Base error raised at the tool boundary."""


class UnknownToolError(ToolError):
    """Requested name is not on the allow-list."""

    def __init__(self, name: str):
        super().__init__(f"Unknown or disallowed tool: {name}")
        self.name = name


class ToolArgumentError(ToolError):
    """Arguments could not be decoded into the tool's argument model."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


_REQUIRED_ERROR_TYPES = {"missing", "string_too_short"}


def _argument_error(model: type[BaseModel], exc: ValidationError) -> ToolArgumentError:
    first = exc.errors()[0]
    loc = first.get("loc") or ()
    key = str(loc[0]) if loc else ""
    field = model.model_fields.get(key)
    if field is not None and field.alias:
        key = field.alias
    if first.get("type") in _REQUIRED_ERROR_TYPES:
        return ToolArgumentError(f"{key} is required", key=key)
    return ToolArgumentError(f"{key}: {first.get('msg', 'invalid value')}", key=key)


class ToolArgs(BaseModel):
    """
    Common argument model. Every tool acts on behalf of one user.

    Model output is loosely typed JSON: numbers may arrive as strings and
    ids as numbers, so strings are stripped and numbers coerced.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    user_id: str = Field(alias="userId", min_length=1)


class Tool(ABC):
    """
    Abstract base class for tools the model may call.

    Subclasses declare an argument model and implement `execute`. Business
    outcomes (not found, ambiguous, invalid status) are returned as result
    payloads; only malformed arguments raise.
    """

    args_model: ClassVar[type[ToolArgs]] = ToolArgs

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name used in function calls."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Description of what the tool does."""
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for tool parameters."""
        pass

    @abstractmethod
    async def execute(self, args: Any) -> dict[str, Any]:
        """
        Execute the tool with decoded arguments.

        Args:
            args: Instance of `args_model`.

        Returns:
            Result payload, serialized to JSON by the caller.
        """
        pass

    def parse_args(self, arguments: dict[str, Any]) -> ToolArgs:
        try:
            return self.args_model.model_validate(arguments or {})
        except ValidationError as e:
            raise _argument_error(self.args_model, e) from e

    def to_schema(self) -> dict[str, Any]:
        """Function definition in Responses API format."""
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }
