"""Agent tools module."""

from clario.agent.tools.base import Tool, ToolArgumentError, ToolError, UnknownToolError
from clario.agent.tools.registry import ALLOWED_TOOLS, ToolRegistry, build_default_registry

__all__ = [
    "ALLOWED_TOOLS",
    "Tool",
    "ToolArgumentError",
    "ToolError",
    "ToolRegistry",
    "UnknownToolError",
    "build_default_registry",
]
