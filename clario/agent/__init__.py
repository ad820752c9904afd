"""Agent core module."""

from clario.agent.api import Assistant
from clario.agent.context import ContextBuilder
from clario.agent.loop import AgentLoop

__all__ = ["AgentLoop", "Assistant", "ContextBuilder"]
