"""Clario - a conversational task and contacts assistant for WhatsApp."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("clario")
except PackageNotFoundError:
    __version__ = "0.1.0"

__logo__ = "✳"
__brand__ = "clario"
