"""Configuration module for Clario."""

from clario.config.loader import get_config_path, load_config
from clario.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
