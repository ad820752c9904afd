"""CLI module for Clario."""
