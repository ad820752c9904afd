"""Utility helpers for Clario."""

from clario.utils.helpers import ensure_dir, get_data_path, mask_phone, utc_now

__all__ = ["ensure_dir", "get_data_path", "mask_phone", "utc_now"]
