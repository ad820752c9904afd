"""Filesystem and time helpers."""

import os
from datetime import datetime, timezone
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Create directory (and parents) if missing and return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Active data directory. CLARIO_DATA_DIR overrides ~/.clario."""
    override = os.environ.get("CLARIO_DATA_DIR", "").strip()
    if override:
        return ensure_dir(Path(override).expanduser())
    return ensure_dir(Path.home() / ".clario")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(ts: datetime | None = None) -> str:
    """UTC ISO-8601 with a trailing Z, second precision."""
    value = (ts or utc_now()).astimezone(timezone.utc).replace(microsecond=0)
    return value.isoformat().replace("+00:00", "Z")


def parse_iso(value: str | None) -> datetime | None:
    raw = (value or "").strip()
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def mask_phone(phone: str | None) -> str:
    """Keep the last four digits of a phone number for log output."""
    raw = (phone or "").strip()
    if len(raw) <= 4:
        return "****"
    return "*" * (len(raw) - 4) + raw[-4:]
