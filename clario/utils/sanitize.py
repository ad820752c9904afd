"""Sanitization for user-supplied text before it is stored."""

import re

MAX_TITLE_LENGTH = 500
MAX_NAME_LENGTH = 255
MAX_TEXT_LENGTH = 10000

_SCRIPT_RE = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_JS_PROTOCOL_RE = re.compile(r"javascript\s*:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"\bon\w+\s*=", re.IGNORECASE)
# Control characters except tab, newline and carriage return.
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize(value: str | None, max_length: int = MAX_TEXT_LENGTH) -> str | None:
    """Strip markup and control characters, trim and truncate. None stays None."""
    if value is None:
        return None
    text = _SCRIPT_RE.sub("", value)
    text = _TAG_RE.sub("", text)
    text = _JS_PROTOCOL_RE.sub("", text)
    text = _EVENT_HANDLER_RE.sub("", text)
    text = _CONTROL_RE.sub("", text).strip()
    if len(text) > max_length:
        text = text[:max_length]
    return text


def sanitize_title(value: str | None) -> str | None:
    return sanitize(value, MAX_TITLE_LENGTH)


def sanitize_name(value: str | None) -> str | None:
    return sanitize(value, MAX_NAME_LENGTH)


def sanitize_text(value: str | None) -> str | None:
    return sanitize(value, MAX_TEXT_LENGTH)
