"""Utility helpers."""

from __future__ import annotations

import json
import re
import unicodedata
from datetime import datetime, timezone
from typing import Any, Dict

_TAG_RE = re.compile(r"<[^>]*>")
_SCRIPT_STYLE_RE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")
_INLINE_WHITESPACE_RE = re.compile(r"[ \t]+")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def json_dumps(data: Dict[str, Any] | list[Any] | None) -> str:
    return json.dumps(data or {}, ensure_ascii=True, sort_keys=True)


def json_loads(text: str | None) -> Dict[str, Any]:
    if not text:
        return {}
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return {}
    if isinstance(payload, dict):
        return payload
    return {}


def strip_tags(text: str) -> str:
    return _TAG_RE.sub("", _SCRIPT_STYLE_RE.sub("", text))


def sanitize_text_field(value: Any) -> str:
    """Single-line plain text: no markup, no control chars, collapsed whitespace."""
    if value is None:
        return ""
    text = strip_tags(str(value))
    text = _CONTROL_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def sanitize_textarea_field(value: Any) -> str:
    """Like sanitize_text_field but keeps line breaks."""
    if value is None:
        return ""
    text = strip_tags(str(value)).replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_RE.sub("", text)
    lines = [_INLINE_WHITESPACE_RE.sub(" ", line).strip() for line in text.split("\n")]
    return "\n".join(lines).strip()


def slugify(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", strip_tags(str(text or "")))
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    ascii_text = re.sub(r"[^a-z0-9\s_-]", "", ascii_text).strip()
    ascii_text = re.sub(r"[\s_-]+", "-", ascii_text)
    return ascii_text.strip("-")


def truncate_message(message: str, limit: int = 400) -> str:
    if len(message) <= limit:
        return message
    return f"{message[:limit]}..."
