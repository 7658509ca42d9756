"""Turns heterogeneous vendor error payloads into one bounded message."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from ..utils import sanitize_text_field, truncate_message

MAX_MESSAGE_CHARS = 400


@dataclass(frozen=True)
class VendorErrorShape:
    label: str
    fallback: str
    message_paths: Tuple[Tuple[str, ...], ...]
    status_paths: Tuple[Tuple[str, ...], ...] = ()


VENDOR_ERROR_SHAPES: Dict[str, VendorErrorShape] = {
    "openai": VendorErrorShape(
        label="OpenAI",
        fallback="Error communicating with the OpenAI API.",
        message_paths=(("error", "message"), ("error",)),
        status_paths=(("error", "type"), ("error", "code")),
    ),
    "gemini": VendorErrorShape(
        label="Gemini",
        fallback="Error communicating with the Google Gemini API.",
        message_paths=(("error", "message"),),
        status_paths=(("error", "status"),),
    ),
    "replicate": VendorErrorShape(
        label="Replicate",
        fallback="Error communicating with the Replicate API.",
        message_paths=(("error",), ("error", "detail"), ("detail",)),
        status_paths=(("title",), ("status",)),
    ),
}


def _lookup_string(data: Any, path: Tuple[str, ...]) -> str:
    node = data
    for key in path:
        if not isinstance(node, dict) or key not in node:
            return ""
        node = node[key]
    if isinstance(node, str):
        return node
    return ""


def _first_match(data: Any, paths: Tuple[Tuple[str, ...], ...]) -> str:
    for path in paths:
        value = _lookup_string(data, path)
        if sanitize_text_field(value):
            return value
    return ""


def build_api_error_message(vendor: str, data: Any, status_code: int | None, reason: str | None = "") -> str:
    """Builds a sanitized, length-capped, user-facing error message.

    Priority: structured vendor message, vendor status/type string, the HTTP
    reason phrase, then a generic fallback. A known non-zero status code is
    prefixed as "<Vendor> API error (<code>): ".
    """
    shape = VENDOR_ERROR_SHAPES[vendor]

    message = _first_match(data, shape.message_paths)
    if not message:
        message = _first_match(data, shape.status_paths)
    if not sanitize_text_field(message):
        message = reason or ""
    if not sanitize_text_field(message):
        message = shape.fallback

    message = truncate_message(sanitize_text_field(message), MAX_MESSAGE_CHARS)

    code = int(status_code or 0)
    if code > 0:
        return f"{shape.label} API error ({code}): {message}"
    return message
