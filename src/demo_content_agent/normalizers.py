"""Parsing and permissive normalization of model output."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterable, List

from .llm.types import ErrorKind, GenerationError, TitleItem
from .utils import sanitize_text_field, sanitize_textarea_field

_LEADING_FENCE_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE_RE = re.compile(r"\s*```$")


def strip_code_fences(text: str) -> str:
    cleaned = _LEADING_FENCE_RE.sub("", (text or "").strip())
    return _TRAILING_FENCE_RE.sub("", cleaned)


def parse_ai_json(text: str, what: str) -> Dict[str, Any]:
    """Decodes a model's JSON object reply, tolerating markdown fences."""
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as exc:
        raise GenerationError(
            ErrorKind.MALFORMED_UPSTREAM_JSON,
            f"The AI returned an invalid JSON structure for {what}.",
        ) from exc
    if not isinstance(data, dict):
        raise GenerationError(
            ErrorKind.MALFORMED_UPSTREAM_JSON,
            f"The AI returned an invalid JSON structure for {what}.",
        )
    return data


def sanitize_term_names(terms: Any) -> List[str]:
    """Unique, non-empty, trimmed names; accepts strings or {"name": ...} objects."""
    if not isinstance(terms, (list, tuple)):
        return []
    cleaned: List[str] = []
    for term in terms:
        if isinstance(term, str):
            name = sanitize_text_field(term)
        elif isinstance(term, dict) and "name" in term:
            name = sanitize_text_field(term["name"])
        else:
            continue
        if name and name not in cleaned:
            cleaned.append(name)
    return cleaned


def _title_of(item: Any) -> str:
    if isinstance(item, str):
        return item.strip()
    if isinstance(item, dict) and item.get("title"):
        return str(item["title"]).strip()
    return ""


def normalize_post_title_items(items: Iterable[Any], include_illustrations: bool = True) -> List[TitleItem]:
    out: List[TitleItem] = []
    for item in items:
        title = _title_of(item)
        if not title:
            continue
        if isinstance(item, str):
            out.append(TitleItem(title=title))
            continue
        illustration = ""
        if include_illustrations:
            illustration = sanitize_textarea_field(item.get("illustration_description", ""))
        out.append(
            TitleItem(
                title=title,
                categories=sanitize_term_names(item.get("categories")),
                tags=sanitize_term_names(item.get("tags")),
                illustration_description=illustration,
            )
        )
    return out


def normalize_page_title_items(items: Iterable[Any]) -> List[Dict[str, str]]:
    out: List[Dict[str, str]] = []
    for item in items:
        title = _title_of(item)
        if title:
            out.append({"title": title})
    return out


def list_field(data: Dict[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    return value if isinstance(value, list) else []
