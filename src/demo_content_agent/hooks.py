"""Ordered filter hooks applied to prompts and request bodies before sending."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Filter = Callable[..., Any]

TITLES_PROMPT = "titles_prompt"
POST_PROMPT = "post_prompt"
TAXONOMY_PROMPT = "taxonomy_prompt"
IMAGE_PROMPT = "image_prompt"
OPENAI_REQUEST_BODY = "openai_request_body"
GEMINI_REQUEST_BODY = "gemini_request_body"
REPLICATE_REQUEST_BODY = "replicate_request_body"


class FilterHooks:
    """Named chains of transforms, applied in registration order.

    Each filter receives the current value plus keyword context and returns
    the replacement value. Callers treat the result as opaque.
    """

    def __init__(self) -> None:
        self._filters: Dict[str, List[Filter]] = {}

    def add(self, name: str, func: Filter) -> None:
        self._filters.setdefault(name, []).append(func)

    def remove(self, name: str, func: Filter) -> None:
        chain = self._filters.get(name, [])
        if func in chain:
            chain.remove(func)

    def has(self, name: str) -> bool:
        return bool(self._filters.get(name))

    def apply(self, name: str, value: Any, **context: Any) -> Any:
        for func in list(self._filters.get(name, [])):
            value = func(value, **context)
        if self.has(name):
            logger.debug("Applied %d filter(s) to %s", len(self._filters[name]), name)
        return value


def apply_hooks(hooks: FilterHooks | None, name: str, value: Any, **context: Any) -> Any:
    if hooks is None:
        return value
    return hooks.apply(name, value, **context)
