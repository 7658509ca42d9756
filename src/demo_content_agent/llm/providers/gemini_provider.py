"""Google Gemini REST provider."""

from __future__ import annotations

from typing import Any, Dict
from urllib.parse import quote

from ...hooks import GEMINI_REQUEST_BODY, FilterHooks
from ..types import ErrorKind
from .base import HttpProvider


class GeminiProvider(HttpProvider):
    name = "gemini"
    body_hook = GEMINI_REQUEST_BODY
    api_url = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        hooks: FilterHooks | None = None,
        timeout_seconds: float = 300,
    ) -> None:
        self.temperature = 0.4
        self.max_tokens = 8192
        self.timeout_seconds = timeout_seconds
        super().__init__(api_key, model=model, hooks=hooks)

    def endpoint(self) -> str:
        return f"{self.api_url}/{self.model}:generateContent?key={quote(self._api_key, safe='')}"

    def build_body(self, prompt: str, system_message: str = "") -> Dict[str, Any]:
        texts = [system_message, prompt] if system_message else [prompt]
        return {
            "contents": [{"parts": [{"text": text} for text in texts]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_tokens,
            },
        }

    def send_prompt(self, prompt: str, system_message: str = "") -> str:
        prompt = self.trim_prompt(prompt)
        body = self.filter_body(self.build_body(prompt, system_message), prompt=prompt, system_message=system_message)

        response = self._post(self.endpoint(), body, {"Content-Type": "application/json"}, self.timeout_seconds)
        data = self.decode_json(response)

        if response.status_code >= 400:
            raise self.error(ErrorKind.VENDOR_REJECTED, data, response)
        if data is not None and data.get("error"):
            raise self.error(ErrorKind.VENDOR_REJECTED, data, response)

        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            parts = None
        if not parts or not isinstance(parts, list):
            raise self.error(ErrorKind.EMPTY_OUTPUT, data, response)

        # Thinking models may prepend non-final parts; the answer is the last one.
        last_part = parts[-1]
        text = last_part.get("text") if isinstance(last_part, dict) else None
        if not isinstance(text, str) or not text:
            raise self.error(ErrorKind.EMPTY_OUTPUT, data, response)
        return text
