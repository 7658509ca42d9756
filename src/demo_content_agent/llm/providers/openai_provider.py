"""OpenAI Chat Completions API provider."""

from __future__ import annotations

from typing import Any, Dict

from ...hooks import OPENAI_REQUEST_BODY, FilterHooks
from ..types import ErrorKind
from .base import HttpProvider

NEW_FAMILY_PREFIX = "gpt-5"

# model id -> temperature plus exactly one token-limit field
MODEL_PARAMS: Dict[str, Dict[str, Any]] = {
    "gpt-4o": {"temperature": 0.7, "max_tokens": 4096},
    "chatgpt-4o-latest": {"temperature": 0.7, "max_tokens": 16384},
    "gpt-4o-mini": {"temperature": 0.7, "max_tokens": 4096},
    "gpt-5": {"temperature": 1.0, "max_completion_tokens": 128000},
    "gpt-5-mini": {"temperature": 1.0, "max_completion_tokens": 128000},
    "gpt-5-nano": {"temperature": 1.0, "max_completion_tokens": 128000},
    "gpt-5.1": {"temperature": 1.0, "max_completion_tokens": 128000},
}


def uses_max_completion_tokens(model: str) -> bool:
    return model.startswith(NEW_FAMILY_PREFIX)


class OpenAIProvider(HttpProvider):
    name = "openai"
    body_hook = OPENAI_REQUEST_BODY
    api_url = "https://api.openai.com/v1/chat/completions"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        hooks: FilterHooks | None = None,
        timeout_seconds: float = 300,
    ) -> None:
        self.temperature = 0.7
        self.max_tokens = 4096
        self.max_completion_tokens: int | None = None
        self.timeout_seconds = timeout_seconds
        super().__init__(api_key, model=model, hooks=hooks)

    def set_model(self, model: str) -> None:
        super().set_model(model)
        params = MODEL_PARAMS.get(self.model)
        if params:
            self.temperature = float(params["temperature"])
            if "max_completion_tokens" in params:
                self.max_completion_tokens = int(params["max_completion_tokens"])
                self.max_tokens = self.max_completion_tokens
            else:
                self.max_tokens = int(params["max_tokens"])
                self.max_completion_tokens = None
        elif uses_max_completion_tokens(self.model):
            # The new family only accepts its fixed sampling temperature.
            self.temperature = 1.0

    def build_body(self, prompt: str, system_message: str = "") -> Dict[str, Any]:
        messages = []
        if system_message:
            messages.append({"role": "system", "content": system_message})
        messages.append({"role": "user", "content": prompt})

        body: Dict[str, Any] = {"model": self.model, "messages": messages}
        if uses_max_completion_tokens(self.model):
            if float(self.temperature) != 1.0:
                body["temperature"] = self.temperature
            body["max_completion_tokens"] = (
                self.max_completion_tokens if self.max_completion_tokens is not None else self.max_tokens
            )
        else:
            body["temperature"] = self.temperature
            body["max_tokens"] = self.max_tokens
        return body

    def send_prompt(self, prompt: str, system_message: str = "") -> str:
        prompt = self.trim_prompt(prompt)
        body = self.filter_body(self.build_body(prompt, system_message), prompt=prompt, system_message=system_message)
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        response = self._post(self.api_url, body, headers, self.timeout_seconds)
        data = self.decode_json(response)

        if response.status_code >= 400:
            raise self.error(ErrorKind.VENDOR_REJECTED, data, response)
        if data is not None and data.get("error"):
            raise self.error(ErrorKind.VENDOR_REJECTED, data, response)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str) or not content:
            raise self.error(ErrorKind.EMPTY_OUTPUT, data, response)
        return content
