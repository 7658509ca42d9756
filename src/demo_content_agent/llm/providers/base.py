"""Provider interfaces and the shared HTTP transport."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Protocol

import requests

from ...hooks import FilterHooks, apply_hooks
from ...utils import sanitize_text_field, truncate_message
from ..errors import build_api_error_message
from ..types import ErrorKind, ProviderError

logger = logging.getLogger(__name__)


class TextProvider(Protocol):
    name: str
    model: str

    def send_prompt(self, prompt: str, system_message: str = "") -> str:
        ...


class ImageProvider(Protocol):
    name: str
    model: str

    def send_prompt(self, prompt: str) -> bytes:
        ...


class HttpProvider:
    """Base for vendor clients: timing, last-response diagnostics, errors."""

    name = "http"
    body_hook = ""

    def __init__(self, api_key: str, model: str = "", hooks: FilterHooks | None = None) -> None:
        self._api_key = (api_key or "").strip()
        self.model = ""
        self.hooks = hooks
        self.last_response: requests.Response | None = None
        self.last_latency_ms = 0
        if model:
            self.set_model(model)

    def set_model(self, model: str) -> None:
        self.model = sanitize_text_field(model)

    @staticmethod
    def trim_prompt(prompt: str) -> str:
        return str(prompt or "").strip()

    def filter_body(self, body: Dict[str, Any], **context: Any) -> Dict[str, Any]:
        return apply_hooks(self.hooks, self.body_hook, body, model=self.model, **context)

    def _send(self, method: str, url: str, timeout: float, **kwargs: Any) -> requests.Response:
        start = time.perf_counter()
        try:
            if method == "POST":
                response = requests.post(url, timeout=timeout, **kwargs)
            else:
                response = requests.get(url, timeout=timeout, **kwargs)
        except requests.RequestException as exc:
            self.last_latency_ms = int((time.perf_counter() - start) * 1000)
            self.last_response = None
            logger.warning("%s %s request failed: %s", self.name, method, type(exc).__name__)
            raise ProviderError(
                ErrorKind.TRANSPORT_FAILURE,
                truncate_message(sanitize_text_field(str(exc)) or f"{self.name} request failed."),
            ) from exc

        self.last_latency_ms = int((time.perf_counter() - start) * 1000)
        self.last_response = response
        logger.debug("%s %s -> %s in %dms", self.name, method, response.status_code, self.last_latency_ms)
        return response

    def _post(self, url: str, body: Dict[str, Any], headers: Dict[str, str], timeout: float) -> requests.Response:
        return self._send("POST", url, timeout, json=body, headers=headers)

    def _get(self, url: str, headers: Dict[str, str] | None, timeout: float) -> requests.Response:
        return self._send("GET", url, timeout, headers=headers or {})

    @staticmethod
    def decode_json(response: requests.Response) -> Dict[str, Any] | None:
        try:
            data = response.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    def error(self, kind: ErrorKind, data: Any, response: requests.Response | None) -> ProviderError:
        status = int(getattr(response, "status_code", 0) or 0)
        reason = str(getattr(response, "reason", "") or "")
        message = build_api_error_message(self.name, data, status, reason)
        logger.warning("%s call failed (%s): %s", self.name, kind.value, message)
        return ProviderError(kind, message)
