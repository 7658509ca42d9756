"""Replicate predictions API provider for featured images.

A prediction is submitted with ``Prefer: wait`` so short jobs finish inside
the first request. Jobs still ``starting``/``processing`` when the vendor's
synchronous window closes are polled until they produce output, leave the
pending states, or the poll deadline passes.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict

import requests

from ...hooks import REPLICATE_REQUEST_BODY, FilterHooks
from ...utils import sanitize_text_field, truncate_message
from ..types import ErrorKind, Prediction, ProviderError
from .base import HttpProvider

logger = logging.getLogger(__name__)


class ReplicateProvider(HttpProvider):
    name = "replicate"
    body_hook = REPLICATE_REQUEST_BODY
    api_url = "https://api.replicate.com/v1/models"

    def __init__(
        self,
        api_key: str,
        model: str = "",
        hooks: FilterHooks | None = None,
        timeout_seconds: float = 65,
        poll_interval_seconds: float = 2,
        poll_timeout_seconds: float = 60,
        poll_request_timeout_seconds: float = 15,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.poll_timeout_seconds = poll_timeout_seconds
        self.poll_request_timeout_seconds = poll_request_timeout_seconds
        self._sleep = sleep
        self._clock = clock
        self.last_poll_count = 0
        super().__init__(api_key, model=model, hooks=hooks)

    def endpoint(self) -> str:
        return f"{self.api_url.rstrip('/')}/{self.model}/predictions"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
            "Prefer": "wait",
        }

    def _read_prediction(self, response: requests.Response) -> Prediction:
        data = self.decode_json(response)
        if response.status_code >= 400:
            raise self.error(ErrorKind.VENDOR_REJECTED, data, response)
        if data is None:
            raise self.error(ErrorKind.VENDOR_REJECTED, None, response)
        if data.get("error"):
            raise self.error(ErrorKind.VENDOR_REJECTED, data, response)
        return Prediction.from_payload(data, location=response.headers.get("Location", ""))

    def _poll(self, prediction: Prediction) -> Prediction:
        deadline = self._clock() + self.poll_timeout_seconds
        while prediction.is_pending:
            if not prediction.poll_url:
                logger.info("Prediction %s has no poll URL; using the current payload", prediction.id or "?")
                return prediction
            if self._clock() >= deadline:
                raise ProviderError(
                    ErrorKind.POLL_TIMEOUT,
                    f"Replicate prediction did not finish within {self.poll_timeout_seconds:g} seconds.",
                )
            self._sleep(self.poll_interval_seconds)
            response = self._get(prediction.poll_url, self._headers(), self.poll_request_timeout_seconds)
            self.last_poll_count += 1
            previous_url = prediction.poll_url
            prediction = self._read_prediction(response)
            if not prediction.poll_url:
                prediction.poll_url = previous_url
            logger.debug("Prediction %s poll #%d: %s", prediction.id, self.last_poll_count, prediction.status)
        return prediction

    def _download(self, url: str) -> bytes:
        response = self._get(url, None, self.timeout_seconds)
        if response.status_code != 200:
            reason = sanitize_text_field(getattr(response, "reason", "") or "")
            if not reason:
                reason = "Failed to download generated image from Replicate."
            raise ProviderError(
                ErrorKind.DOWNLOAD_FAILURE,
                f"Replicate image download error ({response.status_code}): {truncate_message(reason)}",
            )
        return response.content

    def send_prompt(self, prompt: str) -> bytes:
        prompt = self.trim_prompt(prompt)
        body = self.filter_body({"input": {"prompt": prompt}}, prompt=prompt)
        self.last_poll_count = 0

        response = self._post(self.endpoint(), body, self._headers(), self.timeout_seconds)
        prediction = self._read_prediction(response)
        if prediction.is_pending:
            logger.info("Prediction %s still %s; polling", prediction.id or "?", prediction.status)
            prediction = self._poll(prediction)

        if prediction.status in {"failed", "canceled"} and not prediction.has_output:
            raise self.error(ErrorKind.VENDOR_REJECTED, prediction.raw, None)

        output = prediction.first_output()
        if not output:
            raise ProviderError(ErrorKind.EMPTY_OUTPUT, "Replicate API returned no output.")
        return self._download(str(output))
