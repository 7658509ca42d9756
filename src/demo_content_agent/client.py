"""Clients the sequencer drives: in-process or over HTTP."""

from __future__ import annotations

import logging
from typing import Any, Dict, Protocol

import requests
from pydantic import ValidationError

from .llm.types import ErrorKind, GenerationError
from .orchestrator import ContentGenerator
from .schemas import PostRequest, TaxonomiesRequest, TitlesRequest
from .utils import sanitize_text_field, truncate_message

logger = logging.getLogger(__name__)

_KNOWN_CODES = {kind.value for kind in ErrorKind}


class GenerationClient(Protocol):
    def generate_titles(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def generate_item(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def generate_taxonomies(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        ...


def _validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Request validation failed"
    first = errors[0]
    field = ".".join(str(loc) for loc in first.get("loc", ()))
    return f"{field}: {first.get('msg', 'invalid value')}" if field else str(first.get("msg"))


class LocalGenerationClient:
    """Calls the orchestrator directly, validating payloads like the HTTP surface does."""

    def __init__(self, generator: ContentGenerator) -> None:
        self.generator = generator

    @staticmethod
    def _parse(model: Any, payload: Dict[str, Any]) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise GenerationError(ErrorKind.VALIDATION_FAILURE, _validation_message(exc)) from exc

    def generate_titles(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = self._parse(TitlesRequest, payload)
        return self.generator.generate_titles(
            posts=body.posts,
            pages=body.pages,
            model=body.model,
            instructions=body.instructions,
            generate_images=body.generate_images,
        )

    def generate_item(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = self._parse(PostRequest, payload)
        return self.generator.generate_item(**body.model_dump())

    def generate_taxonomies(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = self._parse(TaxonomiesRequest, payload)
        return self.generator.generate_taxonomies(
            items=[item.model_dump() for item in body.items],
            model=body.model,
            categories=body.categories,
            tags=body.tags,
            instructions=body.instructions,
        )


class HttpGenerationClient:
    def __init__(self, base_url: str, token: str, timeout_seconds: float = 360) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_seconds = timeout_seconds

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"}
        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise GenerationError(
                ErrorKind.TRANSPORT_FAILURE,
                truncate_message(sanitize_text_field(str(exc)) or "Request failed."),
            ) from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400:
            kind = ErrorKind.VENDOR_REJECTED
            message = f"HTTP {response.status_code}"
            if isinstance(data, dict):
                if data.get("code") in _KNOWN_CODES:
                    kind = ErrorKind(data["code"])
                detail = data.get("message") or data.get("detail")
                if detail:
                    message = truncate_message(sanitize_text_field(detail))
            logger.warning("%s returned %s: %s", path, response.status_code, message)
            raise GenerationError(kind, message)

        if not isinstance(data, dict):
            raise GenerationError(ErrorKind.MALFORMED_UPSTREAM_JSON, f"{path} returned a non-JSON response.")
        return data

    def generate_titles(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._post("/titles", payload)

    def generate_item(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._post("/post", payload)

    def generate_taxonomies(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._post("/taxonomies", payload)
