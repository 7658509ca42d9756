"""Shared LLM data structures and the error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class ErrorKind(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    UNKNOWN_MODEL = "unknown_model"
    MISSING_MODEL_CONFIG = "missing_model_config"
    TRANSPORT_FAILURE = "transport_failure"
    VENDOR_REJECTED = "vendor_rejected"
    EMPTY_OUTPUT = "empty_output"
    MALFORMED_UPSTREAM_JSON = "malformed_upstream_json"
    POLL_TIMEOUT = "poll_timeout"
    DOWNLOAD_FAILURE = "download_failure"
    VALIDATION_FAILURE = "validation_failure"
    PERSISTENCE_FAILURE = "persistence_failure"


PROVIDER_ERROR_KINDS = frozenset(
    {
        ErrorKind.TRANSPORT_FAILURE,
        ErrorKind.VENDOR_REJECTED,
        ErrorKind.EMPTY_OUTPUT,
        ErrorKind.POLL_TIMEOUT,
        ErrorKind.DOWNLOAD_FAILURE,
    }
)


class GenerationError(RuntimeError):
    """A generation step failed; `message` is safe to show to users."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.kind.value, "message": self.message}


class ProviderError(GenerationError):
    """Provider failed to return a valid generation."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        if kind not in PROVIDER_ERROR_KINDS:
            raise ValueError(f"{kind.value} is not a provider error kind")
        super().__init__(kind, message)


PENDING_STATUSES = frozenset({"starting", "processing"})


@dataclass
class Prediction:
    id: str = ""
    status: str = ""
    output: Any = None
    poll_url: str = ""
    error: Any = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: Dict[str, Any], location: str = "") -> "Prediction":
        urls = data.get("urls") if isinstance(data.get("urls"), dict) else {}
        return cls(
            id=str(data.get("id") or ""),
            status=str(data.get("status") or ""),
            output=data.get("output"),
            poll_url=str(urls.get("get") or location or ""),
            error=data.get("error"),
            raw=data,
        )

    @property
    def has_output(self) -> bool:
        return bool(self.output)

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES and not self.has_output

    def first_output(self) -> Any:
        if isinstance(self.output, list):
            return self.output[0] if self.output else None
        return self.output


@dataclass
class TitleItem:
    title: str
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    illustration_description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "categories": list(self.categories),
            "tags": list(self.tags),
            "illustration_description": self.illustration_description,
        }
