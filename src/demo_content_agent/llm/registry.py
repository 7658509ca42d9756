"""Model-id based provider selection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Tuple

from ..config import ProviderCredentials
from ..hooks import FilterHooks
from .providers.gemini_provider import GeminiProvider
from .providers.openai_provider import OpenAIProvider
from .providers.replicate_provider import ReplicateProvider
from .types import ErrorKind, GenerationError


@dataclass(frozen=True)
class ProviderRoute:
    vendor: str
    prefixes: Tuple[str, ...]
    credential: str
    missing_key_message: str

    def matches(self, model: str) -> bool:
        return any(model.startswith(prefix) for prefix in self.prefixes)


# Evaluated in order; the first matching route wins.
TEXT_ROUTES: Tuple[ProviderRoute, ...] = (
    ProviderRoute("openai", ("gpt-", "chatgpt"), "openai", "OpenAI API key is missing."),
    ProviderRoute("gemini", ("gemini-", "gemma-"), "google", "Google Gemini API key is missing."),
)

IMAGE_ROUTE = ProviderRoute("replicate", ("",), "replicate", "Replicate API key is missing.")

DEFAULT_FACTORIES: Dict[str, Callable[..., Any]] = {
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
    "replicate": ReplicateProvider,
}


def match_text_route(model: str, routes: Tuple[ProviderRoute, ...] = TEXT_ROUTES) -> ProviderRoute | None:
    for route in routes:
        if route.matches(model):
            return route
    return None


class ProviderRegistry:
    def __init__(
        self,
        config: Dict[str, Any],
        credentials: ProviderCredentials,
        hooks: FilterHooks | None = None,
        factories: Mapping[str, Callable[..., Any]] | None = None,
        routes: Tuple[ProviderRoute, ...] = TEXT_ROUTES,
    ) -> None:
        self.config = config
        self.credentials = credentials
        self.hooks = hooks
        self.routes = routes
        self.factories = {**DEFAULT_FACTORIES, **dict(factories or {})}

    def _options(self, vendor: str) -> Dict[str, Any]:
        if vendor == "replicate":
            cfg = self.config.get("replicate", {})
            return {
                "timeout_seconds": float(cfg.get("timeout_seconds", 65)),
                "poll_interval_seconds": float(cfg.get("poll_interval_seconds", 2)),
                "poll_timeout_seconds": float(cfg.get("poll_timeout_seconds", 60)),
                "poll_request_timeout_seconds": float(cfg.get("poll_request_timeout_seconds", 15)),
            }
        return {"timeout_seconds": float(self.config.get("llm", {}).get("timeout_seconds", 300))}

    def _build(self, route: ProviderRoute, model: str) -> Any:
        api_key = getattr(self.credentials, route.credential, "")
        if not api_key:
            raise GenerationError(ErrorKind.MISSING_CREDENTIAL, route.missing_key_message)
        factory = self.factories[route.vendor]
        return factory(api_key=api_key, model=model, hooks=self.hooks, **self._options(route.vendor))

    def text_provider(self, model: str) -> Any:
        model = (model or "").strip()
        route = match_text_route(model, self.routes)
        if route is None:
            raise GenerationError(ErrorKind.UNKNOWN_MODEL, f"Unknown text model: {model}")
        return self._build(route, model)

    def image_provider(self, model: str) -> Any:
        model = (model or "").strip()
        if not getattr(self.credentials, IMAGE_ROUTE.credential, ""):
            raise GenerationError(ErrorKind.MISSING_CREDENTIAL, IMAGE_ROUTE.missing_key_message)
        if not model:
            raise GenerationError(ErrorKind.MISSING_MODEL_CONFIG, "Image model is not configured.")
        return self._build(IMAGE_ROUTE, model)
