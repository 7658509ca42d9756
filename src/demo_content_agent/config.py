"""Configuration loading, defaults and provider credentials."""

from __future__ import annotations

import os
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from .catalog import DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL

DEFAULT_SETTINGS: Dict[str, Any] = {
    "database": {
        "path": "data/demo_content.db",
    },
    "uploads": {
        "path": "data/uploads",
    },
    "site": {
        "name": "Demo Site",
        "description": "",
    },
    "models": {
        "default_text_model": DEFAULT_TEXT_MODEL,
        "default_image_model": DEFAULT_IMAGE_MODEL,
    },
    "llm": {
        "timeout_seconds": 300,
    },
    "replicate": {
        "timeout_seconds": 65,
        "poll_interval_seconds": 2,
        "poll_timeout_seconds": 60,
        "poll_request_timeout_seconds": 15,
    },
    "api": {
        "host": "127.0.0.1",
        "port": 8000,
        "token_env": "DEMO_CONTENT_API_TOKEN",
    },
    "run": {
        "posts": 5,
        "pages": 2,
        "categories": True,
        "tags": True,
        "images": False,
        "instructions": "",
    },
}


@dataclass(frozen=True)
class ProviderCredentials:
    openai: str = ""
    google: str = ""
    replicate: str = ""


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(settings_path: str = "config/settings.yaml") -> Dict[str, Any]:
    """Loads settings.yaml and merges it onto defaults."""
    merged = deepcopy(DEFAULT_SETTINGS)
    config_path = Path(settings_path)
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as f:
            user_cfg = yaml.safe_load(f) or {}
        merged = _deep_merge(merged, user_cfg)
    return merged


def _first_env(env: Mapping[str, str], *names: str) -> str:
    for name in names:
        value = (env.get(name) or "").strip()
        if value:
            return value
    return ""


def load_credentials(env: Mapping[str, str] | None = None) -> ProviderCredentials:
    """Reads vendor keys from the environment, honouring the usual aliases."""
    source = os.environ if env is None else env
    return ProviderCredentials(
        openai=_first_env(source, "OPENAI_API_KEY"),
        google=_first_env(source, "GEMINI_API_KEY", "GOOGLE_API_KEY"),
        replicate=_first_env(source, "REPLICATE_API_TOKEN", "REPLICATE_API_KEY"),
    )


def api_token(config: Dict[str, Any], env: Mapping[str, str] | None = None) -> str:
    source = os.environ if env is None else env
    token_env = config.get("api", {}).get("token_env", "DEMO_CONTENT_API_TOKEN")
    return (source.get(token_env) or "").strip()


def default_text_model(config: Dict[str, Any]) -> str:
    return str(config.get("models", {}).get("default_text_model") or DEFAULT_TEXT_MODEL)


def default_image_model(config: Dict[str, Any]) -> str:
    return str(config.get("models", {}).get("default_image_model") or "").strip()
