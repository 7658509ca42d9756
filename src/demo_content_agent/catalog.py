"""Known model ids, labels and defaults."""

from __future__ import annotations

from typing import Dict

GOOGLE_MODELS: Dict[str, str] = {
    "gemini-3-pro-preview": "Gemini 3 Pro Preview",
    "gemini-2.5-pro": "Gemini 2.5 Pro",
    "gemini-2.5-flash": "Gemini 2.5 Flash",
    "gemini-2.5-flash-lite": "Gemini 2.5 Flash Lite",
    "gemma-3-27b-it": "Gemma 3 27B",
}

OPENAI_MODELS: Dict[str, str] = {
    "gpt-5.1": "GPT-5.1",
    "gpt-5": "GPT-5",
    "gpt-5-mini": "GPT-5 mini",
    "gpt-5-nano": "GPT-5 nano",
    "gpt-5-chat-latest": "ChatGPT-5-latest",
    "gpt-4.5-preview": "GPT-4.5 Preview",
    "gpt-4.1": "GPT-4.1",
    "gpt-4.1-mini": "GPT-4.1 mini",
    "gpt-4.1-nano": "GPT-4.1 nano",
    "gpt-4o": "GPT-4o",
    "gpt-4o-mini": "GPT-4o mini",
    "chatgpt-4o-latest": "ChatGPT-4o-latest",
}

REPLICATE_MODELS: Dict[str, str] = {
    "google/nano-banana-pro": "Gemini 3 Pro Image (Nano-Banana Pro)",
    "google/gemini-2.5-flash-image": "Gemini 2.5 Flash Image (Nano-Banana)",
    "google/imagen-4": "Imagen 4",
    "google/imagen-4-ultra": "Imagen 4 Ultra",
    "google/imagen-4-fast": "Imagen 4 Fast",
    "google/imagen-3": "Imagen 3",
    "google/imagen-3-fast": "Imagen 3 Fast",
    "black-forest-labs/flux-1.1-pro": "Flux 1.1 Pro",
    "black-forest-labs/flux-dev": "Flux Dev",
    "black-forest-labs/flux-schnell": "Flux Schnell",
    "black-forest-labs/flux-pro": "Flux Pro",
    "recraft-ai/recraft-v3": "Recraft v3",
    "ideogram-ai/ideogram-v3-turbo": "Ideogram v3 Turbo",
    "ideogram-ai/ideogram-v3-quality": "Ideogram v3 Quality",
    "ideogram-ai/ideogram-v3-balanced": "Ideogram v3 Balanced",
    "bytedance/seedream-4.5": "Seedream 4.5",
}

DEFAULT_TEXT_MODEL = "gpt-4o-mini"
DEFAULT_IMAGE_MODEL = "black-forest-labs/flux-dev"


def text_models() -> Dict[str, str]:
    return {**GOOGLE_MODELS, **OPENAI_MODELS}


def image_models() -> Dict[str, str]:
    return dict(REPLICATE_MODELS)
