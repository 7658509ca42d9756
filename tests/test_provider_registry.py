import pytest

from demo_content_agent.config import DEFAULT_SETTINGS, ProviderCredentials
from demo_content_agent.llm.providers.gemini_provider import GeminiProvider
from demo_content_agent.llm.providers.openai_provider import OpenAIProvider
from demo_content_agent.llm.providers.replicate_provider import ReplicateProvider
from demo_content_agent.llm.registry import ProviderRegistry, match_text_route
from demo_content_agent.llm.types import ErrorKind, GenerationError

ALL_KEYS = ProviderCredentials(openai="sk", google="g", replicate="r8")


@pytest.mark.parametrize(
    "model,vendor",
    [
        ("gpt-4o-mini", "openai"),
        ("gpt-5.1", "openai"),
        ("chatgpt-4o-latest", "openai"),
        ("gemini-2.5-flash", "gemini"),
        ("gemma-3-27b-it", "gemini"),
    ],
)
def test_routes_match_by_prefix(model, vendor):
    assert match_text_route(model).vendor == vendor


def test_unknown_model_has_no_route():
    assert match_text_route("claude-3-opus") is None
    with pytest.raises(GenerationError) as excinfo:
        ProviderRegistry(DEFAULT_SETTINGS, ALL_KEYS).text_provider("claude-3-opus")
    assert excinfo.value.kind == ErrorKind.UNKNOWN_MODEL


def test_text_providers_are_built_with_configured_timeout():
    config = {**DEFAULT_SETTINGS, "llm": {"timeout_seconds": 42}}
    registry = ProviderRegistry(config, ALL_KEYS)

    openai = registry.text_provider("gpt-4o")
    gemini = registry.text_provider("gemini-2.5-pro")

    assert isinstance(openai, OpenAIProvider) and openai.model == "gpt-4o"
    assert isinstance(gemini, GeminiProvider) and gemini.model == "gemini-2.5-pro"
    assert openai.timeout_seconds == 42


def test_missing_credential_is_distinct_from_unknown_model():
    registry = ProviderRegistry(DEFAULT_SETTINGS, ProviderCredentials(openai="sk"))
    with pytest.raises(GenerationError) as excinfo:
        registry.text_provider("gemini-2.5-flash")
    assert excinfo.value.kind == ErrorKind.MISSING_CREDENTIAL
    assert excinfo.value.message == "Google Gemini API key is missing."


def test_image_provider_requires_key_and_model():
    with pytest.raises(GenerationError) as excinfo:
        ProviderRegistry(DEFAULT_SETTINGS, ProviderCredentials(openai="sk")).image_provider("black-forest-labs/flux-dev")
    assert excinfo.value.kind == ErrorKind.MISSING_CREDENTIAL

    with pytest.raises(GenerationError) as excinfo:
        ProviderRegistry(DEFAULT_SETTINGS, ALL_KEYS).image_provider("  ")
    assert excinfo.value.kind == ErrorKind.MISSING_MODEL_CONFIG

    provider = ProviderRegistry(DEFAULT_SETTINGS, ALL_KEYS).image_provider("google/imagen-4")
    assert isinstance(provider, ReplicateProvider)
    assert provider.poll_timeout_seconds == 60


def test_factories_can_be_replaced():
    built = {}

    def factory(api_key, model, hooks, **options):
        built.update(api_key=api_key, model=model, options=options)
        return "stub"

    registry = ProviderRegistry(DEFAULT_SETTINGS, ALL_KEYS, factories={"openai": factory})
    assert registry.text_provider("gpt-4o-mini") == "stub"
    assert built["api_key"] == "sk"
    assert built["options"] == {"timeout_seconds": 300.0}
