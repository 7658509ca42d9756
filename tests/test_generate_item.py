from io import BytesIO

import pytest
from PIL import Image

from demo_content_agent.config import DEFAULT_SETTINGS, ProviderCredentials
from demo_content_agent.content_store import CATEGORY, TAG, SqliteContentStore, get_connection
from demo_content_agent.hooks import IMAGE_PROMPT, FilterHooks
from demo_content_agent.llm.registry import ProviderRegistry
from demo_content_agent.llm.types import ErrorKind, GenerationError, ProviderError
from demo_content_agent.orchestrator import ContentGenerator

BODY = "<!-- wp:paragraph -->\n<p>Hello<script>x()</script></p>\n<!-- /wp:paragraph -->"


def _png_bytes():
    buf = BytesIO()
    Image.new("RGB", (8, 6), "white").save(buf, format="PNG")
    return buf.getvalue()


class FakeTextProvider:
    name = "fake-text"
    last_latency_ms = 5

    def __init__(self, reply, model=""):
        self.reply = reply
        self.model = model
        self.prompts = []

    def send_prompt(self, prompt, system_message=""):
        self.prompts.append(prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


class FakeImageProvider:
    name = "fake-image"

    def __init__(self, reply, model=""):
        self.reply = reply
        self.model = model
        self.prompts = []

    def send_prompt(self, prompt):
        self.prompts.append(prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


def _generator(tmp_path, text_reply=BODY, image_reply=None, credentials=None, hooks=None, config=DEFAULT_SETTINGS):
    store = SqliteContentStore(str(tmp_path / "app.db"), str(tmp_path / "uploads"))
    text = FakeTextProvider(text_reply)
    image = FakeImageProvider(image_reply if image_reply is not None else _png_bytes())

    def text_factory(api_key, model, hooks, **options):
        text.model = model
        return text

    def image_factory(api_key, model, hooks, **options):
        image.model = model
        return image

    credentials = credentials or ProviderCredentials(openai="sk", google="g", replicate="r8")
    registry = ProviderRegistry(
        config,
        credentials,
        hooks=hooks,
        factories={"openai": text_factory, "gemini": text_factory, "replicate": image_factory},
    )
    generator = ContentGenerator(config, credentials, store, hooks=hooks, registry=registry)
    return generator, store, text, image


def test_post_is_persisted_with_sanitized_markup_and_terms(tmp_path):
    generator, store, text, _ = _generator(tmp_path)

    result = generator.generate_item(
        "First Post", "post", "gpt-4o-mini", categories=["News", {"name": "Tips"}], tags=["bread"]
    )

    post = store.get_post(result["post_id"])
    assert post["content"] == "<!-- wp:paragraph -->\n<p>Hello</p>\n<!-- /wp:paragraph -->"
    assert result["categories"] == ["News", "Tips"]
    assert result["tags"] == ["bread"]
    assert result["attachment_id"] == 0
    assert "image_error" not in result
    assert 'titled: "First Post"' in text.prompts[0]

    category_ids = store.get_post_terms(result["post_id"], CATEGORY)
    assert category_ids == sorted([store.find_term("News", CATEGORY), store.find_term("Tips", CATEGORY)])
    assert store.get_post_terms(result["post_id"], TAG) == [store.find_term("bread", TAG)]
    assert store.list_llm_calls()[0]["stage"] == "post"


def test_zero_categories_keeps_uncategorized(tmp_path):
    generator, store, _, _ = _generator(tmp_path)
    default_id = store.get_term_by_slug("uncategorized", CATEGORY)

    result = generator.generate_item("Plain", "post", "gpt-4o-mini")

    assert store.get_post_terms(result["post_id"], CATEGORY) == [default_id]


def test_existing_category_is_reused_by_exact_name(tmp_path):
    generator, store, _, _ = _generator(tmp_path)
    existing = store.create_term("News", CATEGORY)

    result = generator.generate_item("Reuse", "post", "gpt-4o-mini", categories=["News"])

    assert store.get_post_terms(result["post_id"], CATEGORY) == [existing]


def test_pages_never_receive_terms(tmp_path):
    generator, store, _, _ = _generator(tmp_path)

    result = generator.generate_item("About", "page", "gemini-2.5-flash", categories=["News"], tags=["x"])

    assert store.get_post_terms(result["post_id"], CATEGORY) == []
    assert store.get_post_terms(result["post_id"], TAG) == []
    assert store.find_term("News", CATEGORY) is None


@pytest.mark.parametrize(
    "title,post_type,message",
    [("", "post", "Title is required."), ("Hi", "attachment", "Only posts and pages are supported.")],
)
def test_invalid_input_is_validation_failure(tmp_path, title, post_type, message):
    generator, _, text, _ = _generator(tmp_path)
    with pytest.raises(GenerationError) as excinfo:
        generator.generate_item(title, post_type, "gpt-4o-mini")
    assert excinfo.value.kind == ErrorKind.VALIDATION_FAILURE
    assert excinfo.value.message == message
    assert text.prompts == []


def test_provider_failure_short_circuits_before_persisting(tmp_path):
    generator, store, _, _ = _generator(
        tmp_path, text_reply=ProviderError(ErrorKind.VENDOR_REJECTED, "OpenAI API error (429): slow down")
    )
    with pytest.raises(ProviderError) as excinfo:
        generator.generate_item("Hi", "post", "gpt-4o-mini")

    assert excinfo.value.message == "OpenAI API error (429): slow down"
    assert store.get_post(1) is None
    assert store.list_llm_calls()[0]["ok"] == 0


def test_featured_image_is_stored_and_set(tmp_path):
    hooks = FilterHooks()
    hooks.add(IMAGE_PROMPT, lambda prompt, **ctx: prompt + f" [{ctx['post_id']}]")
    generator, store, _, image = _generator(tmp_path, hooks=hooks)

    result = generator.generate_item(
        "Sourdough",
        "post",
        "gpt-4o-mini",
        instructions="rustic bakery",
        generate_image=True,
        image_model="black-forest-labs/flux-dev",
        illustration_description="a crusty loaf",
    )

    media = store.get_media(result["attachment_id"])
    assert media["filename"].startswith(f"demo-post-{result['post_id']}-")
    assert media["filename"].endswith(".png")
    assert media["mime_type"] == "image/png"
    assert (media["width"], media["height"]) == (8, 6)
    assert store.get_post(result["post_id"])["featured_media_id"] == result["attachment_id"]
    assert image.prompts == [
        'Featured image for a WordPress post titled "Sourdough". '
        f"Visual direction: a crusty loaf Site context: rustic bakery [{result['post_id']}]"
    ]


def test_missing_image_key_is_reported_but_post_survives(tmp_path):
    generator, store, _, _ = _generator(tmp_path, credentials=ProviderCredentials(openai="sk"))

    result = generator.generate_item("No image", "post", "gpt-4o-mini", generate_image=True, image_model="x/y")

    assert result["image_error"] == "Replicate API key is missing."
    assert result["attachment_id"] == 0
    assert store.get_post(result["post_id"]) is not None


def test_unreadable_image_bytes_degrade_to_image_error(tmp_path):
    generator, store, _, _ = _generator(tmp_path, image_reply=b"not an image")

    result = generator.generate_item("Broken", "post", "gpt-4o-mini", generate_image=True, image_model="x/y")

    assert result["image_error"] == "Generated image could not be read."
    assert store.get_post(result["post_id"])["featured_media_id"] is None


def test_image_poll_timeout_degrades_to_image_error(tmp_path):
    generator, _, _, _ = _generator(
        tmp_path, image_reply=ProviderError(ErrorKind.POLL_TIMEOUT, "Replicate prediction did not finish.")
    )
    result = generator.generate_item("Slow", "page", "gpt-4o-mini", generate_image=True, image_model="x/y")
    assert result["image_error"] == "Replicate prediction did not finish."


def _drop_table(store, table):
    with get_connection(store.db_path) as conn:
        conn.execute("PRAGMA foreign_keys = OFF")
        conn.execute(f"DROP TABLE {table}")
        conn.commit()


def test_store_failure_is_persistence_failure_and_leaves_no_post(tmp_path):
    generator, store, _, _ = _generator(tmp_path)
    _drop_table(store, "terms")

    with pytest.raises(GenerationError) as excinfo:
        generator.generate_item("Hello", "post", "gpt-4o-mini", categories=["News"])

    assert excinfo.value.kind == ErrorKind.PERSISTENCE_FAILURE
    assert "no such table: terms" in excinfo.value.message
    assert store.get_post(1) is None


def test_blank_default_image_model_is_reported_as_image_error(tmp_path):
    config = {**DEFAULT_SETTINGS, "models": {**DEFAULT_SETTINGS["models"], "default_image_model": ""}}
    generator, store, _, image = _generator(tmp_path, config=config)

    result = generator.generate_item("No model", "post", "gpt-4o-mini", generate_image=True, image_model="")

    assert result["image_error"] == "Image model is not configured."
    assert result["attachment_id"] == 0
    assert image.prompts == []
    assert store.get_post(result["post_id"]) is not None
