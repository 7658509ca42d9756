import json

import pytest

from demo_content_agent.config import DEFAULT_SETTINGS, ProviderCredentials
from demo_content_agent.content_store import CATEGORY, TAG, SqliteContentStore, get_connection
from demo_content_agent.llm.registry import ProviderRegistry
from demo_content_agent.llm.types import ErrorKind, GenerationError
from demo_content_agent.orchestrator import ContentGenerator


class FakeTextProvider:
    name = "fake-text"

    def __init__(self, reply):
        self.reply = reply
        self.model = ""
        self.prompts = []

    def send_prompt(self, prompt, system_message=""):
        self.prompts.append(prompt)
        return self.reply


def _generator(tmp_path, reply, credentials=None):
    store = SqliteContentStore(str(tmp_path / "app.db"), str(tmp_path / "uploads"))
    provider = FakeTextProvider(reply)
    credentials = credentials or ProviderCredentials(openai="sk")
    registry = ProviderRegistry(
        DEFAULT_SETTINGS, credentials, factories={"openai": lambda api_key, model, hooks, **opts: provider}
    )
    return ContentGenerator(DEFAULT_SETTINGS, credentials, store, registry=registry), store, provider


def test_terms_are_created_and_assigned_to_every_matching_item(tmp_path):
    plan = {
        "categories": [
            {"name": "Baking", "slug": "baking-101", "description": "Ovens.", "posts": ["Bread", "Cake", "Ghost"]},
            {"name": "", "posts": ["Bread"]},
        ],
        "tags": [{"name": "flour", "posts": ["Bread"]}],
    }
    generator, store, provider = _generator(tmp_path, "```json\n" + json.dumps(plan) + "\n```")
    bread_a = store.create_post("Bread", "", "post")
    bread_b = store.create_post("Bread", "", "post")
    cake = store.create_post("Cake", "", "post")
    items = [
        {"post_id": bread_a, "title": "Bread"},
        {"post_id": bread_b, "title": "Bread"},
        {"post_id": cake, "title": "Cake"},
    ]

    summary = generator.generate_taxonomies(items, "gpt-4o-mini", categories=True, tags=True)

    baking = store.find_term("Baking", CATEGORY)
    flour = store.find_term("flour", TAG)
    assert summary["categories_created"] == 1
    assert summary["tags_created"] == 1
    assert summary["assignments"] == [
        {"post_id": bread_a, "term_id": baking, "type": "category"},
        {"post_id": bread_b, "term_id": baking, "type": "category"},
        {"post_id": cake, "term_id": baking, "type": "category"},
        {"post_id": bread_a, "term_id": flour, "type": "tag"},
        {"post_id": bread_b, "term_id": flour, "type": "tag"},
    ]
    assert store.get_term(baking)["slug"] == "baking-101"
    assert store.get_term(baking)["description"] == "Ovens."
    assert '["Bread", "Bread", "Cake"]' in provider.prompts[0]


def test_existing_terms_are_not_counted_and_unrequested_kinds_are_ignored(tmp_path):
    plan = {"categories": [{"name": "News", "posts": ["A"]}], "tags": [{"name": "t", "posts": ["A"]}]}
    generator, store, _ = _generator(tmp_path, json.dumps(plan))
    existing = store.create_term("News", CATEGORY)
    post_id = store.create_post("A", "", "post")

    summary = generator.generate_taxonomies([{"post_id": post_id, "title": "A"}], "gpt-4o", categories=True)

    assert summary == {
        "categories_created": 0,
        "tags_created": 0,
        "assignments": [{"post_id": post_id, "term_id": existing, "type": "category"}],
    }
    assert store.find_term("t", TAG) is None


@pytest.mark.parametrize(
    "items,categories,tags,message",
    [
        ([{"post_id": 1, "title": "A"}], False, False, "No categories or tags requested."),
        ([], True, False, "No posts were provided for taxonomy generation."),
    ],
)
def test_validation(tmp_path, items, categories, tags, message):
    generator, _, provider = _generator(tmp_path, "{}")
    with pytest.raises(GenerationError) as excinfo:
        generator.generate_taxonomies(items, "gpt-4o", categories=categories, tags=tags)
    assert excinfo.value.kind == ErrorKind.VALIDATION_FAILURE
    assert excinfo.value.message == message
    assert provider.prompts == []


def test_malformed_plan_is_reported(tmp_path):
    generator, _, _ = _generator(tmp_path, "categories: nope")
    with pytest.raises(GenerationError) as excinfo:
        generator.generate_taxonomies([{"post_id": 1, "title": "A"}], "gpt-4o", tags=True)
    assert excinfo.value.kind == ErrorKind.MALFORMED_UPSTREAM_JSON
    assert excinfo.value.message == "The AI returned an invalid JSON structure for taxonomies."


def test_unknown_model_is_rejected(tmp_path):
    generator, _, _ = _generator(tmp_path, "{}")
    with pytest.raises(GenerationError) as excinfo:
        generator.generate_taxonomies([{"post_id": 1, "title": "A"}], "llama-3", tags=True)
    assert excinfo.value.kind == ErrorKind.UNKNOWN_MODEL


def test_term_lookup_failure_is_persistence_failure(tmp_path):
    plan = {"categories": [{"name": "Baking", "posts": ["Bread"]}]}
    generator, store, _ = _generator(tmp_path, json.dumps(plan))
    post_id = store.create_post("Bread", "", "post")
    with get_connection(store.db_path) as conn:
        conn.execute("PRAGMA foreign_keys = OFF")
        conn.execute("DROP TABLE terms")
        conn.commit()

    with pytest.raises(GenerationError) as excinfo:
        generator.generate_taxonomies([{"post_id": post_id, "title": "Bread"}], "gpt-4o-mini", categories=True)

    assert excinfo.value.kind == ErrorKind.PERSISTENCE_FAILURE
    assert excinfo.value.message.startswith("Content store read failed")
