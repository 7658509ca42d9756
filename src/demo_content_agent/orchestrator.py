"""Generation operations: title batches, single items, taxonomy plans."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterable, List

from . import hooks as hook_names
from .config import ProviderCredentials, default_image_model, default_text_model
from .content_store import CATEGORY, DEFAULT_CATEGORY_SLUG, TAG, ContentStore, ContentStoreError
from .hooks import FilterHooks, apply_hooks
from .llm.registry import ProviderRegistry
from .llm.types import ErrorKind, GenerationError
from .markup import sanitize_post_markup
from .normalizers import (
    list_field,
    normalize_page_title_items,
    normalize_post_title_items,
    parse_ai_json,
    sanitize_term_names,
)
from .prompts import build_image_prompt, build_post_prompt, build_taxonomy_prompt, build_titles_prompt
from .utils import sanitize_text_field, sanitize_textarea_field, slugify

logger = logging.getLogger(__name__)

POST_TYPES = ("post", "page")
TAXONOMY_TYPES = ((CATEGORY, "categories", "category"), (TAG, "tags", "tag"))


def _persist(action: Callable[[], Any]) -> Any:
    try:
        return action()
    except ContentStoreError as exc:
        raise GenerationError(ErrorKind.PERSISTENCE_FAILURE, str(exc)) from exc


class ContentGenerator:
    """Stateless across calls; every operation either returns a result dict or raises GenerationError."""

    def __init__(
        self,
        config: Dict[str, Any],
        credentials: ProviderCredentials,
        store: ContentStore,
        hooks: FilterHooks | None = None,
        registry: ProviderRegistry | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.hooks = hooks
        self.registry = registry or ProviderRegistry(config, credentials, hooks=hooks)

    def _record_call(self, stage: str, provider: Any, ok: bool, started: float) -> None:
        latency_ms = getattr(provider, "last_latency_ms", 0) or int((time.perf_counter() - started) * 1000)
        try:
            self.store.log_llm_call(
                stage=stage,
                provider=getattr(provider, "name", type(provider).__name__),
                model=getattr(provider, "model", ""),
                latency_ms=latency_ms,
                ok=ok,
            )
        except ContentStoreError as exc:
            logger.warning("Could not record %s call: %s", stage, exc)

    def _call(self, stage: str, provider: Any, prompt: str, *args: Any) -> Any:
        started = time.perf_counter()
        ok = False
        try:
            result = provider.send_prompt(prompt, *args)
            ok = True
            return result
        except GenerationError as exc:
            logger.warning("%s call failed (%s): %s", stage, exc.kind.value, exc.message)
            raise
        finally:
            self._record_call(stage, provider, ok, started)

    def _text_model(self, model: str) -> str:
        return sanitize_text_field(model) or default_text_model(self.config)

    def generate_titles(
        self,
        posts: int,
        pages: int,
        model: str,
        instructions: str = "",
        generate_images: bool = True,
    ) -> Dict[str, List[Dict[str, Any]]]:
        posts = max(0, int(posts or 0))
        pages = max(0, int(pages or 0))
        if posts <= 0 and pages <= 0:
            raise GenerationError(ErrorKind.VALIDATION_FAILURE, "You must request at least one post or page.")

        provider = self.registry.text_provider(self._text_model(model))
        site = self.config.get("site", {})
        prompt = build_titles_prompt(
            posts,
            pages,
            instructions,
            generate_images=generate_images,
            site_name=str(site.get("name") or ""),
            site_description=str(site.get("description") or ""),
        )
        prompt = apply_hooks(
            self.hooks,
            hook_names.TITLES_PROMPT,
            prompt,
            posts=posts,
            pages=pages,
            instructions=instructions,
            generate_images=generate_images,
        )
        logger.info("Requesting %d post and %d page titles from %s", posts, pages, provider.model)
        data = parse_ai_json(self._call("titles", provider, prompt), "titles")

        post_items = normalize_post_title_items(list_field(data, "posts"), include_illustrations=generate_images)
        page_items = normalize_page_title_items(list_field(data, "pages"))
        return {
            "posts": [item.to_dict() for item in post_items[:posts]],
            "pages": page_items[:pages],
        }

    def _find_or_create_term(self, name: str, taxonomy: str, slug: str = "", description: str = "") -> tuple[int, bool]:
        existing = _persist(lambda: self.store.find_term(name, taxonomy))
        if existing:
            return existing, False
        term_id = _persist(
            lambda: self.store.create_term(name, taxonomy, slug=slugify(slug or name), description=description)
        )
        return term_id, True

    def _assign_terms(self, post_id: int, names: Iterable[str], taxonomy: str) -> List[int]:
        assigned: List[int] = []
        for name in names:
            term_id, _ = self._find_or_create_term(name, taxonomy)
            _persist(lambda: self.store.set_post_terms(post_id, [term_id], taxonomy, append=True))
            assigned.append(term_id)
        return assigned

    def _drop_default_category(self, post_id: int, assigned: List[int]) -> None:
        default_id = _persist(lambda: self.store.get_term_by_slug(DEFAULT_CATEGORY_SLUG, CATEGORY))
        if not default_id:
            return
        if any(term_id != default_id for term_id in assigned):
            _persist(lambda: self.store.remove_post_terms(post_id, [default_id], CATEGORY))

    def _attach_image(
        self,
        post_id: int,
        post_type: str,
        title: str,
        image_model: str,
        illustration: str,
        instructions: str,
    ) -> int:
        provider = self.registry.image_provider(sanitize_text_field(image_model) or default_image_model(self.config))
        prompt = build_image_prompt(post_type, title, illustration=illustration, instructions=instructions)
        prompt = apply_hooks(
            self.hooks,
            hook_names.IMAGE_PROMPT,
            prompt,
            post_type=post_type,
            title=title,
            post_id=post_id,
            illustration=illustration,
            instructions=instructions,
            image_model=provider.model,
        )
        image_bytes = self._call("image", provider, prompt)
        stem = f"demo-{post_type}-{post_id}-{int(time.time())}"
        media_id = self.store.attach_media(image_bytes, post_id, stem)
        self.store.set_featured_image(post_id, media_id)
        return media_id

    def generate_item(
        self,
        title: str,
        post_type: str,
        model: str,
        instructions: str = "",
        generate_image: bool = False,
        image_model: str = "",
        categories: Iterable[Any] | None = None,
        tags: Iterable[Any] | None = None,
        illustration_description: str = "",
    ) -> Dict[str, Any]:
        title = sanitize_text_field(title)
        post_type = str(post_type or "")
        category_names = sanitize_term_names(list(categories or []))
        tag_names = sanitize_term_names(list(tags or []))
        illustration = sanitize_textarea_field(illustration_description)
        instructions = str(instructions or "")

        if not title:
            raise GenerationError(ErrorKind.VALIDATION_FAILURE, "Title is required.")
        if post_type not in POST_TYPES:
            raise GenerationError(ErrorKind.VALIDATION_FAILURE, "Only posts and pages are supported.")

        provider = self.registry.text_provider(self._text_model(model))
        prompt = build_post_prompt(title, post_type, instructions)
        prompt = apply_hooks(
            self.hooks,
            hook_names.POST_PROMPT,
            prompt,
            title=title,
            post_type=post_type,
            instructions=instructions,
        )
        html = self._call("post", provider, prompt)
        content = sanitize_post_markup(str(html).strip())
        post_id = _persist(lambda: self.store.create_post(title, content, post_type))
        logger.info("Created %s %d: %s", post_type, post_id, title)

        if post_type == "post":
            assigned = self._assign_terms(post_id, category_names, CATEGORY)
            if assigned:
                self._drop_default_category(post_id, assigned)
            self._assign_terms(post_id, tag_names, TAG)

        result: Dict[str, Any] = {
            "post_id": post_id,
            "title": title,
            "post_type": post_type,
            "attachment_id": 0,
            "categories": category_names,
            "tags": tag_names,
        }

        if generate_image:
            try:
                result["attachment_id"] = self._attach_image(
                    post_id, post_type, title, image_model, illustration, instructions
                )
            except (GenerationError, ContentStoreError) as exc:
                message = exc.message if isinstance(exc, GenerationError) else str(exc)
                logger.warning("Image for %s %d failed: %s", post_type, post_id, message)
                result["image_error"] = message

        return result

    def generate_taxonomies(
        self,
        items: Iterable[Dict[str, Any]],
        model: str,
        categories: bool = False,
        tags: bool = False,
        instructions: str = "",
    ) -> Dict[str, Any]:
        items = list(items or [])
        if not categories and not tags:
            raise GenerationError(ErrorKind.VALIDATION_FAILURE, "No categories or tags requested.")
        if not items:
            raise GenerationError(ErrorKind.VALIDATION_FAILURE, "No posts were provided for taxonomy generation.")

        provider = self.registry.text_provider(self._text_model(model))
        prompt = build_taxonomy_prompt(items, categories, tags, instructions)
        prompt = apply_hooks(
            self.hooks,
            hook_names.TAXONOMY_PROMPT,
            prompt,
            items=items,
            categories=categories,
            tags=tags,
            instructions=instructions,
        )
        data = parse_ai_json(self._call("taxonomies", provider, prompt), "taxonomies")

        title_to_ids: Dict[str, List[int]] = {}
        for item in items:
            if not item.get("title") or not item.get("post_id"):
                continue
            title_to_ids.setdefault(str(item["title"]), []).append(int(item["post_id"]))

        summary: Dict[str, Any] = {"categories_created": 0, "tags_created": 0, "assignments": []}
        requested = {CATEGORY: categories, TAG: tags}

        for taxonomy, key, label in TAXONOMY_TYPES:
            if not requested[taxonomy]:
                continue
            for entry in list_field(data, key):
                if not isinstance(entry, dict) or not entry.get("name"):
                    continue
                name = sanitize_text_field(entry["name"])
                if not name:
                    continue
                term_id, created = self._find_or_create_term(
                    name,
                    taxonomy,
                    slug=sanitize_text_field(entry.get("slug") or ""),
                    description=sanitize_textarea_field(entry.get("description") or ""),
                )
                if created:
                    summary[f"{key}_created"] += 1

                members = entry.get("posts")
                if not isinstance(members, list):
                    continue
                for member in members:
                    for post_id in title_to_ids.get(str(member), []):
                        _persist(lambda: self.store.set_post_terms(post_id, [term_id], taxonomy, append=True))
                        summary["assignments"].append({"post_id": post_id, "term_id": term_id, "type": label})

        logger.info(
            "Taxonomies: %d categories and %d tags created, %d assignments",
            summary["categories_created"],
            summary["tags_created"],
            len(summary["assignments"]),
        )
        return summary
