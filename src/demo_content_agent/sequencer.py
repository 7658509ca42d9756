"""Run loop: titles first, then one item at a time, with pause/resume."""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List

from .client import GenerationClient
from .config import default_image_model, default_text_model
from .llm.types import ErrorKind, GenerationError
from .utils import sanitize_text_field, truncate_message

logger = logging.getLogger(__name__)

TITLES_HEAD = 3
ITEMS_START = 8
ITEMS_SPAN = 82

EventHandler = Callable[[str, Dict[str, Any]], None]


class RunState(str, Enum):
    IDLE = "idle"
    FETCHING_TITLES = "fetching-titles"
    PROCESSING_ITEMS = "processing-items"
    COMPLETED = "completed"
    FAILED = "failed"


class RunInProgressError(RuntimeError):
    pass


@dataclass
class RunOptions:
    posts: int = 0
    pages: int = 0
    instructions: str = ""
    text_model: str = ""
    image_model: str = ""
    generate_images: bool = False
    categories: bool = True
    tags: bool = True
    taxonomy_pass: bool = False

    @classmethod
    def from_settings(cls, config: Dict[str, Any], **overrides: Any) -> "RunOptions":
        run = config.get("run", {})
        options = cls(
            posts=int(run.get("posts", 0)),
            pages=int(run.get("pages", 0)),
            instructions=str(run.get("instructions") or ""),
            text_model=default_text_model(config),
            image_model=default_image_model(config),
            generate_images=bool(run.get("images", False)),
            categories=bool(run.get("categories", True)),
            tags=bool(run.get("tags", True)),
        )
        for key, value in overrides.items():
            if value is not None:
                setattr(options, key, value)
        return options


@dataclass
class GenerationTask:
    kind: str
    title: str
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    illustration_description: str = ""
    status: str = "pending"
    note: str = ""
    post_id: int | None = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Progress:
    value: int = 0
    label: str = ""


def item_progress(index: int, total: int) -> int:
    return ITEMS_START + round(((index + 1) / total) * ITEMS_SPAN)


def failure_message(exc: Exception) -> str:
    if isinstance(exc, GenerationError):
        return exc.message or "Something went wrong."
    return truncate_message(sanitize_text_field(str(exc))) or "Something went wrong."


class GenerationSequencer:
    """Drives one run at a time; per-item failures never abort the run.

    Pause only takes effect between items: a call already sent to the
    client always finishes first.
    """

    def __init__(self, client: GenerationClient, on_event: EventHandler | None = None) -> None:
        self.client = client
        self.on_event = on_event
        self.state = RunState.IDLE
        self.tasks: List[GenerationTask] = []
        self.logs: List[Dict[str, Any]] = []
        self.progress = Progress()
        self.error_message = ""
        self.taxonomy_summary: Dict[str, Any] | None = None
        self._run_lock = threading.Lock()
        self._resume = threading.Event()
        self._resume.set()
        self._running = False

    def _emit(self, kind: str, payload: Dict[str, Any]) -> None:
        if self.on_event is not None:
            self.on_event(kind, payload)

    def _log(self, message: str, error: bool = False) -> None:
        entry = {"message": message, "error": error}
        self.logs.append(entry)
        if error:
            logger.warning(message)
        else:
            logger.info(message)
        self._emit("log", entry)

    def _set_progress(self, value: int, label: str) -> None:
        self.progress = Progress(value=value, label=label)
        self._emit("progress", asdict(self.progress))

    def _set_state(self, state: RunState) -> None:
        self.state = state
        self._emit("state", {"state": state.value})

    def _update_task(self, index: int, status: str, note: str = "", post_id: int | None = None) -> None:
        task = self.tasks[index]
        task.status = status
        task.note = note
        if post_id is not None:
            task.post_id = post_id
        self._emit("task", {"index": index, "task": task.to_dict()})

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_paused(self) -> bool:
        return not self._resume.is_set()

    def pause(self) -> bool:
        if not self._running or self.is_paused:
            return False
        self._resume.clear()
        self._log("Pausing after the current item...")
        self._set_progress(self.progress.value, "Pausing...")
        return True

    def resume(self) -> bool:
        if not self._running or not self.is_paused:
            return False
        self._log("Resuming...")
        self._set_progress(self.progress.value, "Resuming...")
        self._resume.set()
        return True

    def _wait_while_paused(self) -> None:
        if not self.is_paused:
            return
        self._log("Paused. Call resume() to continue.")
        self._set_progress(self.progress.value, "Paused")
        self._resume.wait()

    def _reset(self) -> None:
        self.tasks = []
        self.logs = []
        self.progress = Progress()
        self.error_message = ""
        self.taxonomy_summary = None
        self._resume.set()
        self._set_state(RunState.IDLE)

    def _build_tasks(self, titles: Dict[str, Any], options: RunOptions) -> List[GenerationTask]:
        tasks = [
            GenerationTask(
                kind="post",
                title=str(item.get("title") or ""),
                categories=list(item.get("categories") or []),
                tags=list(item.get("tags") or []),
                illustration_description=(
                    str(item.get("illustration_description") or "") if options.generate_images else ""
                ),
            )
            for item in titles.get("posts") or []
        ]
        tasks.extend(GenerationTask(kind="page", title=str(item.get("title") or "")) for item in titles.get("pages") or [])
        return tasks

    @staticmethod
    def item_payload(task: GenerationTask, options: RunOptions) -> Dict[str, Any]:
        is_post = task.kind == "post"
        return {
            "title": task.title,
            "post_type": task.kind,
            "instructions": options.instructions,
            "model": options.text_model,
            "generate_image": bool(options.generate_images),
            "image_model": options.image_model,
            "categories": task.categories if is_post and options.categories else [],
            "tags": task.tags if is_post and options.tags else [],
            "illustration_description": (
                task.illustration_description if is_post and options.generate_images else ""
            ),
        }

    def _process_item(self, index: int, options: RunOptions) -> None:
        task = self.tasks[index]
        label = "Generating post" if task.kind == "post" else "Generating page"
        self._log(f"{label}: {task.title}")
        self._update_task(index, "in-progress")

        try:
            result = self.client.generate_item(self.item_payload(task, options))
        except Exception as exc:
            if not isinstance(exc, GenerationError):
                logger.exception("Unexpected failure generating %s %r", task.kind, task.title)
            message = failure_message(exc)
            self._log(f"Error: {message}", error=True)
            self._update_task(index, "error", message)
        else:
            shown = result.get("title") or task.title
            if result.get("attachment_id"):
                self._log(f"Featured image set for {shown}")
            if result.get("image_error"):
                self._log(f"Image error for {shown}: {result['image_error']}", error=True)
            self._update_task(index, "done", post_id=result.get("post_id"))

        total = len(self.tasks)
        self._set_progress(item_progress(index, total), f"{label} ({index + 1}/{total})")

    def _run_taxonomy_pass(self, options: RunOptions) -> None:
        items = [
            {"post_id": task.post_id, "title": task.title}
            for task in self.tasks
            if task.kind == "post" and task.status == "done" and task.post_id
        ]
        if not items or not (options.categories or options.tags):
            return
        self._log("Organizing categories and tags...")
        try:
            self.taxonomy_summary = self.client.generate_taxonomies(
                {
                    "items": items,
                    "categories": options.categories,
                    "tags": options.tags,
                    "instructions": options.instructions,
                    "model": options.text_model,
                }
            )
        except Exception as exc:
            if not isinstance(exc, GenerationError):
                logger.exception("Unexpected failure organizing taxonomies")
            self._log(f"Error: {failure_message(exc)}", error=True)
            return
        self._log(
            "Taxonomies: {categories_created} categories and {tags_created} tags created.".format(
                **self.taxonomy_summary
            )
        )

    def run(self, options: RunOptions) -> List[GenerationTask]:
        if not self._run_lock.acquire(blocking=False):
            raise RunInProgressError("A generation run is already in progress.")
        try:
            self._reset()
            if options.posts <= 0 and options.pages <= 0:
                self.error_message = "Please request at least one post or page."
                self._set_state(RunState.FAILED)
                return self.tasks

            self._running = True
            try:
                self._execute(options)
            finally:
                self._running = False
                self._resume.set()
            return self.tasks
        finally:
            self._run_lock.release()

    def _execute(self, options: RunOptions) -> None:
        try:
            self._set_state(RunState.FETCHING_TITLES)
            self._log("Requesting titles from AI...")
            self._set_progress(TITLES_HEAD, "Requesting titles...")
            titles = self.client.generate_titles(
                {
                    "posts": options.posts,
                    "pages": options.pages,
                    "instructions": options.instructions,
                    "model": options.text_model,
                    "generate_images": bool(options.generate_images),
                }
            )
            self.tasks = self._build_tasks(titles, options)
            if not self.tasks:
                raise GenerationError(ErrorKind.EMPTY_OUTPUT, "No titles returned by AI.")

            for index, task in enumerate(self.tasks):
                self._emit("task", {"index": index, "task": task.to_dict()})
            self._log("Titles ready. Generating content now...")
            self._set_state(RunState.PROCESSING_ITEMS)
            self._set_progress(ITEMS_START, "Generating content...")

            for index in range(len(self.tasks)):
                self._wait_while_paused()
                self._process_item(index, options)

            if options.taxonomy_pass:
                self._run_taxonomy_pass(options)
        except Exception as exc:
            if not isinstance(exc, GenerationError):
                logger.exception("Generation run failed")
            self.error_message = failure_message(exc)
            self._set_progress(100, "Error")
            self._log(f"Error: {self.error_message}", error=True)
            self._set_state(RunState.FAILED)
            return

        self._set_progress(100, "Generation completed.")
        self._log("Generation completed.")
        self._set_state(RunState.COMPLETED)
