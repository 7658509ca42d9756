"""Entrypoint: serve the generation API or drive a generation run."""

from __future__ import annotations

import argparse
import logging

from pathlib import Path
import sys

from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from demo_content_agent.catalog import image_models, text_models
from demo_content_agent.client import HttpGenerationClient, LocalGenerationClient
from demo_content_agent.config import api_token, load_credentials, load_settings
from demo_content_agent.content_store import SqliteContentStore, apply_migrations
from demo_content_agent.orchestrator import ContentGenerator
from demo_content_agent.sequencer import GenerationSequencer, RunOptions


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="LLM demo content generator")
    parser.add_argument("--settings", default="config/settings.yaml", help="Path to settings.yaml")
    parser.add_argument("--log-level", default="INFO", help="Logging level")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("init-db", help="Apply SQLite migrations only")
    subparsers.add_parser("serve", help="Run the generation API (default)")
    subparsers.add_parser("models", help="List known text and image models")

    run = subparsers.add_parser("run", help="Generate a batch of posts and pages")
    run.add_argument("--posts", type=int, default=None)
    run.add_argument("--pages", type=int, default=None)
    run.add_argument("--instructions", default=None)
    run.add_argument("--text-model", default=None)
    run.add_argument("--image-model", default=None)
    run.add_argument("--images", action=argparse.BooleanOptionalAction, default=None)
    run.add_argument("--categories", action=argparse.BooleanOptionalAction, default=None)
    run.add_argument("--tags", action=argparse.BooleanOptionalAction, default=None)
    run.add_argument("--taxonomy-pass", action="store_true", default=None)
    run.add_argument("--remote", default="", help="Base URL of a running API instead of in-process calls")
    return parser


def _print_event(kind: str, payload: dict) -> None:
    if kind == "log":
        prefix = "! " if payload.get("error") else "- "
        print(prefix + payload["message"])
    elif kind == "progress":
        print(f"[{payload['value']:>3}%] {payload['label']}")


def _run(args: argparse.Namespace, config: dict, store: SqliteContentStore) -> int:
    if args.remote:
        client = HttpGenerationClient(args.remote, api_token(config))
    else:
        client = LocalGenerationClient(ContentGenerator(config, load_credentials(), store))

    options = RunOptions.from_settings(
        config,
        posts=args.posts,
        pages=args.pages,
        instructions=args.instructions,
        text_model=args.text_model,
        image_model=args.image_model,
        generate_images=args.images,
        categories=args.categories,
        tags=args.tags,
        taxonomy_pass=args.taxonomy_pass,
    )
    sequencer = GenerationSequencer(client, on_event=_print_event)
    tasks = sequencer.run(options)

    if sequencer.error_message:
        print(f"Run failed: {sequencer.error_message}")
        return 1
    for task in tasks:
        suffix = f" ({task.note})" if task.note else ""
        print(f"- {task.kind} post_id={task.post_id} status={task.status} {task.title}{suffix}")
    return 0


def main() -> None:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args()
    command = args.command or "serve"

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if command == "models":
        print("Text models:")
        for model_id, label in text_models().items():
            print(f"- {model_id}: {label}")
        print("Image models:")
        for model_id, label in image_models().items():
            print(f"- {model_id}: {label}")
        return

    config = load_settings(args.settings)
    db_path = config["database"]["path"]
    apply_migrations(db_path)

    if command == "init-db":
        print(f"Database initialized at {db_path}")
        return

    store = SqliteContentStore(db_path, config["uploads"]["path"])

    if command == "run":
        sys.exit(_run(args, config, store))

    import uvicorn

    from demo_content_agent.api import create_app

    app = create_app(config, load_credentials(), store)
    uvicorn.run(app, host=config["api"]["host"], port=int(config["api"]["port"]))


if __name__ == "__main__":
    main()
