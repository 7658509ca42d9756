"""Content store: SQLite schema, migrations, and the posts/terms/media API."""

from __future__ import annotations

import sqlite3
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from PIL import Image, UnidentifiedImageError

from .utils import json_dumps, json_loads, slugify, utc_now_iso

CATEGORY = "category"
TAG = "post_tag"
DEFAULT_CATEGORY_SLUG = "uncategorized"

MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            applied_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS posts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            post_type TEXT NOT NULL,
            title TEXT NOT NULL,
            content TEXT NOT NULL DEFAULT '',
            status TEXT NOT NULL DEFAULT 'publish',
            featured_media_id INTEGER,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS terms (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            taxonomy TEXT NOT NULL,
            name TEXT NOT NULL,
            slug TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL,
            UNIQUE(taxonomy, slug)
        );

        CREATE TABLE IF NOT EXISTS post_terms (
            post_id INTEGER NOT NULL,
            term_id INTEGER NOT NULL,
            taxonomy TEXT NOT NULL,
            PRIMARY KEY(post_id, term_id),
            FOREIGN KEY(post_id) REFERENCES posts(id) ON DELETE CASCADE,
            FOREIGN KEY(term_id) REFERENCES terms(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS media (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            post_id INTEGER NOT NULL,
            filename TEXT NOT NULL,
            path TEXT NOT NULL,
            mime_type TEXT NOT NULL,
            width INTEGER NOT NULL DEFAULT 0,
            height INTEGER NOT NULL DEFAULT 0,
            filesize INTEGER NOT NULL DEFAULT 0,
            metadata_json TEXT NOT NULL DEFAULT '{}',
            created_at TEXT NOT NULL,
            FOREIGN KEY(post_id) REFERENCES posts(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS llm_calls (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            stage TEXT NOT NULL,
            provider TEXT NOT NULL,
            model TEXT NOT NULL,
            latency_ms INTEGER NOT NULL DEFAULT 0,
            ok INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL,
            meta_json TEXT NOT NULL DEFAULT '{}'
        );

        CREATE INDEX IF NOT EXISTS idx_terms_taxonomy_name ON terms(taxonomy, name);
        CREATE INDEX IF NOT EXISTS idx_post_terms_taxonomy ON post_terms(post_id, taxonomy);
        CREATE INDEX IF NOT EXISTS idx_llm_calls_stage_created ON llm_calls(stage, created_at);
        """,
    ),
    (
        2,
        """
        INSERT OR IGNORE INTO terms(taxonomy, name, slug, description, created_at)
        VALUES ('category', 'Uncategorized', 'uncategorized', '', datetime('now'));
        """,
    ),
]


class ContentStoreError(RuntimeError):
    """The content store failed a read or rejected a write."""


class ContentStore(Protocol):
    def create_post(self, title: str, content: str, post_type: str, status: str = "publish") -> int:
        ...

    def attach_media(self, data: bytes, post_id: int, filename_stem: str) -> int:
        ...

    def set_featured_image(self, post_id: int, media_id: int) -> None:
        ...

    def find_term(self, name: str, taxonomy: str) -> Optional[int]:
        ...

    def create_term(self, name: str, taxonomy: str, slug: str = "", description: str = "") -> int:
        ...

    def get_term_by_slug(self, slug: str, taxonomy: str) -> Optional[int]:
        ...

    def set_post_terms(self, post_id: int, term_ids: Iterable[int], taxonomy: str, append: bool = True) -> None:
        ...

    def remove_post_terms(self, post_id: int, term_ids: Iterable[int], taxonomy: str) -> None:
        ...

    def log_llm_call(self, stage: str, provider: str, model: str, latency_ms: int, ok: bool, meta=None) -> None:
        ...


def get_connection(db_path: str) -> sqlite3.Connection:
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def apply_migrations(db_path: str) -> None:
    with get_connection(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version INTEGER PRIMARY KEY,
                applied_at TEXT NOT NULL
            )
            """
        )
        applied = {
            row["version"]
            for row in conn.execute("SELECT version FROM schema_migrations").fetchall()
        }
        for version, sql in MIGRATIONS:
            if version in applied:
                continue
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_migrations(version, applied_at) VALUES (?, ?)",
                (version, utc_now_iso()),
            )
        conn.commit()


def _row_to_dict(row: sqlite3.Row | None) -> Dict[str, Any] | None:
    if row is None:
        return None
    return dict(row)


def _unique_slug(conn: sqlite3.Connection, taxonomy: str, base: str) -> str:
    base = base or "term"
    slug = base
    suffix = 2
    while conn.execute(
        "SELECT 1 FROM terms WHERE taxonomy = ? AND slug = ?", (taxonomy, slug)
    ).fetchone():
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


def describe_image(data: bytes) -> Dict[str, Any]:
    """Width, height, format and MIME type of an encoded image."""
    with Image.open(BytesIO(data)) as img:
        fmt = (img.format or "PNG").upper()
        return {
            "width": int(img.width),
            "height": int(img.height),
            "format": fmt,
            "mime_type": Image.MIME.get(fmt, "application/octet-stream"),
            "filesize": len(data),
        }


_EXTENSIONS = {"JPEG": "jpg", "PNG": "png", "WEBP": "webp", "GIF": "gif"}


class SqliteContentStore:
    def __init__(self, db_path: str, uploads_dir: str) -> None:
        self.db_path = db_path
        self.uploads_dir = Path(uploads_dir)
        apply_migrations(db_path)

    def _write(self, sql: str, params: tuple) -> int:
        try:
            with get_connection(self.db_path) as conn:
                cur = conn.execute(sql, params)
                conn.commit()
                return int(cur.lastrowid or 0)
        except sqlite3.Error as exc:
            raise ContentStoreError(f"Content store write failed: {exc}") from exc

    def _read(self, sql: str, params: tuple) -> List[sqlite3.Row]:
        try:
            with get_connection(self.db_path) as conn:
                return conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise ContentStoreError(f"Content store read failed: {exc}") from exc

    def _read_one(self, sql: str, params: tuple) -> sqlite3.Row | None:
        rows = self._read(sql, params)
        return rows[0] if rows else None

    def create_post(self, title: str, content: str, post_type: str, status: str = "publish") -> int:
        """Inserts the post and, for `post`, links the default category in the same transaction."""
        try:
            with get_connection(self.db_path) as conn:
                cur = conn.execute(
                    "INSERT INTO posts(post_type, title, content, status, created_at) VALUES (?, ?, ?, ?, ?)",
                    (post_type, title, content, status, utc_now_iso()),
                )
                post_id = int(cur.lastrowid)
                if post_type == "post":
                    conn.execute(
                        """
                        INSERT OR IGNORE INTO post_terms(post_id, term_id, taxonomy)
                        SELECT ?, id, taxonomy FROM terms WHERE taxonomy = ? AND slug = ?
                        """,
                        (post_id, CATEGORY, DEFAULT_CATEGORY_SLUG),
                    )
                conn.commit()
                return post_id
        except sqlite3.Error as exc:
            raise ContentStoreError(f"Could not create {post_type} {title!r}: {exc}") from exc

    def get_post(self, post_id: int) -> Dict[str, Any] | None:
        return _row_to_dict(self._read_one("SELECT * FROM posts WHERE id = ?", (post_id,)))

    def attach_media(self, data: bytes, post_id: int, filename_stem: str) -> int:
        try:
            meta = describe_image(data)
        except (UnidentifiedImageError, OSError) as exc:
            raise ContentStoreError("Generated image could not be read.") from exc

        filename = f"{filename_stem}.{_EXTENSIONS.get(meta['format'], meta['format'].lower())}"
        path = self.uploads_dir / filename
        try:
            self.uploads_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise ContentStoreError(f"Could not store {filename}: {exc.strerror}") from exc

        return self._write(
            """
            INSERT INTO media(post_id, filename, path, mime_type, width, height, filesize, metadata_json, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                post_id,
                filename,
                str(path),
                meta["mime_type"],
                meta["width"],
                meta["height"],
                meta["filesize"],
                json_dumps(meta),
                utc_now_iso(),
            ),
        )

    def get_media(self, media_id: int) -> Dict[str, Any] | None:
        media = _row_to_dict(self._read_one("SELECT * FROM media WHERE id = ?", (media_id,)))
        if media:
            media["metadata"] = json_loads(media.pop("metadata_json"))
        return media

    def set_featured_image(self, post_id: int, media_id: int) -> None:
        self._write("UPDATE posts SET featured_media_id = ? WHERE id = ?", (media_id, post_id))

    def find_term(self, name: str, taxonomy: str) -> Optional[int]:
        row = self._read_one(
            "SELECT id FROM terms WHERE taxonomy = ? AND name = ? ORDER BY id LIMIT 1",
            (taxonomy, name),
        )
        return int(row["id"]) if row else None

    def get_term_by_slug(self, slug: str, taxonomy: str) -> Optional[int]:
        row = self._read_one("SELECT id FROM terms WHERE taxonomy = ? AND slug = ?", (taxonomy, slug))
        return int(row["id"]) if row else None

    def create_term(self, name: str, taxonomy: str, slug: str = "", description: str = "") -> int:
        try:
            with get_connection(self.db_path) as conn:
                unique = _unique_slug(conn, taxonomy, slugify(slug) or slugify(name))
                cur = conn.execute(
                    "INSERT INTO terms(taxonomy, name, slug, description, created_at) VALUES (?, ?, ?, ?, ?)",
                    (taxonomy, name, unique, description, utc_now_iso()),
                )
                conn.commit()
                return int(cur.lastrowid)
        except sqlite3.Error as exc:
            raise ContentStoreError(f"Could not create term {name!r}: {exc}") from exc

    def get_term(self, term_id: int) -> Dict[str, Any] | None:
        return _row_to_dict(self._read_one("SELECT * FROM terms WHERE id = ?", (term_id,)))

    def set_post_terms(self, post_id: int, term_ids: Iterable[int], taxonomy: str, append: bool = True) -> None:
        try:
            with get_connection(self.db_path) as conn:
                if not append:
                    conn.execute("DELETE FROM post_terms WHERE post_id = ? AND taxonomy = ?", (post_id, taxonomy))
                conn.executemany(
                    "INSERT OR IGNORE INTO post_terms(post_id, term_id, taxonomy) VALUES (?, ?, ?)",
                    [(post_id, int(term_id), taxonomy) for term_id in term_ids],
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise ContentStoreError(f"Could not assign terms to post {post_id}: {exc}") from exc

    def remove_post_terms(self, post_id: int, term_ids: Iterable[int], taxonomy: str) -> None:
        try:
            with get_connection(self.db_path) as conn:
                conn.executemany(
                    "DELETE FROM post_terms WHERE post_id = ? AND term_id = ? AND taxonomy = ?",
                    [(post_id, int(term_id), taxonomy) for term_id in term_ids],
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise ContentStoreError(f"Could not remove terms from post {post_id}: {exc}") from exc

    def get_post_terms(self, post_id: int, taxonomy: str) -> List[int]:
        rows = self._read(
            "SELECT term_id FROM post_terms WHERE post_id = ? AND taxonomy = ? ORDER BY term_id",
            (post_id, taxonomy),
        )
        return [int(row["term_id"]) for row in rows]

    def log_llm_call(
        self,
        stage: str,
        provider: str,
        model: str,
        latency_ms: int,
        ok: bool,
        meta: Dict[str, Any] | None = None,
    ) -> None:
        self._write(
            """
            INSERT INTO llm_calls(stage, provider, model, latency_ms, ok, created_at, meta_json)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (stage, provider, model, int(latency_ms), 1 if ok else 0, utc_now_iso(), json_dumps(meta)),
        )

    def list_llm_calls(self, limit: int = 50) -> List[Dict[str, Any]]:
        rows = self._read("SELECT * FROM llm_calls ORDER BY id DESC LIMIT ?", (limit,))
        return [dict(row) for row in rows]
