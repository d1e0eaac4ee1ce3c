"""Snippet persistence on SQLite."""
from __future__ import annotations

import json
import sqlite3
import threading
import uuid
from collections.abc import Iterator
from contextlib import closing, contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import cast

from pydantic import BaseModel

import config as cfg
from validators.allowlist import ALLOWED_LANGUAGES

MAX_TITLE_CHARS = 200
MAX_CODE_CHARS = 100_000
MAX_DESCRIPTION_CHARS = 1000
MAX_TAGS = 20
MAX_TAG_CHARS = 50
MAX_QUERY_CHARS = 100


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class SnippetValidationError(ValueError):
    pass


@dataclass
class Snippet:
    id: str
    title: str
    code: str
    language: str
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    is_favorite: bool = False
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "code": self.code,
            "language": self.language,
            "description": self.description,
            "tags": list(self.tags),
            "isFavorite": self.is_favorite,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


class SnippetInput(BaseModel):
    """Create/update payload."""

    title: str
    code: str
    language: str
    description: str | None = None
    tags: list[str] | None = None
    isFavorite: bool | None = None

    def normalized(self) -> "SnippetInput":
        """Check field limits and return a trimmed copy.

        Raises SnippetValidationError with a message that is safe to return
        to the client.
        """
        title = self.title.strip()
        if not title:
            raise SnippetValidationError("Title cannot be empty")
        if len(title) > MAX_TITLE_CHARS:
            raise SnippetValidationError(f"Title must be {MAX_TITLE_CHARS} characters or less")

        if not self.code.strip():
            raise SnippetValidationError("Code cannot be empty")
        if len(self.code) > MAX_CODE_CHARS:
            raise SnippetValidationError(f"Code must be {MAX_CODE_CHARS:,} characters or less")

        language = self.language.strip().lower()
        if language not in ALLOWED_LANGUAGES:
            raise SnippetValidationError(
                f"Invalid language. Allowed: {', '.join(sorted(ALLOWED_LANGUAGES))}"
            )

        description = self.description.strip() if self.description is not None else None
        if description and len(description) > MAX_DESCRIPTION_CHARS:
            raise SnippetValidationError(
                f"Description must be {MAX_DESCRIPTION_CHARS} characters or less"
            )

        tags: list[str] = []
        if self.tags is not None:
            if len(self.tags) > MAX_TAGS:
                raise SnippetValidationError(f"Maximum {MAX_TAGS} tags allowed")
            for tag in self.tags:
                trimmed = tag.strip()
                if not trimmed:
                    raise SnippetValidationError("Tags cannot be empty")
                if len(trimmed) > MAX_TAG_CHARS:
                    raise SnippetValidationError(
                        f"Each tag must be {MAX_TAG_CHARS} characters or less"
                    )
                tags.append(trimmed)

        return SnippetInput(
            title=title,
            code=self.code,
            language=language,
            description=description,
            tags=tags,
            isFavorite=bool(self.isFavorite),
        )


class SnippetStore:
    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path: Path = Path(db_path) if db_path is not None else cfg.DATABASE_PATH
        self._lock: threading.RLock = threading.RLock()

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        with closing(sqlite3.connect(self._db_path)) as conn:
            with conn:
                yield conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            _ = conn.execute(
                """
                CREATE TABLE IF NOT EXISTS snippets (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    code TEXT NOT NULL,
                    language TEXT NOT NULL,
                    description TEXT,
                    tags_json TEXT NOT NULL,
                    is_favorite INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    @staticmethod
    def _serialize_dt(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()

    @staticmethod
    def _parse_dt(value: str) -> datetime:
        dt = datetime.fromisoformat(value)
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt

    def _from_row(self, row: tuple) -> Snippet:
        (snippet_id, title, code, language, description,
         tags_json, is_favorite, created_at, updated_at) = row
        return Snippet(
            id=snippet_id,
            title=title,
            code=code,
            language=language,
            description=description,
            tags=cast(list[str], json.loads(tags_json)),
            is_favorite=bool(is_favorite),
            created_at=self._parse_dt(created_at),
            updated_at=self._parse_dt(updated_at),
        )

    # ── CRUD ──────────────────────────────────────────────────────────────────

    def create(self, payload: SnippetInput) -> Snippet:
        data = payload.normalized()
        snippet = Snippet(
            id=uuid.uuid4().hex,
            title=data.title,
            code=data.code,
            language=data.language,
            description=data.description,
            tags=data.tags or [],
            is_favorite=bool(data.isFavorite),
        )
        with self._lock:
            with self._connect() as conn:
                _ = conn.execute(
                    """
                    INSERT INTO snippets (id, title, code, language, description,
                                          tags_json, is_favorite, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        snippet.id,
                        snippet.title,
                        snippet.code,
                        snippet.language,
                        snippet.description,
                        json.dumps(snippet.tags),
                        int(snippet.is_favorite),
                        self._serialize_dt(snippet.created_at),
                        self._serialize_dt(snippet.updated_at),
                    ),
                )
        return snippet

    def get(self, snippet_id: str) -> Snippet | None:
        with self._lock:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT * FROM snippets WHERE id = ?",
                    (snippet_id,),
                ).fetchone()
        return self._from_row(row) if row is not None else None

    def list_all(self) -> list[Snippet]:
        """All snippets, newest first."""
        with self._lock:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT * FROM snippets ORDER BY created_at DESC, rowid DESC"
                ).fetchall()
        return [self._from_row(row) for row in rows]

    def update(self, snippet_id: str, payload: SnippetInput) -> Snippet | None:
        data = payload.normalized()
        with self._lock:
            snippet = self.get(snippet_id)
            if snippet is None:
                return None
            snippet.title = data.title
            snippet.code = data.code
            snippet.language = data.language
            snippet.description = data.description
            snippet.tags = data.tags or []
            snippet.is_favorite = bool(data.isFavorite)
            snippet.updated_at = _utcnow()

            with self._connect() as conn:
                _ = conn.execute(
                    """
                    UPDATE snippets
                    SET title = ?, code = ?, language = ?, description = ?,
                        tags_json = ?, is_favorite = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        snippet.title,
                        snippet.code,
                        snippet.language,
                        snippet.description,
                        json.dumps(snippet.tags),
                        int(snippet.is_favorite),
                        self._serialize_dt(snippet.updated_at),
                        snippet.id,
                    ),
                )
        return snippet

    def delete(self, snippet_id: str) -> bool:
        with self._lock:
            with self._connect() as conn:
                cursor = conn.execute("DELETE FROM snippets WHERE id = ?", (snippet_id,))
        return cursor.rowcount > 0

    # ── Queries ───────────────────────────────────────────────────────────────

    def search(self, query: str) -> list[Snippet]:
        """Case-insensitive substring match on title, code and description."""
        if not query or len(query) > MAX_QUERY_CHARS:
            raise SnippetValidationError(f"Search query must be 1-{MAX_QUERY_CHARS} characters")
        needle = query.lower()
        return [
            snippet
            for snippet in self.list_all()
            if needle in snippet.title.lower()
            or needle in snippet.code.lower()
            or needle in (snippet.description or "").lower()
        ]

    def tags(self) -> list[str]:
        return sorted({tag for snippet in self.list_all() for tag in snippet.tags})

    def languages(self) -> list[str]:
        return sorted({snippet.language for snippet in self.list_all()})

    def __len__(self) -> int:
        with self._lock:
            with self._connect() as conn:
                row = cast(tuple[int] | None, conn.execute("SELECT COUNT(*) FROM snippets").fetchone())
        return int(row[0]) if row else 0
