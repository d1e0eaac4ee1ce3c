"""Allow-list checks for renderer options.

Everything that ends up on the renderer's command line passes through here
first. Nothing in this module touches the filesystem or spawns processes.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from config import MAX_CODE_BYTES
from errors import InvalidInputError

ALLOWED_THEMES: frozenset[str] = frozenset({
    "catppuccin-mocha", "catppuccin-latte", "catppuccin-frappe", "catppuccin-macchiato",
    "dracula", "nord", "tokyonight", "gruvbox", "gruvbox-light",
    "base16", "charm", "github-dark", "github-light",
    "monokai", "solarized-dark", "solarized-light", "zenburn",
})

ALLOWED_LANGUAGES: frozenset[str] = frozenset({
    "swift", "python", "javascript", "typescript", "java", "go", "rust",
    "c", "cpp", "csharp", "ruby", "php", "html", "css", "scss",
    "bash", "sh", "sql", "json", "yaml", "xml", "markdown", "md",
    "kotlin", "scala", "r", "perl", "lua", "elixir", "haskell", "clojure",
})

ALLOWED_FORMATS: frozenset[str] = frozenset({"png", "svg"})

_DIMENSION_RE = re.compile(r"[0-9,]+")


@dataclass(frozen=True)
class RenderOptions:
    theme: str
    language: str
    format: str


# ── Identifiers ───────────────────────────────────────────────────────────────

def _check_member(field: str, plural: str, value: str, allowed: frozenset[str]) -> str:
    normalized = str(value).lower()
    if normalized not in allowed:
        raise InvalidInputError(
            field,
            f"Invalid {field}. Allowed {plural}: {', '.join(sorted(allowed))}",
        )
    return normalized


def validate(theme: str, language: str, fmt: str) -> RenderOptions:
    """Lower-case and check each identifier against its allow-list.

    Raises InvalidInputError naming the first offending field. The permitted
    values are listed in the message; they are not secret.
    """
    return RenderOptions(
        theme=_check_member("theme", "themes", theme, ALLOWED_THEMES),
        language=_check_member("language", "languages", language, ALLOWED_LANGUAGES),
        format=_check_member("format", "formats", fmt, ALLOWED_FORMATS),
    )


# ── Free-form values ──────────────────────────────────────────────────────────

def sanitize_dimension(value: str | None) -> str | None:
    """Return ``value`` if it only holds digits and commas, else None.

    A rejected padding/margin drops the flag; the request still goes ahead
    with the renderer's default.
    """
    if not value:
        return None
    if _DIMENSION_RE.fullmatch(value) is None:
        return None
    return value


def check_code_size(code: str, limit: int = MAX_CODE_BYTES) -> None:
    if not code:
        raise InvalidInputError("code", f"Code must be between 1-{limit:,} bytes")
    if len(code.encode("utf-8")) > limit:
        raise InvalidInputError("code", f"Code must be between 1-{limit:,} bytes")
