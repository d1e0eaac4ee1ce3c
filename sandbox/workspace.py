"""Per-render temporary files.

Each render gets an input/output file pair named from a fresh random token
inside the render temp directory. ``WorkspaceManager.staged`` is the only way
the service acquires one, so the pair is removed on every exit path.
"""
from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import config as cfg
from errors import WorkspaceError

logger = logging.getLogger(__name__)

# Source file extensions for languages whose id differs from the extension.
LANGUAGE_EXTENSIONS: dict[str, str] = {
    "python": "py",
    "javascript": "js",
    "typescript": "ts",
    "rust": "rs",
    "csharp": "cs",
    "ruby": "rb",
    "kotlin": "kt",
    "perl": "pl",
    "elixir": "ex",
    "haskell": "hs",
    "clojure": "clj",
    "markdown": "md",
    "yaml": "yml",
}


@dataclass(frozen=True)
class Workspace:
    token: str
    input_path: Path
    output_path: Path


def extension_for(language: str) -> str:
    return LANGUAGE_EXTENSIONS.get(language, language)


class WorkspaceManager:
    def __init__(self, root: Path | None = None) -> None:
        self.root: Path = Path(root if root is not None else cfg.RENDER_TEMP_DIR).resolve()

    def _build(self, language: str, fmt: str) -> Workspace:
        token = uuid.uuid4().hex
        workspace = Workspace(
            token=token,
            input_path=self.root / f"input.{token}.{extension_for(language)}",
            output_path=self.root / f"output.{token}.{fmt}",
        )
        prefix = str(self.root) + os.sep
        for path in (workspace.input_path, workspace.output_path):
            normalized = Path(os.path.normpath(path))
            if not str(normalized).startswith(prefix) or normalized.parent != self.root:
                logger.error("Workspace path escaped render directory: %s", path)
                raise WorkspaceError()
        return workspace

    def stage(self, code: str, language: str, fmt: str) -> Workspace:
        """Allocate a workspace and write ``code`` to its input file.

        The write goes to a ``.part`` sibling first and is renamed into place,
        so the input file is either complete or absent. An OSError from the
        write propagates; nothing is left behind that would need releasing.
        """
        workspace = self._build(language, fmt)
        partial = workspace.input_path.with_name(workspace.input_path.name + ".part")
        try:
            partial.write_text(code, encoding="utf-8")
            os.replace(partial, workspace.input_path)
        except OSError:
            partial.unlink(missing_ok=True)
            raise
        return workspace

    def release(self, workspace: Workspace) -> None:
        """Remove both files. Failures are logged, never raised."""
        for label, path in (("input", workspace.input_path), ("output", workspace.output_path)):
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Failed to clean up %s file %s: %s", label, path.name, exc)

    @contextmanager
    def staged(self, code: str, language: str, fmt: str) -> Iterator[Workspace]:
        workspace = self.stage(code, language, fmt)
        try:
            yield workspace
        finally:
            self.release(workspace)
