from __future__ import annotations

import os
import stat
import sys
import tempfile
from pathlib import Path

import pytest

# Keep the module-level app in server.py away from the working tree's database.
os.environ.setdefault(
    "DATABASE_PATH", str(Path(tempfile.mkdtemp(prefix="rookery-test-")) / "rookery.sqlite3")
)


STUB_SCRIPTS = {
    # Writes a fake image to the path after -o and records its arguments.
    "ok": (
        '#!/bin/sh\n'
        'printf "%s\\n" "$@" >> "{log}"\n'
        'printf "FAKEIMAGE" > "$3"\n'
    ),
    "fail": (
        '#!/bin/sh\n'
        'echo "panic: /internal/path/theme.go:42" >&2\n'
        'exit 3\n'
    ),
    "no_output": (
        '#!/bin/sh\n'
        'exit 0\n'
    ),
    "hang": (
        '#!/bin/sh\n'
        'echo $$ > "{pidfile}"\n'
        'exec sleep 30\n'
    ),
    "stubborn": (
        '#!/bin/sh\n'
        'echo $$ > "{pidfile}"\n'
        "trap '' TERM\n"
        'while :; do sleep 0.05; done\n'
    ),
}


@pytest.fixture
def render_dir(tmp_path: Path) -> Path:
    path = tmp_path / "render"
    path.mkdir()
    return path


@pytest.fixture
def stub_renderer(tmp_path: Path):
    """Factory: write a stub renderer script and return its path.

    The ``ok`` stub appends its arguments to ``tmp_path/args.log``; the hanging
    stubs write their pid to ``tmp_path/stub.pid``.
    """
    if sys.platform == "win32":
        pytest.skip("stub renderers are POSIX shell scripts")

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def _make(kind: str) -> Path:
        script = STUB_SCRIPTS[kind].format(
            log=tmp_path / "args.log",
            pidfile=tmp_path / "stub.pid",
        )
        path = bin_dir / f"freeze-{kind}"
        path.write_text(script, encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make
