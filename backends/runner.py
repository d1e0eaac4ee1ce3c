"""Bounded execution of the external renderer."""
from __future__ import annotations

import logging
import subprocess
import tempfile
import time
from pathlib import Path
from typing import IO

import config as cfg
from backends.base import NonZeroExit, OutputMissing, ProcessOutcome, Success, TimedOut

logger = logging.getLogger(__name__)


def _read_capture(handle: IO[bytes]) -> str:
    handle.seek(0)
    return handle.read().decode("utf-8", errors="replace")


def _terminate(proc: subprocess.Popen, grace_period: float) -> None:
    """SIGTERM, wait ``grace_period``, then SIGKILL. Always reaps the child."""
    proc.terminate()
    try:
        proc.wait(timeout=grace_period)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


def run_process(
    binary: str,
    args: list[str],
    output_path: Path,
    timeout: float | None = None,
    poll_interval: float | None = None,
    grace_period: float | None = None,
) -> ProcessOutcome:
    """Run ``binary`` with ``args`` and classify the result.

    ``args`` is passed as an argument vector; no shell is involved. stdout and
    stderr go to separate temporary files so a chatty child can't fill a pipe
    while we poll. The deadline runs from launch. On expiry the child is
    terminated and reaped before ``TimedOut`` is returned.

    Exit 0 with ``output_path`` present is the only success; exit 0 without
    it is ``OutputMissing``. OSError from spawning (binary vanished, not
    executable) propagates to the caller.
    """
    timeout = cfg.RENDER_TIMEOUT if timeout is None else timeout
    poll_interval = cfg.POLL_INTERVAL if poll_interval is None else poll_interval
    grace_period = cfg.TERMINATE_GRACE if grace_period is None else grace_period

    with tempfile.TemporaryFile() as out_buf, tempfile.TemporaryFile() as err_buf:
        proc = subprocess.Popen(
            [binary, *args],
            stdin=subprocess.DEVNULL,
            stdout=out_buf,
            stderr=err_buf,
        )
        started = time.monotonic()

        while proc.poll() is None:
            elapsed = time.monotonic() - started
            if elapsed > timeout:
                _terminate(proc, grace_period)
                logger.warning("Renderer timed out after %.1f seconds (pid %d)", timeout, proc.pid)
                return TimedOut(elapsed=elapsed)
            time.sleep(poll_interval)

        stdout = _read_capture(out_buf)
        stderr = _read_capture(err_buf)

    if proc.returncode != 0:
        logger.error("Renderer failed with status %d: %s", proc.returncode, stderr.strip())
        return NonZeroExit(returncode=proc.returncode, stderr=stderr)

    try:
        data = output_path.read_bytes()
    except FileNotFoundError:
        logger.error("Renderer exited cleanly but did not write %s", output_path.name)
        return OutputMissing(stdout=stdout)

    return Success(data=data)
