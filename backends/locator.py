import logging
import subprocess
from pathlib import Path

import config as cfg
from errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

KNOWN_PATHS = (
    "/usr/local/bin/freeze",
    "/opt/homebrew/bin/freeze",
    "/usr/bin/freeze",
)


def _default_candidates() -> list[str]:
    candidates = list(KNOWN_PATHS)
    if cfg.FREEZE_PATH:
        candidates.insert(0, cfg.FREEZE_PATH)
    return candidates


def locate_renderer(
    candidates: list[str] | None = None,
    binary_name: str = "freeze",
    which_timeout: float | None = None,
) -> str:
    """Return the absolute path of the renderer executable.

    Probes ``candidates`` in order (FREEZE_PATH first, then the usual install
    locations), then falls back to ``which``. Re-probes on every call so an
    install or uninstall is picked up without a restart.

    Raises ServiceUnavailableError with a generic message on any miss; the
    reason is only logged.
    """
    if candidates is None:
        candidates = _default_candidates()

    for candidate in candidates:
        if Path(candidate).is_file():
            return candidate

    timeout = cfg.WHICH_TIMEOUT if which_timeout is None else which_timeout
    try:
        result = subprocess.run(
            ["which", binary_name],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.debug("PATH lookup for %s timed out after %ss", binary_name, timeout)
        raise ServiceUnavailableError()
    except OSError as exc:
        logger.debug("Cannot run 'which' to search PATH for %s: %s", binary_name, exc)
        raise ServiceUnavailableError() from exc

    if result.returncode == 0:
        path = result.stdout.strip()
        if path:
            return path

    logger.debug("Renderer %s not found (which exited %d)", binary_name, result.returncode)
    raise ServiceUnavailableError()
