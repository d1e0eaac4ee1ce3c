"""Render a snippet to a PNG/SVG image with the ``freeze`` CLI.

One call to ``ImageGenerationService.generate`` goes through:

    validate -> stage workspace -> locate renderer -> run (bounded) -> read bytes

and releases the workspace on the way out whatever happened. The service
keeps no state between calls, so concurrent calls each get their own files
and their own child process.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import config as cfg
from backends import (
    NonZeroExit,
    OutputMissing,
    ProcessOutcome,
    Success,
    TimedOut,
    build_freeze_args,
    locate_renderer,
    run_process,
)
from errors import ExecutionFailedError, GenerationTimeoutError, ServiceUnavailableError
from sandbox import WorkspaceManager
from validators import check_code_size, validate

logger = logging.getLogger(__name__)

MEDIA_TYPES = {
    "png": "image/png",
    "svg": "image/svg+xml",
}

Runner = Callable[..., ProcessOutcome]


@dataclass
class RenderRequest:
    code: str
    language: str
    theme: str = "catppuccin-mocha"
    format: str = "png"
    window: bool = True
    background: bool = True
    show_line_numbers: bool = False
    padding: str = "20,40"
    margin: str = "0"


def media_type_for(fmt: str) -> str:
    return MEDIA_TYPES.get(fmt.lower(), "application/octet-stream")


class ImageGenerationService:
    def __init__(
        self,
        workspaces: WorkspaceManager | None = None,
        locator: Callable[[], str] | None = None,
        runner: Runner | None = None,
        timeout: float | None = None,
    ) -> None:
        self.workspaces = workspaces or WorkspaceManager()
        self._locate = locator or locate_renderer
        self._run = runner or run_process
        self.timeout = cfg.RENDER_TIMEOUT if timeout is None else timeout

    def generate(self, request: RenderRequest) -> bytes:
        """Render ``request`` and return the image bytes.

        Raises:
            InvalidInputError: empty/oversized code or a value outside an
                allow-list. Raised before any file or process is touched.
            ServiceUnavailableError: the renderer binary can't be found.
            ExecutionFailedError: non-zero exit, missing output or an I/O error.
            GenerationTimeoutError: the renderer ran past the timeout.
        """
        check_code_size(request.code)
        options = validate(request.theme, request.language, request.format)

        try:
            with self.workspaces.staged(request.code, options.language, options.format) as workspace:
                binary = self._locate()
                args = build_freeze_args(workspace, options, request)
                logger.debug("Rendering %s/%s as %s (workspace %s)",
                             options.language, options.theme, options.format, workspace.token)
                try:
                    outcome = self._run(binary, args, workspace.output_path, timeout=self.timeout)
                except FileNotFoundError as exc:
                    logger.error("Renderer disappeared before launch: %s", exc)
                    raise ServiceUnavailableError() from exc
                return self._unwrap(outcome)
        except OSError as exc:
            logger.error("Image generation I/O failure: %s", exc)
            raise ExecutionFailedError() from exc

    def _unwrap(self, outcome: ProcessOutcome) -> bytes:
        if isinstance(outcome, Success):
            return outcome.data
        if isinstance(outcome, TimedOut):
            raise GenerationTimeoutError()
        if isinstance(outcome, NonZeroExit):
            raise ExecutionFailedError()
        if isinstance(outcome, OutputMissing):
            raise ExecutionFailedError("Renderer did not generate output file")
        raise ExecutionFailedError()


def _flag(value: Any) -> bool:
    # Query-string style values arrive as text: "false" must stay false.
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def request_from_config(
    code: str,
    language: str,
    config: Mapping[str, Any] | None = None,
    fmt: str = "png",
) -> RenderRequest:
    """Build a RenderRequest from the API-style option mapping.

    Keys: theme, window, padding, margin, background, showLineNumbers. Missing
    keys take the RenderRequest defaults. Flags may be bools or strings such
    as "true"/"false".
    """
    config = config or {}
    defaults = RenderRequest(code=code, language=language)
    return RenderRequest(
        code=code,
        language=language,
        theme=config.get("theme", defaults.theme),
        format=fmt,
        window=_flag(config.get("window", defaults.window)),
        background=_flag(config.get("background", defaults.background)),
        show_line_numbers=_flag(config.get("showLineNumbers", defaults.show_line_numbers)),
        padding=str(config.get("padding", defaults.padding)),
        margin=str(config.get("margin", defaults.margin)),
    )


def generate_image(
    code: str,
    language: str,
    config: Mapping[str, Any] | None = None,
    fmt: str = "png",
    service: ImageGenerationService | None = None,
) -> bytes:
    service = service or ImageGenerationService()
    return service.generate(request_from_config(code, language, config, fmt))
