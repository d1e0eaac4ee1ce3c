from __future__ import annotations

from typing import TYPE_CHECKING

from validators.allowlist import RenderOptions, sanitize_dimension

if TYPE_CHECKING:
    from image_service import RenderRequest
    from sandbox.workspace import Workspace


def build_freeze_args(
    workspace: "Workspace",
    options: RenderOptions,
    request: "RenderRequest",
) -> list[str]:
    """Argument vector for ``freeze``, built from validated values only.

    Theme and language come from ``options`` (already allow-listed), never
    from the raw request. Padding and margin are included only when they
    survive ``sanitize_dimension``.
    """
    args = [
        str(workspace.input_path),
        "-o", str(workspace.output_path),
        "--theme", options.theme,
        "--language", options.language,
    ]

    args.append("--window" if request.window else "--window=false")

    if not request.background:
        args.append("--background=false")

    if request.show_line_numbers:
        args.append("--show-line-numbers")

    padding = sanitize_dimension(request.padding)
    if padding is not None:
        args.extend(["--padding", padding])

    margin = sanitize_dimension(request.margin)
    if margin is not None:
        args.extend(["--margin", margin])

    return args
