"""Error taxonomy for image generation.

Every error carries an HTTP status and a message that is safe to return to a
client. Detail (stderr, paths, exit codes) is logged where the error is raised
and never placed in ``public_message``.
"""
from __future__ import annotations


class GenerationError(Exception):
    status_code: int = 500
    default_message: str = "Failed to generate image"

    def __init__(self, public_message: str | None = None) -> None:
        self.public_message = public_message or self.default_message
        super().__init__(self.public_message)


class InvalidInputError(GenerationError):
    """Rejected request field (theme, language, format or code size)."""

    status_code = 400
    default_message = "Invalid input"

    def __init__(self, field: str, public_message: str | None = None) -> None:
        self.field = field
        super().__init__(public_message or f"Invalid {field}")


class ServiceUnavailableError(GenerationError):
    status_code = 503
    default_message = "Image generation service is unavailable"


class ExecutionFailedError(GenerationError):
    status_code = 500
    default_message = "Failed to generate image"


class GenerationTimeoutError(GenerationError):
    status_code = 408
    default_message = "Image generation timed out"


class WorkspaceError(GenerationError):
    status_code = 500
    default_message = "Invalid file path"
