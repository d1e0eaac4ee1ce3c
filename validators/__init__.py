from validators.allowlist import (
    ALLOWED_FORMATS,
    ALLOWED_LANGUAGES,
    ALLOWED_THEMES,
    RenderOptions,
    check_code_size,
    sanitize_dimension,
    validate,
)

__all__ = [
    "ALLOWED_FORMATS",
    "ALLOWED_LANGUAGES",
    "ALLOWED_THEMES",
    "RenderOptions",
    "check_code_size",
    "sanitize_dimension",
    "validate",
]
