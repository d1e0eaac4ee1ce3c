from backends.base import NonZeroExit, OutputMissing, ProcessOutcome, Success, TimedOut
from backends.freeze import build_freeze_args
from backends.locator import locate_renderer
from backends.runner import run_process

__all__ = [
    "NonZeroExit",
    "OutputMissing",
    "ProcessOutcome",
    "Success",
    "TimedOut",
    "build_freeze_args",
    "locate_renderer",
    "run_process",
]
