from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Success:
    data: bytes


@dataclass(frozen=True)
class NonZeroExit:
    returncode: int
    stderr: str = ""


@dataclass(frozen=True)
class TimedOut:
    elapsed: float = 0.0


@dataclass(frozen=True)
class OutputMissing:
    stdout: str = ""


# One per render call; consumed immediately by the service.
ProcessOutcome = Union[Success, NonZeroExit, TimedOut, OutputMissing]
