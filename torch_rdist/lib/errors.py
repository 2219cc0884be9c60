from __future__ import annotations

from typing import Optional


class ResistanceError(Exception):
    """Base class for errors raised by torch_rdist."""

    kind = "fatal"


class GraphParseError(ResistanceError):
    """Malformed graph input. ``line`` is the 1-based offending line, if any."""

    kind = "parse"

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        super().__init__(message)
        self.line = line


class DomainError(ResistanceError):
    """The resistance combination formula is undefined for the given nodes."""

    kind = "domain"


class ComputationCancelled(ResistanceError):
    """Raised at a checkpoint once the owning task has been cancelled."""

    kind = "cancelled"


class EngineError(ResistanceError):
    """The execution harness could not schedule or run a task."""

    kind = "fatal"


def error_kind(exc: BaseException) -> str:
    if isinstance(exc, ResistanceError):
        return exc.kind
    if isinstance(exc, ValueError):
        return "invalid"
    return "fatal"
