from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol

from .errors import ComputationCancelled

if TYPE_CHECKING:
    from .estimator import ComputationResult


class MessageType(str, Enum):
    PROGRESS = "PROGRESS"
    RESULT = "RESULT"
    ERROR = "ERROR"


@dataclass(frozen=True)
class TaskMessage:
    type: MessageType
    task_id: str
    progress: Optional[float] = None
    message: Optional[str] = None
    result: Optional["ComputationResult"] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.type is not MessageType.PROGRESS


class Channel(Protocol):
    def publish(self, message: TaskMessage) -> bool:
        ...


class Checkpoint:
    """Progress and cancellation hook that an estimator calls at fixed intervals.

    Progress is clamped to ``[0, 100]`` and never moves backwards; only strictly
    increasing values are published. ``report`` raises ``ComputationCancelled``
    once ``cancel_event`` is set.
    """

    def __init__(
        self,
        task_id: str = "",
        channel: Optional[Channel] = None,
        cancel_event: Optional[threading.Event] = None,
        interval: int = 1024,
        label: str = "Computing",
    ) -> None:
        self.task_id = task_id
        self.channel = channel
        self.cancel_event = cancel_event
        self.interval = max(1, int(interval))
        self.label = label
        self.last_progress = 0.0

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def check(self) -> None:
        if self.cancelled:
            raise ComputationCancelled(f"Task {self.task_id} was cancelled")

    def report(self, progress: float) -> None:
        self.check()
        progress = min(100.0, max(0.0, float(progress)))
        if progress <= self.last_progress:
            return
        self.last_progress = progress
        if self.channel is not None:
            self.channel.publish(
                TaskMessage(
                    type=MessageType.PROGRESS,
                    task_id=self.task_id,
                    progress=progress,
                    message=f"{self.label} {round(progress)}%",
                )
            )
