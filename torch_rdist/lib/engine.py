from __future__ import annotations

import queue
import threading
import time
import uuid
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Set, Union

from .checkpoint import Checkpoint, MessageType, TaskMessage
from .config import AlgorithmParams, Implementation, RuntimeConfig, Variant
from .errors import ComputationCancelled, EngineError, error_kind
from .estimator import ComputationResult, compute_resistance
from .graph import Graph
from .logging import get_logger

logger = get_logger(__name__)


class Outbox:
    """FIFO of task messages that never lets a cancelled task's message through.

    Publication and delivery both check the cancelled set under one lock, so
    once :meth:`cancel` returns nothing more is delivered for that id.
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[TaskMessage]" = queue.Queue()
        self._lock = threading.Lock()
        self._cancelled: Set[str] = set()
        self._queued: Dict[str, int] = {}
        self._released: Set[str] = set()

    def publish(self, message: TaskMessage) -> bool:
        with self._lock:
            if message.task_id in self._cancelled:
                return False
            self._queue.put(message)
            self._queued[message.task_id] = self._queued.get(message.task_id, 0) + 1
            return True

    def cancel(self, task_id: str) -> None:
        with self._lock:
            self._cancelled.add(task_id)

    def is_cancelled(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._cancelled

    def release(self, task_id: str) -> None:
        """Drop the bookkeeping of a task that will publish nothing more.

        A cancelled id stays filtered until its last queued message is read.
        """
        with self._lock:
            if self._queued.get(task_id):
                self._released.add(task_id)
            else:
                self._cancelled.discard(task_id)

    def _mark_read(self, task_id: str) -> None:
        remaining = self._queued[task_id] - 1
        if remaining:
            self._queued[task_id] = remaining
            return
        del self._queued[task_id]
        if task_id in self._released:
            self._released.discard(task_id)
            self._cancelled.discard(task_id)

    def get(self, timeout: Optional[float] = None) -> Optional[TaskMessage]:
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                message = self._queue.get(timeout=remaining)
            except queue.Empty:
                return None
            with self._lock:
                delivered = message.task_id not in self._cancelled
                self._mark_read(message.task_id)
                if delivered:
                    return message


@dataclass
class _Task:
    future: "Future[ComputationResult]"
    cancel_event: threading.Event


class ResistanceEngine:
    """Runs resistance estimators off the caller's thread.

    Each :meth:`compute` call returns a task id immediately. Progress, result
    and error messages for the task arrive in order through :meth:`get_message`;
    :meth:`result` blocks on one task directly. Engines are created and owned
    by the caller and hold no global state.

    Example:
        with ResistanceEngine(RuntimeConfig(seed=7)) as engine:
            task_id = engine.compute("push", graph, PushParams(s=0, t=1, v=2, rmax=1e-6))
            distance = engine.result(task_id).distance
    """

    def __init__(self, config: Optional[RuntimeConfig] = None, max_workers: int = 2) -> None:
        self.config = config or RuntimeConfig()
        self.config.validate()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="torch-rdist")
        self._outbox = Outbox()
        self._tasks: Dict[str, _Task] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> "ResistanceEngine":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown(cancel_pending=True)

    def compute(
        self,
        variant: Union[Variant, str],
        graph: Graph,
        params: AlgorithmParams,
        implementation: Union[Implementation, str, None] = None,
        seed: Optional[int] = None,
        ground_truth: Optional[float] = None,
    ) -> str:
        variant = Variant(variant)
        config = replace(
            self.config,
            implementation=(
                Implementation(implementation).value
                if implementation is not None
                else self.config.implementation
            ),
            seed=seed if seed is not None else self.config.seed,
        )
        task_id = f"task-{uuid.uuid4().hex[:12]}"
        cancel_event = threading.Event()
        label = "Computing" if variant is Variant.PUSH else "Random walks"
        checkpoint = Checkpoint(task_id, self._outbox, cancel_event, config.checkpoint_interval, label)

        with self._lock:
            try:
                future = self._executor.submit(
                    self._run, task_id, variant, graph, params, config, checkpoint, ground_truth
                )
            except RuntimeError as exc:
                raise EngineError(f"Could not schedule task {task_id}: {exc}") from exc
            self._tasks[task_id] = _Task(future=future, cancel_event=cancel_event)

        logger.info(
            f"Submitted task {task_id}: {variant.value}/{config.implementation} "
            f"nodes={graph.n} arcs={graph.num_arcs}"
        )
        return task_id

    def _run(
        self,
        task_id: str,
        variant: Variant,
        graph: Graph,
        params: AlgorithmParams,
        config: RuntimeConfig,
        checkpoint: Checkpoint,
        ground_truth: Optional[float],
    ) -> ComputationResult:
        try:
            result = compute_resistance(variant, graph, params, config, checkpoint, ground_truth)
        except ComputationCancelled:
            logger.info(f"Task {task_id} stopped after cancellation")
            raise
        except Exception as exc:
            logger.error(f"Computation failed for task {task_id}: {exc}")
            self._outbox.publish(
                TaskMessage(
                    type=MessageType.ERROR,
                    task_id=task_id,
                    error=str(exc),
                    error_kind=error_kind(exc),
                )
            )
            raise
        self._outbox.publish(TaskMessage(type=MessageType.RESULT, task_id=task_id, result=result))
        return result

    def _task(self, task_id: str) -> _Task:
        with self._lock:
            task = self._tasks.get(task_id)
        if task is None:
            raise KeyError(f"Unknown task id: {task_id}")
        return task

    def cancel(self, task_id: str) -> bool:
        """Cancel a task; no message for ``task_id`` is delivered afterwards.

        Returns False for unknown ids.
        """
        with self._lock:
            task = self._tasks.get(task_id)
        if task is None:
            return False
        self._outbox.cancel(task_id)
        task.cancel_event.set()
        task.future.cancel()
        logger.info(f"Cancel requested for task {task_id}")
        return True

    def is_cancelled(self, task_id: str) -> bool:
        return self._outbox.is_cancelled(task_id)

    def get_message(self, timeout: Optional[float] = None) -> Optional[TaskMessage]:
        """Next message from any task, or None once ``timeout`` seconds pass."""
        return self._outbox.get(timeout)

    def drain(self) -> List[TaskMessage]:
        messages: List[TaskMessage] = []
        while True:
            message = self._outbox.get(timeout=0)
            if message is None:
                return messages
            messages.append(message)

    def result(self, task_id: str, timeout: Optional[float] = None) -> ComputationResult:
        """Block until the task finishes; re-raises its error.

        Raises ``ComputationCancelled`` for cancelled tasks.
        """
        task = self._task(task_id)
        try:
            return task.future.result(timeout=timeout)
        except CancelledError as exc:
            raise ComputationCancelled(f"Task {task_id} was cancelled") from exc

    def join(self, task_id: str, timeout: Optional[float] = None) -> bool:
        """Wait until the task has stopped running. Returns False on timeout."""
        task = self._task(task_id)
        done, _ = wait([task.future], timeout=timeout)
        return bool(done)

    def forget(self, task_id: str) -> bool:
        """Release a finished task so the engine no longer holds its result.

        Returns False while the task is still running. Afterwards :meth:`result`
        and :meth:`join` raise ``KeyError`` for ``task_id``.
        """
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise KeyError(f"Unknown task id: {task_id}")
            if not task.future.done():
                return False
            del self._tasks[task_id]
        self._outbox.release(task_id)
        return True

    def active_tasks(self) -> List[str]:
        """Ids of tasks that have not been forgotten yet."""
        with self._lock:
            return list(self._tasks)

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        if cancel_pending:
            with self._lock:
                pending = [task_id for task_id, task in self._tasks.items() if not task.future.done()]
            for task_id in pending:
                self.cancel(task_id)
        self._executor.shutdown(wait=wait)
