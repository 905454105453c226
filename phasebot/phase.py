"""Phase: an ordered list of tasks executed one at a time.

The mode scheduler calls ``init_phase()`` once, ``update_phase()`` every
control tick, and ``finish_phase()`` exactly once when the mode changes.
``finish_phase()`` is the only way to interrupt a phase mid-sequence.

A task that never reports done stalls the phase; time-bounded behaviour
belongs inside the task.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import PhaseLifecycleError
from .task import Task
from .types import TaskResult

logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    """What a phase does when a task finishes with FAILURE."""

    CONTINUE = "CONTINUE"
    ABORT = "ABORT"


class Phase:
    def __init__(self, failure_policy: FailurePolicy = FailurePolicy.CONTINUE) -> None:
        self.failure_policy = FailurePolicy(failure_policy)
        self._tasks: List[Task] = []
        self._index = 0
        self._active = False
        self._aborted = False
        self._results: List[Tuple[str, TaskResult]] = []

    @property
    def name(self) -> str:
        return type(self).__name__

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------
    def build_tasks(self) -> Sequence[Task]:
        """Return the ordered task list. Called once by ``init_phase()``."""
        return ()

    def on_init(self) -> None:
        """Runs once after the task list is built and its first task initialized."""

    def on_update(self) -> None:
        """Per-tick work that is not part of the task sequence."""

    def on_finish(self) -> None:
        pass

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def current_task(self) -> Optional[Task]:
        if not self._active or self._aborted or self._index >= len(self._tasks):
            return None
        return self._tasks[self._index]

    @property
    def is_complete(self) -> bool:
        """True once the sequence has run out (or aborted); the phase stays resident."""
        return self._active and self.current_task is None

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def results(self) -> Tuple[Tuple[str, TaskResult], ...]:
        return tuple(self._results)

    @property
    def task_count(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Scheduler entry points
    # ------------------------------------------------------------------
    def init_phase(self) -> None:
        if self._active:
            raise PhaseLifecycleError(f"{self.name}.init_phase() called twice")
        self._tasks = list(self.build_tasks())
        self._index = 0
        self._aborted = False
        self._results = []
        self._active = True
        logger.info("%s started with %d task(s)", self.name, len(self._tasks))
        first = self.current_task
        if first is not None:
            first.initialize()
        self.on_init()

    def update_phase(self) -> None:
        if not self._active:
            raise PhaseLifecycleError(f"{self.name}.update_phase() called before init_phase()")
        task = self.current_task
        if task is not None:
            task.update()
            if task.is_done:
                self._complete(task)
        self.on_update()

    def finish_phase(self) -> None:
        if not self._active:
            return
        task = self.current_task
        if task is not None and task.is_running:
            result = task.finish()
            self._results.append((task.name, result))
            logger.info("%s interrupted during %s (%s)", self.name, task.name, result.value)
        self.on_finish()
        self._tasks = []
        self._index = 0
        self._active = False
        logger.info("%s finished", self.name)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _complete(self, task: Task) -> None:
        result = task.finish()
        self._results.append((task.name, result))
        logger.debug("%s: %s -> %s", self.name, task.name, result.value)

        if result is TaskResult.FAILURE and self.failure_policy is FailurePolicy.ABORT:
            self._aborted = True
            logger.warning("%s aborted: %s failed", self.name, task.name)
            return

        self._index += 1
        following = self.current_task
        if following is not None:
            following.initialize()
        else:
            logger.info("%s sequence complete", self.name)


class SequencePhase(Phase):
    """A phase built from task factories, so each run gets fresh tasks."""

    def __init__(
        self,
        factories: Sequence[Callable[[], Task]],
        name: str | None = None,
        failure_policy: FailurePolicy = FailurePolicy.CONTINUE,
    ) -> None:
        super().__init__(failure_policy)
        self._factories = tuple(factories)
        self._name = name

    @property
    def name(self) -> str:
        return self._name or super().name

    def build_tasks(self) -> Sequence[Task]:
        return [factory() for factory in self._factories]
