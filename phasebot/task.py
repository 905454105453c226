"""Task: the atomic unit of behaviour driven by phases and controllers.

Lifecycle::

    CREATED --initialize()--> RUNNING --update()*--> (done) --finish()--> DONE

``initialize()`` runs one-time setup, each ``update()`` may mark the task done,
and the owner calls ``finish()`` exactly once to collect the terminal result.
Out-of-order calls raise :class:`TaskLifecycleError`.

Subclasses override the ``on_*`` hooks rather than the public methods.
"""

from __future__ import annotations

import logging

from .errors import TaskLifecycleError
from .types import TaskResult, TaskState

logger = logging.getLogger(__name__)


class Task:
    def __init__(self) -> None:
        self._state = TaskState.CREATED
        self._done = False
        self._result = TaskResult.UNSET

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def is_done(self) -> bool:
        return self._done

    @property
    def result(self) -> TaskResult:
        return self._result

    @property
    def is_running(self) -> bool:
        return self._state is TaskState.RUNNING

    def __repr__(self) -> str:
        return f"<{self.name} {self._state.value} done={self._done} result={self._result.value}>"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def initialize(self) -> None:
        if self._state is not TaskState.CREATED:
            raise TaskLifecycleError(f"{self.name}.initialize() called in state {self._state.value}")
        self._state = TaskState.RUNNING
        logger.debug("%s initialized", self.name)
        self.on_initialize()

    def update(self) -> None:
        if self._state is not TaskState.RUNNING:
            raise TaskLifecycleError(f"{self.name}.update() called in state {self._state.value}")
        if self._done:
            return
        self.on_update()

    def finish(self) -> TaskResult:
        if self._state is not TaskState.RUNNING:
            raise TaskLifecycleError(f"{self.name}.finish() called in state {self._state.value}")
        self._state = TaskState.DONE
        result = self.on_finish()
        if result is TaskResult.UNSET:
            result = TaskResult.SUCCESS if self._done else TaskResult.FAILURE
        self._result = result
        logger.debug("%s finished: %s", self.name, result.value)
        return result

    def mark_done(self) -> None:
        self._done = True

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------
    def on_initialize(self) -> None:
        pass

    def on_update(self) -> None:
        pass

    def on_finish(self) -> TaskResult:
        """Release whatever the task holds. Return UNSET to derive the result from ``is_done``."""
        return TaskResult.UNSET
