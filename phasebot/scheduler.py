"""Mode scheduler: owns the current phase and forwards control ticks.

Holds at most one phase. ``segue_to`` finishes the current phase before
initialising the next, so the init/update/finish contract each phase relies
on always holds.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .camera import FrameSource
from .errors import UnknownPhaseError
from .phase import Phase
from .targeting import TargetingCoordinator
from .types import PhaseId

logger = logging.getLogger(__name__)

PhaseRef = Union[Phase, PhaseId, str]


class ModeScheduler:
    def __init__(
        self,
        factories: Mapping[PhaseId, Callable[[], Phase]] | None = None,
        targeting: TargetingCoordinator | None = None,
        frame_source: FrameSource | None = None,
    ) -> None:
        self._factories: Dict[PhaseId, Callable[[], Phase]] = dict(factories or {})
        self.targeting = targeting
        self.frame_source = frame_source
        self._current: Optional[Phase] = None
        self._ticks = 0

    @property
    def current_phase(self) -> Optional[Phase]:
        return self._current

    @property
    def ticks(self) -> int:
        return self._ticks

    def _resolve(self, ref: PhaseRef) -> Phase:
        if isinstance(ref, Phase):
            return ref
        try:
            phase_id = PhaseId(ref)
        except ValueError:
            raise UnknownPhaseError(f"Unknown phase identifier: {ref!r}") from None
        factory = self._factories.get(phase_id)
        if factory is None:
            raise UnknownPhaseError(f"No phase registered for {phase_id.value}")
        return factory()

    def segue_to(self, ref: PhaseRef) -> Phase:
        """Finish the current phase and initialise ``ref`` in its place."""
        phase = self._resolve(ref)
        if self._current is not None:
            self._current.finish_phase()
        logger.info("Segue to %s", phase.name)
        self._current = phase
        phase.init_phase()
        return phase

    def end_phase(self) -> None:
        """Finish the current phase without starting another."""
        if self._current is None:
            return
        logger.info("Ending %s", self._current.name)
        self._current.finish_phase()
        self._current = None

    def tick(self) -> None:
        """One control-loop iteration."""
        self._ticks += 1
        if self.frame_source is not None:
            self.frame_source.ensure_running()
        if self._current is not None:
            self._current.update_phase()
        if self.targeting is not None:
            self.targeting.update()

    def telemetry(self) -> Dict[str, Any]:
        phase = self._current
        task = phase.current_task if phase else None
        data: Dict[str, Any] = {
            "phase": phase.name if phase else None,
            "phase_complete": phase.is_complete if phase else False,
            "task": task.name if task else None,
            "ticks": self._ticks,
        }
        if self.targeting is not None:
            data.update(self.targeting.telemetry())
        return data

    def shutdown(self) -> None:
        self.end_phase()
        if self.frame_source is not None:
            self.frame_source.stop()
            self.frame_source.camera.close()
