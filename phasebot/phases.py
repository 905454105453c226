"""Concrete phases for each robot mode."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .actuators import RobotIO
from .phase import FailurePolicy, Phase
from .targeting import SpinController, TargetingCoordinator
from .task import Task
from .tasks import AwaitStatusTask, ExpandWinchTask, SetShooterAngleTask, SetShooterSpeedTask, WaitTask
from .types import PhaseId

logger = logging.getLogger(__name__)


class AutonPhase(Phase):
    """Autonomous routine, by default: settle, spin up, aim, wait for the shooter.

    ``steps`` replaces the default task list; ``extra`` is appended to
    whichever list is used. The phase commands the shooter itself, so only
    the controllers in ``targeting_kinds`` (spin by default) are enabled
    while it runs.
    """

    def __init__(
        self,
        io: RobotIO,
        targeting: TargetingCoordinator | None = None,
        start_delay_s: float = 0.5,
        shot_rpm: float = 3200.0,
        shot_angle_deg: float = 26.0,
        shooter_timeout_s: float = 3.0,
        steps: Sequence[Callable[[], Task]] | None = None,
        extra: Sequence[Callable[[], Task]] = (),
        targeting_kinds: Tuple[type, ...] = (SpinController,),
        failure_policy: FailurePolicy = FailurePolicy.CONTINUE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(failure_policy)
        self.io = io
        self.targeting = targeting
        self.start_delay_s = start_delay_s
        self.shot_rpm = shot_rpm
        self.shot_angle_deg = shot_angle_deg
        self.shooter_timeout_s = shooter_timeout_s
        self.steps = tuple(steps) if steps is not None else None
        self.extra = tuple(extra)
        self.targeting_kinds = tuple(targeting_kinds)
        self._clock = clock

    def default_steps(self) -> List[Callable[[], Task]]:
        shooter = self.io.require("shooter")
        return [
            lambda: WaitTask(self.start_delay_s, clock=self._clock),
            lambda: SetShooterSpeedTask(shooter, self.shot_rpm, tolerance_rpm=100.0),
            lambda: SetShooterAngleTask(shooter, self.shot_angle_deg, tolerance_deg=0.5),
            lambda: AwaitStatusTask.for_shooter_speed(shooter, self.shooter_timeout_s, clock=self._clock),
        ]

    def build_tasks(self) -> List[Task]:
        steps = self.steps if self.steps is not None else self.default_steps()
        return [factory() for factory in (*steps, *self.extra)]

    def on_init(self) -> None:
        if self.targeting is not None:
            self.targeting.set_targeting(True, kinds=self.targeting_kinds)

    def on_finish(self) -> None:
        if self.targeting is not None:
            self.targeting.cancel_all()
        shooter = self.io.shooter
        if shooter is not None:
            shooter.stop()


class TeleopPhase(Phase):
    """Driver control. No sequenced tasks; the driver layer toggles targeting."""

    def __init__(self, targeting: TargetingCoordinator | None = None) -> None:
        super().__init__()
        self.targeting = targeting

    def request_targeting(self, enabled: bool) -> None:
        if self.targeting is None:
            return
        if enabled != self.targeting.targeting:
            logger.info("TeleopPhase: targeting %s", "on" if enabled else "off")
        self.targeting.set_targeting(enabled)

    def on_finish(self) -> None:
        if self.targeting is not None:
            self.targeting.cancel_all()


class ClimbPhase(Phase):
    """Wait for the winch to reach its stowed position, then pay it out."""

    def __init__(
        self,
        io: RobotIO,
        expand_target: float = 1200.0,
        await_timeout_s: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__()
        self.io = io
        self.expand_target = expand_target
        self.await_timeout_s = await_timeout_s
        self._clock = clock

    def build_tasks(self) -> List[Task]:
        winch = self.io.require("winch")
        return [
            AwaitStatusTask.for_winch(winch, self.await_timeout_s, clock=self._clock),
            ExpandWinchTask(winch, self.expand_target),
        ]


def default_phase_factories(
    io: RobotIO, targeting: Optional[TargetingCoordinator] = None
) -> Dict[PhaseId, Callable[[], Phase]]:
    """PhaseId -> factory mapping used by the scheduler."""
    return {
        PhaseId.AUTONOMOUS: lambda: AutonPhase(io, targeting),
        PhaseId.TELEOP: lambda: TeleopPhase(targeting),
        PhaseId.CLIMB: lambda: ClimbPhase(io),
    }
