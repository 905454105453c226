"""Closed-loop targeting controllers driven by fresh vision estimates.

Each controller is ``IDLE`` until a fresh, ready estimate shows an error
outside its tolerance; it then spawns one correction task and is
``CORRECTING`` until that task reports done. Disabling a controller while
it is correcting finishes the task immediately (cancellation) and drops it.

The :class:`TargetingCoordinator` is the only reader of the vision store: it
consumes freshness once per tick and hands the same snapshot to every
controller, then exposes read-only getters for telemetry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from .actuators import Drive, HeadingSensor, Shooter
from .config import TargetingConfig, lookup
from .state import VisionStateStore
from .task import Task
from .tasks import SetShooterAngleTask, SetShooterSpeedTask, TurnDegreesTask
from .types import ControllerState, Estimate, VisionSnapshot

logger = logging.getLogger(__name__)


class CorrectionController:
    def __init__(self, config: TargetingConfig | None = None) -> None:
        self.config = config or TargetingConfig()
        self._enabled = False
        self._on_target = False
        self._task: Optional[Task] = None
        self._spawned = 0

    @property
    def name(self) -> str:
        return type(self).__name__

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------
    def error(self, estimate: Estimate) -> float:
        raise NotImplementedError

    def tolerance(self) -> float:
        raise NotImplementedError

    def make_task(self, estimate: Estimate) -> Task:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def state(self) -> ControllerState:
        return ControllerState.CORRECTING if self._task is not None else ControllerState.IDLE

    @property
    def on_target(self) -> bool:
        return self._on_target

    @property
    def active_task(self) -> Optional[Task]:
        return self._task

    @property
    def spawned_count(self) -> int:
        return self._spawned

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)
        if not self._enabled:
            self._cancel()

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------
    def update(self, snapshot: Optional[VisionSnapshot]) -> None:
        if not self._enabled:
            self._cancel()
            return

        if snapshot is not None and self._task is None:
            self._react(snapshot)

        task = self._task
        if task is not None:
            task.update()
            if task.is_done:
                result = task.finish()
                self._task = None
                self._on_target = True
                logger.debug("%s: %s finished (%s)", self.name, task.name, result.value)

    def _react(self, snapshot: VisionSnapshot) -> None:
        estimate = snapshot.estimate
        if snapshot.target is None or estimate is None:
            self._on_target = False
            return
        if abs(self.error(estimate)) <= self.tolerance():
            self._on_target = True
            return
        self._on_target = False
        if self.config.require_ready and not snapshot.ready:
            logger.debug("%s: estimate not ready, holding", self.name)
            return
        task = self.make_task(estimate)
        task.initialize()
        self._task = task
        self._spawned += 1
        logger.info("%s: spawned %s (error %.2f)", self.name, task.name, self.error(estimate))

    def _cancel(self) -> None:
        task = self._task
        if task is None:
            return
        self._task = None
        result = task.finish()
        logger.info("%s: cancelled %s (%s)", self.name, task.name, result.value)


class SpinController(CorrectionController):
    """Turns the robot until the target bearing is within tolerance."""

    def __init__(self, drive: Drive, gyro: HeadingSensor, config: TargetingConfig | None = None) -> None:
        super().__init__(config)
        self.drive = drive
        self.gyro = gyro

    def error(self, estimate: Estimate) -> float:
        return estimate.bearing_deg

    def tolerance(self) -> float:
        return self.config.spin_tolerance_deg

    def make_task(self, estimate: Estimate) -> Task:
        return TurnDegreesTask(
            self.drive,
            self.gyro,
            estimate.bearing_deg,
            self.config.spin_turn_rate,
            self.config.spin_tolerance_deg,
        )


class ShooterAngleController(CorrectionController):
    """Sets the shooter elevation for the estimated range."""

    def __init__(self, shooter: Shooter, config: TargetingConfig | None = None) -> None:
        super().__init__(config)
        self.shooter = shooter

    def setpoint(self, estimate: Estimate) -> float:
        return lookup(self.config.angle_table, estimate.range_in)

    def error(self, estimate: Estimate) -> float:
        return self.setpoint(estimate) - self.shooter.angle_deg()

    def tolerance(self) -> float:
        return self.config.angle_tolerance_deg

    def make_task(self, estimate: Estimate) -> Task:
        return SetShooterAngleTask(self.shooter, self.setpoint(estimate), self.config.angle_tolerance_deg)


class ShooterSpeedController(CorrectionController):
    """Sets the shooter wheel speed for the estimated range."""

    def __init__(self, shooter: Shooter, config: TargetingConfig | None = None) -> None:
        super().__init__(config)
        self.shooter = shooter

    def setpoint(self, estimate: Estimate) -> float:
        return lookup(self.config.speed_table, estimate.range_in)

    def error(self, estimate: Estimate) -> float:
        return self.setpoint(estimate) - self.shooter.speed_rpm()

    def tolerance(self) -> float:
        return self.config.speed_tolerance_rpm

    def make_task(self, estimate: Estimate) -> Task:
        return SetShooterSpeedTask(self.shooter, self.setpoint(estimate), self.config.speed_tolerance_rpm)


class TargetingCoordinator:
    def __init__(self, store: VisionStateStore, *controllers: CorrectionController) -> None:
        self.store = store
        self.controllers: Tuple[CorrectionController, ...] = tuple(controllers)

    def controller(self, kind: type) -> Optional[CorrectionController]:
        return next((c for c in self.controllers if isinstance(c, kind)), None)

    def set_targeting(self, enabled: bool, kinds: Tuple[type, ...] | None = None) -> None:
        """Enable or disable targeting.

        With ``kinds``, only controllers of those types take ``enabled``;
        every other controller is disabled.
        """
        for c in self.controllers:
            selected = kinds is None or isinstance(c, kinds)
            c.set_enabled(enabled and selected)

    @property
    def targeting(self) -> bool:
        return any(c.enabled for c in self.controllers)

    def cancel_all(self) -> None:
        """Disable every controller and finish any correction in flight."""
        self.set_targeting(False)

    def update(self) -> None:
        snapshot = self.store.consume() if self.targeting else None
        for c in self.controllers:
            c.update(snapshot)

    # ------------------------------------------------------------------
    # Telemetry getters (polled once per tick by the dashboard layer)
    # ------------------------------------------------------------------
    def _latest(self) -> VisionSnapshot:
        return self.store.snapshot()

    def bearing_deg(self) -> float:
        est = self._latest().estimate
        return est.bearing_deg if est else 0.0

    def range_in(self) -> float:
        est = self._latest().estimate
        return est.range_in if est else 0.0

    def target_visible(self) -> bool:
        return self._latest().has_target

    def on_target(self) -> bool:
        active = [c for c in self.controllers if c.enabled]
        return bool(active) and all(c.on_target for c in active)

    def telemetry(self) -> Dict[str, Any]:
        snap = self._latest()
        data: Dict[str, Any] = {
            "bearing_deg": self.bearing_deg(),
            "range_in": self.range_in(),
            "target_visible": snap.has_target,
            "camera_ready": snap.ready,
            "on_target": self.on_target(),
            "target_location": snap.estimate.location if snap.estimate else None,
        }
        for c in self.controllers:
            data[f"{c.name}.state"] = c.state.value
            data[f"{c.name}.on_target"] = c.on_target
        return data
