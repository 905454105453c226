"""Concrete tasks used by the phases and the targeting controllers."""

from __future__ import annotations

import logging
import math
import time
from enum import Enum
from typing import Callable

from .actuators import Drive, HeadingSensor, Shooter, Winch
from .task import Task
from .types import TaskResult

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class ExpandWinchTask(Task):
    """Commit a winch setpoint. Done on the first update."""

    def __init__(self, winch: Winch, target: float) -> None:
        super().__init__()
        self.winch = winch
        self.target = float(target)

    def on_initialize(self) -> None:
        self.winch.set_winch_target(self.target)

    def on_update(self) -> None:
        self.mark_done()


class Status(str, Enum):
    WINCH_IN_POSITION = "WINCH_IN_POSITION"
    SHOOTER_IN_POSITION = "SHOOTER_IN_POSITION"
    SHOOTER_AT_SPEED = "SHOOTER_AT_SPEED"


class AwaitStatusTask(Task):
    """Wait until a status predicate holds.

    ``timeout_s == 0`` waits forever. On timeout the task is done but
    finishes with FAILURE.
    """

    def __init__(
        self,
        status: Status,
        check: Callable[[], bool],
        timeout_s: float = 0.0,
        clock: Clock = time.monotonic,
    ) -> None:
        super().__init__()
        if timeout_s < 0:
            raise ValueError("timeout_s must be >= 0")
        self.status = Status(status)
        self._check = check
        self.timeout_s = float(timeout_s)
        self._clock = clock
        self._started = 0.0
        self._timed_out = False

    @property
    def name(self) -> str:
        return f"AwaitStatusTask[{self.status.value}]"

    @classmethod
    def for_winch(cls, winch: Winch, timeout_s: float = 0.0, clock: Clock = time.monotonic) -> "AwaitStatusTask":
        return cls(Status.WINCH_IN_POSITION, winch.is_winch_in_position, timeout_s, clock)

    @classmethod
    def for_shooter_angle(cls, shooter: Shooter, timeout_s: float = 0.0, clock: Clock = time.monotonic) -> "AwaitStatusTask":
        return cls(Status.SHOOTER_IN_POSITION, shooter.is_in_position, timeout_s, clock)

    @classmethod
    def for_shooter_speed(cls, shooter: Shooter, timeout_s: float = 0.0, clock: Clock = time.monotonic) -> "AwaitStatusTask":
        return cls(Status.SHOOTER_AT_SPEED, shooter.is_at_speed, timeout_s, clock)

    def on_initialize(self) -> None:
        self._started = self._clock()

    def on_update(self) -> None:
        if self._check():
            self.mark_done()
        elif self.timeout_s > 0 and (self._clock() - self._started) >= self.timeout_s:
            logger.warning("%s timed out after %.2fs", self.name, self.timeout_s)
            self._timed_out = True
            self.mark_done()

    def on_finish(self) -> TaskResult:
        if self._timed_out or not self.is_done:
            return TaskResult.FAILURE
        return TaskResult.SUCCESS


class WaitTask(Task):
    def __init__(self, seconds: float, clock: Clock = time.monotonic) -> None:
        super().__init__()
        self.seconds = max(0.0, float(seconds))
        self._clock = clock
        self._deadline = 0.0

    def on_initialize(self) -> None:
        self._deadline = self._clock() + self.seconds

    def on_update(self) -> None:
        if self._clock() >= self._deadline:
            self.mark_done()


class TurnDegreesTask(Task):
    """Turn in place by a relative angle, using the gyro to close the loop.

    The task owns its own tolerance check; it never times out.
    """

    def __init__(
        self,
        drive: Drive,
        gyro: HeadingSensor,
        degrees: float,
        speed: float,
        tolerance_deg: float,
    ) -> None:
        super().__init__()
        if tolerance_deg <= 0:
            raise ValueError("tolerance_deg must be positive")
        self.drive = drive
        self.gyro = gyro
        self.degrees = float(degrees)
        self.speed = min(abs(float(speed)), 1.0)
        self.tolerance_deg = float(tolerance_deg)
        self._goal = 0.0

    @property
    def goal_deg(self) -> float:
        return self._goal

    def remaining_deg(self) -> float:
        return self._goal - self.gyro.heading_deg()

    def on_initialize(self) -> None:
        self._goal = self.gyro.heading_deg() + self.degrees
        logger.debug("TurnDegreesTask: %.2f deg toward heading %.2f", self.degrees, self._goal)

    def on_update(self) -> None:
        error = self.remaining_deg()
        if abs(error) <= self.tolerance_deg:
            self.drive.stop()
            self.mark_done()
            return
        self.drive.turn(math.copysign(self.speed, error))

    def on_finish(self) -> TaskResult:
        self.drive.stop()
        return TaskResult.UNSET


class SetShooterAngleTask(Task):
    def __init__(self, shooter: Shooter, angle_deg: float, tolerance_deg: float) -> None:
        super().__init__()
        self.shooter = shooter
        self.angle_deg = float(angle_deg)
        self.tolerance_deg = abs(float(tolerance_deg))

    def on_initialize(self) -> None:
        self.shooter.set_angle_target(self.angle_deg)

    def on_update(self) -> None:
        if abs(self.shooter.angle_deg() - self.angle_deg) <= self.tolerance_deg:
            self.mark_done()


class SetShooterSpeedTask(Task):
    def __init__(self, shooter: Shooter, rpm: float, tolerance_rpm: float) -> None:
        super().__init__()
        self.shooter = shooter
        self.rpm = float(rpm)
        self.tolerance_rpm = abs(float(tolerance_rpm))

    def on_initialize(self) -> None:
        self.shooter.set_speed_target(self.rpm)

    def on_update(self) -> None:
        if abs(self.shooter.speed_rpm() - self.rpm) <= self.tolerance_rpm:
            self.mark_done()
