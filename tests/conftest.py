from __future__ import annotations

import time
from typing import List, Optional

import cv2
import numpy as np
import pytest

from phasebot.errors import CaptureError
from phasebot.task import Task
from phasebot.types import Estimate, Target, TaskResult, VisionSnapshot

# Centre of the default threshold box: hue 120, sat 200, value 220 (0..255 scale).
TARGET_HSV = (120, 200, 220)


def target_bgr() -> tuple:
    pixel = np.uint8([[list(TARGET_HSV)]])
    b, g, r = cv2.cvtColor(pixel, cv2.COLOR_HSV2BGR_FULL)[0, 0]
    return int(b), int(g), int(r)


def blank_frame(width: int = 320, height: int = 240) -> np.ndarray:
    return np.zeros((height, width, 3), dtype=np.uint8)


def paint_solid(frame: np.ndarray, x: int, y: int, w: int, h: int) -> np.ndarray:
    frame[y : y + h, x : x + w] = target_bgr()
    return frame


def paint_outline(frame: np.ndarray, x: int, y: int, w: int, h: int, thickness: int = 4) -> np.ndarray:
    paint_solid(frame, x, y, w, h)
    t = thickness
    frame[y + t : y + h - t, x + t : x + w - t] = 0
    return frame


def make_snapshot(
    bearing: float = 0.0,
    range_in: float = 120.0,
    ready: bool = True,
    visible: bool = True,
    frame_id: int = 1,
) -> VisionSnapshot:
    if not visible:
        return VisionSnapshot(frame_id=frame_id, ready=ready)
    return VisionSnapshot(
        frame_id=frame_id,
        frame_width=320,
        target=Target(100, 50, 80, 30),
        estimate=Estimate(bearing_deg=bearing, range_in=range_in, location=65.0),
        ready=ready,
    )


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDrive:
    def __init__(self) -> None:
        self.turns: List[float] = []
        self.stops = 0

    def turn(self, speed: float) -> None:
        self.turns.append(speed)

    def stop(self) -> None:
        self.stops += 1


class FakeGyro:
    def __init__(self, heading: float = 0.0) -> None:
        self.heading = heading

    def heading_deg(self) -> float:
        return self.heading


class FakeWinch:
    def __init__(self) -> None:
        self.target: Optional[float] = None
        self.in_position = False

    def set_winch_target(self, target: float) -> None:
        self.target = target

    def is_winch_in_position(self) -> bool:
        return self.in_position


class FakeShooter:
    def __init__(self, angle: float = 20.0, rpm: float = 0.0) -> None:
        self.angle = angle
        self.rpm = rpm
        self.angle_target: Optional[float] = None
        self.speed_target: Optional[float] = None
        self.stops = 0

    def set_angle_target(self, angle_deg: float) -> None:
        self.angle_target = angle_deg

    def angle_deg(self) -> float:
        return self.angle

    def is_in_position(self) -> bool:
        return self.angle_target is not None and abs(self.angle - self.angle_target) <= 0.5

    def set_speed_target(self, rpm: float) -> None:
        self.speed_target = rpm

    def speed_rpm(self) -> float:
        return self.rpm

    def is_at_speed(self) -> bool:
        return self.speed_target is not None and abs(self.rpm - self.speed_target) <= 100.0

    def stop(self) -> None:
        self.stops += 1


class ScriptedCamera:
    """Replays a script of frames/exceptions, then repeats the last frame."""

    def __init__(self, *script, delay_s: float = 0.001) -> None:
        self.script = list(script)
        self.delay_s = delay_s
        self.captures = 0
        self.closed = False
        self._last: Optional[np.ndarray] = None

    def capture(self) -> np.ndarray:
        self.captures += 1
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.script:
            item = self.script.pop(0)
        elif self._last is not None:
            item = self._last
        else:
            raise CaptureError("script exhausted")
        if isinstance(item, BaseException):
            raise item
        self._last = item
        return item.copy()

    def close(self) -> None:
        self.closed = True


class RecordingTask(Task):
    """Logs every lifecycle call; done after ``done_after`` updates."""

    def __init__(self, label: str, log: List[str], done_after: Optional[int] = 1,
                 result: TaskResult = TaskResult.UNSET) -> None:
        super().__init__()
        self.label = label
        self.log = log
        self.done_after = done_after
        self.forced_result = result
        self.updates = 0
        self.finishes = 0

    @property
    def name(self) -> str:
        return self.label

    def on_initialize(self) -> None:
        self.log.append(f"{self.label}.initialize")

    def on_update(self) -> None:
        self.updates += 1
        self.log.append(f"{self.label}.update")
        if self.done_after is not None and self.updates >= self.done_after:
            self.mark_done()

    def on_finish(self) -> TaskResult:
        self.finishes += 1
        self.log.append(f"{self.label}.finish")
        return self.forced_result


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def drive() -> FakeDrive:
    return FakeDrive()


@pytest.fixture
def gyro() -> FakeGyro:
    return FakeGyro()


@pytest.fixture
def winch() -> FakeWinch:
    return FakeWinch()


@pytest.fixture
def shooter() -> FakeShooter:
    return FakeShooter()
