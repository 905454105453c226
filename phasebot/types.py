"""Shared enums and lightweight dataclasses for the phasebot core."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TaskResult(str, Enum):
    """Terminal outcome of a Task."""

    UNSET = "UNSET"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class TaskState(str, Enum):
    CREATED = "CREATED"
    RUNNING = "RUNNING"
    DONE = "DONE"


class PhaseId(str, Enum):
    """Identifiers accepted by the mode scheduler."""

    AUTONOMOUS = "AUTONOMOUS"
    TELEOP = "TELEOP"
    CLIMB = "CLIMB"


class ControllerState(str, Enum):
    IDLE = "IDLE"
    CORRECTING = "CORRECTING"


class NoTargetReason(str, Enum):
    """Why a segmentation pass produced no target."""

    NO_REGIONS = "NO_REGIONS"
    NO_BOARD = "NO_BOARD"
    NO_REFINED_MATCH = "NO_REFINED_MATCH"


class PassOutcome(str, Enum):
    """What one iteration of the capture worker achieved."""

    PUBLISHED = "PUBLISHED"
    CAPTURE_FAILED = "CAPTURE_FAILED"
    PROCESSING_FAILED = "PROCESSING_FAILED"


@dataclass(frozen=True)
class Region:
    """One connected region of the thresholded image."""

    x: int
    y: int
    w: int
    h: int
    area: int
    cx: float
    cy: float

    @property
    def box_area(self) -> int:
        return self.w * self.h

    @property
    def fill_ratio(self) -> float:
        if self.box_area <= 0:
            return 0.0
        return self.area / float(self.box_area)


@dataclass(frozen=True)
class Target:
    """Bounding box of the selected field marker, in frame pixels."""

    x: int
    y: int
    w: int
    h: int

    def __post_init__(self) -> None:
        if self.w <= 0 or self.h <= 0:
            raise ValueError(f"Target must have positive size, got w={self.w} h={self.h}")

    @property
    def x2(self) -> int:
        return self.x + self.w

    @property
    def y2(self) -> int:
        return self.y + self.h

    @property
    def center_x(self) -> float:
        return self.x + self.w / 2.0

    @property
    def center_y(self) -> float:
        return self.y + self.h / 2.0

    @classmethod
    def from_region(cls, region: Region) -> "Target":
        return cls(region.x, region.y, region.w, region.h)


@dataclass(frozen=True)
class Estimate:
    """Bearing/range pair derived from a Target."""

    bearing_deg: float
    range_in: float
    location: float


@dataclass(frozen=True)
class SegmentationResult:
    """Either a Target or the reason there is none."""

    target: Optional[Target] = None
    reason: Optional[NoTargetReason] = None
    region_count: int = 0

    @property
    def found(self) -> bool:
        return self.target is not None


@dataclass(frozen=True)
class VisionSnapshot:
    """Everything one completed pipeline pass hands to the control loop."""

    frame_id: int = 0
    captured_at: float = 0.0
    frame_width: int = 0
    target: Optional[Target] = None
    estimate: Optional[Estimate] = None
    ready: bool = False
    reason: Optional[NoTargetReason] = None

    @property
    def has_target(self) -> bool:
        return self.target is not None and self.estimate is not None
