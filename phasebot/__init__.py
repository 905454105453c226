"""Phase/task execution engine and vision targeting core for a competition robot."""

from __future__ import annotations

from .camera import AxisCamera, Frame, FrameSource
from .config import (
    CameraConfig,
    GeometryConfig,
    RobotConfig,
    SegmentationConfig,
    TargetingConfig,
    load_calibration,
)
from .errors import (
    CalibrationError,
    CaptureError,
    PhaseLifecycleError,
    PhasebotError,
    TaskLifecycleError,
    UnknownPhaseError,
)
from .geometry import GeometryEstimator
from .phase import FailurePolicy, Phase, SequencePhase
from .scheduler import ModeScheduler
from .segmentation import SegmentationPipeline
from .state import VisionStateStore
from .targeting import (
    ShooterAngleController,
    ShooterSpeedController,
    SpinController,
    TargetingCoordinator,
)
from .task import Task
from .types import (
    ControllerState,
    Estimate,
    PassOutcome,
    PhaseId,
    Target,
    TaskResult,
    TaskState,
    VisionSnapshot,
)

__version__ = "0.1.0"
