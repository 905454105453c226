"""Wires the core services together once, at robot start-up.

Every service is an owned instance: the store, frame source, controllers and
scheduler are constructed here and handed to whoever needs them.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from .actuators import RobotIO
from .camera import AxisCamera, Camera, FrameSource
from .config import RobotConfig, load_calibration
from .geometry import GeometryEstimator
from .phases import default_phase_factories
from .scheduler import ModeScheduler
from .segmentation import SegmentationPipeline
from .state import VisionStateStore
from .targeting import (
    CorrectionController,
    ShooterAngleController,
    ShooterSpeedController,
    SpinController,
    TargetingCoordinator,
)

logger = logging.getLogger(__name__)


def build_scheduler(
    io: RobotIO,
    config: RobotConfig | None = None,
    camera: Camera | None = None,
) -> ModeScheduler:
    config = config or load_calibration()
    store = VisionStateStore()
    source = FrameSource(
        camera or AxisCamera(config.camera),
        store=store,
        pipeline=SegmentationPipeline(config.segmentation),
        estimator=GeometryEstimator(config.geometry),
        retry_sleep_s=config.camera.retry_sleep_s,
    )

    controllers: list[CorrectionController] = []
    if io.drive is not None and io.gyro is not None:
        controllers.append(SpinController(io.drive, io.gyro, config.targeting))
    if io.shooter is not None:
        controllers.append(ShooterAngleController(io.shooter, config.targeting))
        controllers.append(ShooterSpeedController(io.shooter, config.targeting))
    targeting = TargetingCoordinator(store, *controllers)
    logger.info("Targeting controllers: %s", ", ".join(c.name for c in controllers) or "none")

    return ModeScheduler(
        default_phase_factories(io, targeting),
        targeting=targeting,
        frame_source=source,
    )


def run_periodic(
    scheduler: ModeScheduler,
    period_s: float = 0.02,
    should_stop: Callable[[], bool] = lambda: False,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Fixed-rate control loop, for running the core outside a robot framework."""
    next_tick = clock()
    try:
        while not should_stop():
            scheduler.tick()
            next_tick += period_s
            delay = next_tick - clock()
            if delay > 0:
                sleep(delay)
            else:
                next_tick = clock()
    finally:
        scheduler.shutdown()
