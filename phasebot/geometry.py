"""Bearing/range estimation from a target bounding box.

Bearing is the signed horizontal offset of the box centre from boresight,
negative to the left. Range comes from the apparent size of the box against
a calibrated constant; a trigonometric estimate from the box's vertical
position is kept as a cross-check.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

from .config import GeometryConfig
from .types import Estimate, Target


def bearing_deg(target: Target, frame_width: float, config: GeometryConfig) -> float:
    return (target.x + target.w / 2.0 - frame_width / 2.0) * config.fov_h_deg / frame_width


def range_in(target: Target, frame_width: float, config: GeometryConfig) -> float:
    mean_size = (target.w + target.h) / 2.0
    scale = frame_width / config.reference_width_px
    return config.distance_constant * scale / mean_size


def range_in_trig(target: Target, frame_height: float, config: GeometryConfig) -> Optional[float]:
    """Range from the elevation angle of the target centre.

    Returns None when the target centre is at or below the horizon, where the
    camera geometry cannot give a range.
    """
    angle_from_top = target.center_y * config.fov_v_deg / frame_height
    elevation = config.camera_pitch_deg + config.fov_v_deg / 2.0 - angle_from_top
    if elevation <= 0.0:
        return None
    rise = config.target_elevation_in + config.target_height_in / 2.0 - config.camera_height_in
    return rise / math.tan(math.radians(elevation))


def target_location(target: Optional[Target], config: GeometryConfig) -> float:
    """Vertical centre of the target, or the no-target sentinel."""
    if target is None:
        return config.no_target_location
    return target.center_y


class GeometryEstimator:
    """Turns each pass's target into an Estimate and tracks readiness.

    Readiness compares the target's vertical centre with the previous pass;
    a small change means the camera has caught up with the robot's motion.
    """

    def __init__(self, config: GeometryConfig | None = None) -> None:
        self.config = config or GeometryConfig()
        self._previous_location: Optional[float] = None

    @property
    def previous_location(self) -> Optional[float]:
        return self._previous_location

    def is_ready(self, location: float) -> bool:
        if self._previous_location is None:
            return False
        return abs(location - self._previous_location) < self.config.ready_threshold_px

    def update(
        self,
        target: Optional[Target],
        frame_width: float | None = None,
    ) -> Tuple[Optional[Estimate], bool]:
        cfg = self.config
        width = float(frame_width or cfg.fov_h_px)
        location = target_location(target, cfg)
        ready = self.is_ready(location)
        self._previous_location = location

        if target is None:
            return None, ready
        estimate = Estimate(
            bearing_deg=bearing_deg(target, width, cfg),
            range_in=range_in(target, width, cfg),
            location=location,
        )
        return estimate, ready

    def reset(self) -> None:
        self._previous_location = None
