"""Calibration and configuration values for the camera, vision and targeting.

Every constant the pipeline depends on lives here as a field of a frozen
dataclass so a test fixture (or a calibration file) can substitute its own
values without touching the algorithms.

Calibration overrides are read from ``calibration.npz`` (same lookup as the
ArUco stack's ``Calibration.npz``): the package directory, its parent, then
the current working directory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Tuple

import numpy as np

from .errors import CalibrationError

logger = logging.getLogger(__name__)

CALIBRATION_FILENAME = "calibration.npz"

Table = Tuple[Tuple[float, float], ...]


@dataclass(frozen=True)
class CameraConfig:
    """Network camera endpoint, set once at startup."""

    ip: str = "10.2.45.11"
    max_fps: int = 20
    resolution: Tuple[int, int] = (160, 120)
    compression: int = 65
    open_timeout_s: float = 2.0
    retry_sleep_s: float = 0.05

    @property
    def stream_url(self) -> str:
        w, h = self.resolution
        return (
            f"http://{self.ip}/axis-cgi/mjpg/video.cgi"
            f"?resolution={w}x{h}&fps={self.max_fps}&compression={self.compression}"
        )


@dataclass(frozen=True)
class SegmentationConfig:
    # Inclusive per-channel bounds on the (hue, saturation, value) planes, 0..255.
    hsv_lower: Tuple[int, int, int] = (107, 97, 178)
    hsv_upper: Tuple[int, int, int] = (133, 255, 255)
    min_region_pixels: int = 10
    connectivity: int = 8

    board_max_fill: float = 0.55
    refined_min_board_fraction: float = 0.5
    refined_min_width: int = 70
    refined_min_height: int = 20
    refined_max_fill: float = 0.8
    # Column where the target's centre sits when the robot is aligned.
    reference_column: float = 77.0


@dataclass(frozen=True)
class GeometryConfig:
    fov_h_deg: float = 50.0
    fov_h_px: float = 320.0
    fov_v_deg: float = 38.0
    fov_v_px: float = 240.0

    # range_in = distance_constant * (frame_width / reference_width_px) / mean_size_px
    distance_constant: float = 14874.0
    reference_width_px: float = 320.0

    target_width_in: float = 62.0
    target_height_in: float = 20.0
    target_elevation_in: float = 100.0
    camera_height_in: float = 12.0
    camera_pitch_deg: float = 20.0

    ready_threshold_px: float = 5.0
    no_target_location: float = 150.0

    @classmethod
    def from_reference(
        cls, range_in: float, mean_size_px: float, reference_width_px: float = 320.0, **kwargs
    ) -> "GeometryConfig":
        """Build a config whose distance constant reproduces a measured pair."""
        if range_in <= 0 or mean_size_px <= 0:
            raise ValueError("Reference range and size must be positive.")
        return cls(
            distance_constant=float(range_in) * float(mean_size_px),
            reference_width_px=float(reference_width_px),
            **kwargs,
        )


@dataclass(frozen=True)
class TargetingConfig:
    spin_tolerance_deg: float = 1.0
    spin_turn_rate: float = 0.1
    angle_tolerance_deg: float = 0.5
    speed_tolerance_rpm: float = 100.0
    require_ready: bool = True

    # (range_in, shooter_angle_deg), ascending by range
    angle_table: Table = (
        (60.0, 38.0),
        (120.0, 31.0),
        (180.0, 26.0),
        (240.0, 23.0),
        (300.0, 21.0),
    )
    # (range_in, wheel_rpm), ascending by range
    speed_table: Table = (
        (60.0, 2600.0),
        (120.0, 2900.0),
        (180.0, 3200.0),
        (240.0, 3500.0),
        (300.0, 3800.0),
    )


@dataclass(frozen=True)
class RobotConfig:
    camera: CameraConfig = field(default_factory=CameraConfig)
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    targeting: TargetingConfig = field(default_factory=TargetingConfig)


def lookup(table: Table, x: float) -> float:
    """Linear interpolation in a (x, y) table, clamped at both ends."""
    if not table:
        raise ValueError("Lookup table is empty.")
    xs = np.array([row[0] for row in table], dtype=float)
    ys = np.array([row[1] for row in table], dtype=float)
    return float(np.interp(float(x), xs, ys))


def _find_calibration() -> Path | None:
    here = Path(__file__).resolve().parent
    candidates = [
        here / CALIBRATION_FILENAME,
        here.parent / CALIBRATION_FILENAME,
        Path.cwd() / CALIBRATION_FILENAME,
    ]
    return next((p for p in candidates if p.exists()), None)


def _as_triplet(arr: np.ndarray, key: str) -> Tuple[int, int, int]:
    flat = np.asarray(arr).reshape(-1)
    if flat.size != 3:
        raise CalibrationError(f"{key} must hold 3 values, got {flat.size}")
    return tuple(int(np.clip(v, 0, 255)) for v in flat)  # type: ignore[return-value]


def _as_table(arr: np.ndarray, key: str) -> Table:
    rows = np.asarray(arr, dtype=float)
    if rows.ndim != 2 or rows.shape[1] != 2 or rows.shape[0] < 1:
        raise CalibrationError(f"{key} must be an Nx2 array, got shape {rows.shape}")
    rows = rows[np.argsort(rows[:, 0])]
    return tuple((float(r[0]), float(r[1])) for r in rows)


def load_calibration(path: str | Path | None = None, base: RobotConfig | None = None) -> RobotConfig:
    """Return ``base`` (or the defaults) with overrides from a calibration file.

    With an explicit ``path`` the file must exist. Without one, the usual
    locations are searched and the defaults are returned if nothing is found.
    """
    config = base or RobotConfig()
    if path is not None:
        calib = Path(path)
        if not calib.exists():
            raise FileNotFoundError(f"Calibration file not found: {calib}")
    else:
        calib = _find_calibration()
        if calib is None:
            logger.debug("No %s found, using built-in calibration", CALIBRATION_FILENAME)
            return config

    try:
        with np.load(str(calib)) as data:
            keys = set(data.files)
            seg = config.segmentation
            geo = config.geometry
            tgt = config.targeting
            if "hsv_lower" in keys:
                seg = replace(seg, hsv_lower=_as_triplet(data["hsv_lower"], "hsv_lower"))
            if "hsv_upper" in keys:
                seg = replace(seg, hsv_upper=_as_triplet(data["hsv_upper"], "hsv_upper"))
            if "reference_column" in keys:
                seg = replace(seg, reference_column=float(data["reference_column"]))
            if "distance_constant" in keys:
                geo = replace(geo, distance_constant=float(data["distance_constant"]))
            if "angle_table" in keys:
                tgt = replace(tgt, angle_table=_as_table(data["angle_table"], "angle_table"))
            if "speed_table" in keys:
                tgt = replace(tgt, speed_table=_as_table(data["speed_table"], "speed_table"))
    except (ValueError, OSError) as exc:
        raise CalibrationError(f"Could not read calibration {calib}: {exc}") from exc

    logger.info("Loaded calibration from %s (%s)", calib, ", ".join(sorted(keys)) or "no keys")
    return replace(config, segmentation=seg, geometry=geo, targeting=tgt)
