"""Colour segmentation of the field marker.

1. Remap the BGR frame to (hue, saturation, value) planes (0..255 each) and
   threshold each plane against an inclusive range.
2. Extract connected regions, dropping anything under the noise floor.
3. Coarse pass: the largest region that is not a near-solid rectangle
   (the "board").
4. Refined pass: among regions big enough relative to the board, wide and
   tall enough and not too solid, keep the one whose centre of mass is
   closest to the reference column.

The largest raw region is often glare or background bleed; the second pass
uses the expected size and screen position to reject it.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import cv2
import numpy as np

from .config import SegmentationConfig
from .types import NoTargetReason, Region, SegmentationResult, Target

logger = logging.getLogger(__name__)


def remap_planes(frame_bgr: np.ndarray) -> np.ndarray:
    """Return an HxWx3 uint8 image whose channels are hue, saturation, value."""
    if frame_bgr.ndim != 3 or frame_bgr.shape[2] != 3:
        raise ValueError(f"Expected an HxWx3 colour frame, got shape {frame_bgr.shape}")
    return cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2HSV_FULL)


def swapped_view(planes: np.ndarray) -> np.ndarray:
    """BGR image with hue in red, saturation in green and value in blue, for tuning dumps."""
    return np.ascontiguousarray(planes[:, :, ::-1])


def threshold(planes: np.ndarray, config: SegmentationConfig) -> np.ndarray:
    lower = np.array(config.hsv_lower, dtype=np.uint8)
    upper = np.array(config.hsv_upper, dtype=np.uint8)
    return cv2.inRange(planes, lower, upper)


def find_regions(mask: np.ndarray, config: SegmentationConfig) -> List[Region]:
    count, _labels, stats, centroids = cv2.connectedComponentsWithStats(
        mask, connectivity=config.connectivity
    )
    regions: List[Region] = []
    # Label 0 is the background.
    for label in range(1, count):
        x, y, w, h, area = (int(v) for v in stats[label])
        if area < config.min_region_pixels or w <= 0 or h <= 0:
            continue
        cx, cy = centroids[label]
        regions.append(Region(x=x, y=y, w=w, h=h, area=area, cx=float(cx), cy=float(cy)))
    return regions


def select_board(regions: Sequence[Region], config: SegmentationConfig) -> Optional[Region]:
    board: Optional[Region] = None
    for region in regions:
        if region.area >= region.box_area * config.board_max_fill:
            continue
        if board is None or region.area > board.area:
            board = region
    return board


def select_refined(
    regions: Sequence[Region], board: Region, config: SegmentationConfig
) -> Optional[Region]:
    ref = config.reference_column
    best: Optional[Region] = None
    for region in regions:
        if region.area <= board.area * config.refined_min_board_fraction:
            continue
        if region.w <= config.refined_min_width or region.h <= config.refined_min_height:
            continue
        if region.area >= region.box_area * config.refined_max_fill:
            continue
        if best is None or abs(region.cx - ref) < abs(best.cx - ref):
            best = region
    return best


def select_target(regions: Sequence[Region], config: SegmentationConfig) -> SegmentationResult:
    if not regions:
        return SegmentationResult(reason=NoTargetReason.NO_REGIONS)
    board = select_board(regions, config)
    if board is None:
        return SegmentationResult(reason=NoTargetReason.NO_BOARD, region_count=len(regions))
    refined = select_refined(regions, board, config)
    if refined is None:
        return SegmentationResult(reason=NoTargetReason.NO_REFINED_MATCH, region_count=len(regions))
    return SegmentationResult(target=Target.from_region(refined), region_count=len(regions))


class SegmentationPipeline:
    """Runs one frame through remap, threshold, region extraction and selection.

    ``on_swapped`` (optional) receives the channel-swapped image of the first
    processed frame; used to dump an image for threshold tuning.
    """

    def __init__(self, config: SegmentationConfig | None = None, on_swapped=None) -> None:
        self.config = config or SegmentationConfig()
        self._on_swapped = on_swapped
        self._first_frame = True

    def process(self, frame_bgr: np.ndarray) -> SegmentationResult:
        planes = None
        mask = None
        try:
            planes = remap_planes(frame_bgr)
            if self._first_frame and self._on_swapped is not None:
                self._on_swapped(swapped_view(planes))
            self._first_frame = False
            mask = threshold(planes, self.config)
            regions = find_regions(mask, self.config)
            result = select_target(regions, self.config)
            logger.debug(
                "segmentation: %d region(s), target=%s reason=%s",
                len(regions),
                result.target,
                result.reason.value if result.reason else None,
            )
            return result
        finally:
            # Per-pass buffers never outlive the pass.
            del planes, mask
