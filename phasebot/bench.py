#!/usr/bin/env python3
"""
bench.py
Offline check of the target pipeline on a saved camera image:
- runs segmentation + geometry once
- prints the selected target, bearing and range (or why there is none)
- optionally writes the hue/sat/value channel-swapped image for threshold tuning
- optionally shows an annotated preview (press any key to close)

Run:
    python -m phasebot.bench frame.png --show
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

import cv2

from .config import load_calibration
from .geometry import GeometryEstimator, range_in_trig
from .segmentation import SegmentationPipeline, find_regions, remap_planes, threshold


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="phasebot.bench", description=__doc__.split("\n\n")[0])
    parser.add_argument("image", help="Path to a BGR image readable by OpenCV")
    parser.add_argument("--calibration", default=None, help="calibration.npz with overrides")
    parser.add_argument("--save-swapped", default=None, help="Write the channel-swapped image here")
    parser.add_argument("--show", action="store_true", help="Show an annotated preview window")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    frame = cv2.imread(args.image, cv2.IMREAD_COLOR)
    if frame is None:
        print(f"Could not read image: {args.image}", file=sys.stderr)
        return 2

    config = load_calibration(args.calibration)

    def dump(swapped):
        cv2.imwrite(args.save_swapped, swapped)
        print(f"Swapped planes written to {args.save_swapped}")

    pipeline = SegmentationPipeline(config.segmentation, on_swapped=dump if args.save_swapped else None)
    estimator = GeometryEstimator(config.geometry)

    height, width = frame.shape[:2]
    result = pipeline.process(frame)
    estimate, _ready = estimator.update(result.target, width)

    regions = find_regions(threshold(remap_planes(frame), config.segmentation), config.segmentation)
    print(f"Image {width}x{height}: {len(regions)} region(s) above the noise floor")
    for r in regions:
        print(f"  region x={r.x} y={r.y} w={r.w} h={r.h} area={r.area} fill={r.fill_ratio:.2f} cx={r.cx:.1f}")

    if result.target is None or estimate is None:
        print(f"No target ({result.reason.value if result.reason else 'unknown'})")
    else:
        t = result.target
        alt = range_in_trig(t, height, config.geometry)
        print(f"Target x={t.x} y={t.y} w={t.w} h={t.h}")
        print(f"Bearing {estimate.bearing_deg:+.2f} deg, range {estimate.range_in:.1f} in", end="")
        print(f" (trig {alt:.1f} in)" if alt is not None else " (trig n/a)")

    if args.show:
        preview = frame.copy()
        for r in regions:
            cv2.rectangle(preview, (r.x, r.y), (r.x + r.w, r.y + r.h), (0, 255, 255), 1)
        if result.target is not None:
            t = result.target
            cv2.rectangle(preview, (t.x, t.y), (t.x2, t.y2), (0, 255, 0), 2)
        cv2.imshow("phasebot bench", preview)
        cv2.waitKey(0)
        cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
