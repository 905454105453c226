"""Frame acquisition and the capture worker.

``FrameSource`` owns a daemon thread that captures a frame, runs the
segmentation pipeline and geometry estimator on it, publishes the result to
the :class:`VisionStateStore` and releases the frame before the next capture.
The control loop never waits on it: it calls ``ensure_running()`` once per
tick (restarting a dead worker) and polls ``is_fresh()`` /
``consume_freshness()``.
"""

from __future__ import annotations

import logging
import time
from threading import Event, Lock, Thread
from typing import Callable, Optional, Protocol

import cv2
import numpy as np

from .config import CameraConfig
from .errors import CaptureError
from .geometry import GeometryEstimator
from .segmentation import SegmentationPipeline
from .state import VisionStateStore
from .types import PassOutcome, VisionSnapshot

logger = logging.getLogger(__name__)


class Frame:
    """One captured BGR image, valid until ``release()``."""

    def __init__(self, pixels: np.ndarray, captured_at: float, frame_id: int) -> None:
        self._pixels: Optional[np.ndarray] = pixels
        self.captured_at = float(captured_at)
        self.frame_id = int(frame_id)
        self.height, self.width = pixels.shape[:2]

    @property
    def pixels(self) -> np.ndarray:
        if self._pixels is None:
            raise ValueError(f"Frame {self.frame_id} has been released")
        return self._pixels

    @property
    def released(self) -> bool:
        return self._pixels is None

    def release(self) -> None:
        self._pixels = None

    def __enter__(self) -> "Frame":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


class Camera(Protocol):
    def capture(self) -> np.ndarray:
        """Return one BGR frame or raise CaptureError."""

    def close(self) -> None: ...


class AxisCamera:
    """MJPEG network camera read through OpenCV.

    Parameters (frame rate, resolution, compression) are fixed by the stream
    URL at construction. The stream is opened lazily and reopened after a
    failed read.
    """

    def __init__(self, config: CameraConfig | None = None) -> None:
        self.config = config or CameraConfig()
        self._backend_priority: tuple[int, ...] = (
            getattr(cv2, "CAP_FFMPEG", cv2.CAP_ANY),
            cv2.CAP_ANY,
        )
        self._cap: cv2.VideoCapture | None = None
        self._lock = Lock()

    def _open(self) -> cv2.VideoCapture:
        url = self.config.stream_url
        params = [cv2.CAP_PROP_OPEN_TIMEOUT_MSEC, int(self.config.open_timeout_s * 1000)]
        for backend in self._backend_priority:
            cap = cv2.VideoCapture(url, backend, params)
            if cap.isOpened():
                logger.info("AxisCamera: opened %s", url)
                return cap
            cap.release()
        raise CaptureError(f"Could not open camera stream {url}")

    def capture(self) -> np.ndarray:
        with self._lock:
            if self._cap is None:
                self._cap = self._open()
            ok, image = self._cap.read()
            if not ok or image is None:
                self._cap.release()
                self._cap = None
                raise CaptureError("Camera returned no frame")
            return image

    def close(self) -> None:
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None


class FrameSource:
    def __init__(
        self,
        camera: Camera,
        store: VisionStateStore | None = None,
        pipeline: SegmentationPipeline | None = None,
        estimator: GeometryEstimator | None = None,
        retry_sleep_s: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.camera = camera
        self.store = store or VisionStateStore()
        self.pipeline = pipeline or SegmentationPipeline()
        self.estimator = estimator or GeometryEstimator()
        self.retry_sleep_s = max(0.0, float(retry_sleep_s))
        self._clock = clock

        self._frame_counter = 0
        self._last_frame: Frame | None = None
        self._thread: Thread | None = None
        self._stop = Event()

    # ------------------------------------------------------------------
    # Control-loop side
    # ------------------------------------------------------------------
    def ensure_running(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        if self._thread is not None:
            logger.warning("FrameSource worker found dead, restarting")
        self._stop.clear()
        self._thread = Thread(target=self._loop, name="FrameSource", daemon=True)
        self._thread.start()
        logger.info("FrameSource worker started")

    def stop(self, timeout_s: float = 2.0) -> None:
        if not self._thread:
            return
        self._stop.set()
        self._thread.join(timeout=timeout_s)
        self._thread = None
        logger.info("FrameSource worker stopped")

    def is_running(self) -> bool:
        thread = self._thread
        return bool(thread and thread.is_alive())

    @property
    def last_frame(self) -> Optional[Frame]:
        """The most recent frame handed to the pipeline (released once its pass ends)."""
        return self._last_frame

    def is_fresh(self) -> bool:
        return self.store.is_fresh()

    def consume_freshness(self) -> Optional[VisionSnapshot]:
        return self.store.consume()

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------
    def run_once(self) -> PassOutcome:
        """Capture and process a single frame. Called by the worker loop."""
        try:
            pixels = self.camera.capture()
        except (CaptureError, cv2.error, OSError) as exc:
            logger.warning("FrameSource: capture failed: %s", exc)
            return PassOutcome.CAPTURE_FAILED

        self._frame_counter += 1
        self._last_frame = Frame(pixels, self._clock(), self._frame_counter)
        del pixels
        with self._last_frame as frame:
            try:
                result = self.pipeline.process(frame.pixels)
                estimate, ready = self.estimator.update(result.target, frame.width)
            except (cv2.error, ValueError) as exc:
                logger.warning("FrameSource: processing frame %d failed: %s", frame.frame_id, exc)
                return PassOutcome.PROCESSING_FAILED

            self.store.publish(
                VisionSnapshot(
                    frame_id=frame.frame_id,
                    captured_at=frame.captured_at,
                    frame_width=frame.width,
                    target=result.target,
                    estimate=estimate,
                    ready=ready,
                    reason=result.reason,
                )
            )
        return PassOutcome.PUBLISHED

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                outcome = self.run_once()
            except Exception:
                logger.exception("FrameSource worker crashed")
                raise
            if outcome is not PassOutcome.PUBLISHED:
                self._stop.wait(self.retry_sleep_s)
