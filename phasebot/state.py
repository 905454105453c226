"""Single-slot handoff between the capture worker and the control loop.

The worker is the only writer, the control loop the only reader. Each
publish replaces the whole frozen snapshot under the lock and raises the
freshness flag; ``consume()`` takes the snapshot and lowers the flag in the
same critical section, so a reader never sees a half-updated target and
never consumes the same pass twice. Neither side waits on the other for
longer than a field swap.
"""

from __future__ import annotations

from dataclasses import asdict
from threading import Lock
from typing import Any, Dict, Optional

from .types import VisionSnapshot


class VisionStateStore:
    def __init__(self) -> None:
        self._snapshot = VisionSnapshot()
        self._fresh = False
        self._published = 0
        self._lock = Lock()

    def publish(self, snapshot: VisionSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot
            self._fresh = True
            self._published += 1

    def is_fresh(self) -> bool:
        with self._lock:
            return self._fresh

    def consume(self) -> Optional[VisionSnapshot]:
        """Return the newest snapshot if it has not been consumed yet, else None."""
        with self._lock:
            if not self._fresh:
                return None
            self._fresh = False
            return self._snapshot

    def snapshot(self) -> VisionSnapshot:
        """Latest snapshot, fresh or not. Does not touch the freshness flag."""
        with self._lock:
            return self._snapshot

    @property
    def published_count(self) -> int:
        with self._lock:
            return self._published

    def as_dict(self) -> Dict[str, Any]:
        snap = self.snapshot()
        result: Dict[str, Any] = asdict(snap)
        result["reason"] = snap.reason.value if snap.reason else None
        return result
