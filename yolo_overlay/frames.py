"""
Frame supply helpers for live sources.

`LatestFrameWorker` runs a processing function on a single worker thread and
drops frames that arrive while the previous one is still being processed
(latest-frame-wins). `FpsCounter` keeps the frame rate shown in the overlay.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar


logger = logging.getLogger(__name__)

FrameT = TypeVar("FrameT")
ResultT = TypeVar("ResultT")


@dataclass(frozen=True)
class WorkerStats:
    submitted: int
    processed: int
    dropped: int


class LatestFrameWorker(Generic[FrameT, ResultT]):
    def __init__(
        self,
        process_fn: Callable[[FrameT], ResultT],
        *,
        on_result: Optional[Callable[[ResultT], None]] = None,
        name: str = "detector",
    ):
        self._process_fn = process_fn
        self._on_result = on_result
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._busy = False
        self._closed = False
        self._latest: Optional[ResultT] = None
        self._pending: Optional[Future] = None
        self._submitted = 0
        self._processed = 0
        self._dropped = 0

    def submit(self, frame: FrameT) -> bool:
        """
        Hand a frame to the worker. Returns False (frame dropped) if the worker
        is still busy with the previous frame.
        """

        with self._lock:
            if self._closed:
                raise RuntimeError("LatestFrameWorker is closed.")
            self._submitted += 1
            if self._busy:
                self._dropped += 1
                return False
            self._busy = True
            self._pending = self._executor.submit(self._run, frame)
        return True

    def _run(self, frame: FrameT) -> None:
        try:
            result = self._process_fn(frame)
            with self._lock:
                self._latest = result
                self._processed += 1
            if self._on_result is not None:
                self._on_result(result)
        except Exception:
            logger.exception("Error processing frame")
        finally:
            with self._lock:
                self._busy = False

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._busy

    def latest(self) -> Optional[ResultT]:
        with self._lock:
            return self._latest

    def stats(self) -> WorkerStats:
        with self._lock:
            return WorkerStats(submitted=self._submitted, processed=self._processed, dropped=self._dropped)

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until the in-flight frame (if any) has finished."""

        with self._lock:
            pending = self._pending
        if pending is not None:
            pending.result(timeout=timeout)

    def close(self) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "LatestFrameWorker[FrameT, ResultT]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FpsCounter:
    """
    Counts frames and refreshes the FPS figure once at least `window_s` has elapsed.
    """

    def __init__(self, window_s: float = 1.0, clock: Callable[[], float] = time.monotonic):
        if window_s <= 0:
            raise ValueError("window_s must be > 0")
        self.window_s = window_s
        self._clock = clock
        self._window_start = clock()
        self._frames = 0
        self.fps = 0.0

    def tick(self) -> float:
        now = self._clock()
        self._frames += 1
        elapsed = now - self._window_start
        if elapsed >= self.window_s:
            self.fps = self._frames / elapsed
            self._frames = 0
            self._window_start = now
        return self.fps
