"""
Frame scheduler
---------------
Each frame:

    IDLE -> UPDATING -> SYNCHRONIZING -> RENDERING -> PRESENTING -> IDLE

The wait in SYNCHRONIZING is the only blocking point. Rendering never starts
before every update task of the frame has finished, so frame k is drawn from
exactly the state produced by update k.
"""

import enum
import logging
import time

logger = logging.getLogger(__name__)


class FrameState(enum.Enum):
    IDLE = "idle"
    UPDATING = "updating"
    SYNCHRONIZING = "synchronizing"
    RENDERING = "rendering"
    PRESENTING = "presenting"
    STOPPED = "stopped"


class FrameStats:
    """Exponential moving averages of update and whole-frame time (ms)."""

    def __init__(self, smoothing: float = 0.1):
        self.smoothing = smoothing
        self.update_ms = None
        self.frame_ms = None

    def add(self, update_ms: float, frame_ms: float):
        if self.frame_ms is None:
            self.update_ms = update_ms
            self.frame_ms = frame_ms
        else:
            a = self.smoothing
            self.update_ms = (1.0 - a) * self.update_ms + a * update_ms
            self.frame_ms = (1.0 - a) * self.frame_ms + a * frame_ms

    @property
    def fps(self) -> float:
        if self.frame_ms is None:
            return 0.0
        return 1000.0 / max(1e-6, self.frame_ms)


class FrameScheduler:
    """Owns the stages (buffer, kernel, renderer) and drives the frame cycle on ``host``."""

    def __init__(self, buffer, kernel, renderer, host, stats_interval: float = 1.0):
        self.buffer = buffer
        self.kernel = kernel
        self.renderer = renderer
        self.host = host
        self.stats_interval = stats_interval

        self.state = FrameState.IDLE
        self.frame_index = 0
        self.stats = FrameStats()
        self._last_print = time.perf_counter()
        self._closed = False

    def step(self):
        """Run one full frame. Any failure stops the scheduler and propagates."""
        if self.state is FrameState.STOPPED:
            raise RuntimeError("scheduler is stopped")

        frame_t0 = time.perf_counter()
        try:
            self.state = FrameState.UPDATING
            self.kernel.dispatch(self.buffer)

            self.state = FrameState.SYNCHRONIZING
            self.kernel.synchronize()

            self.state = FrameState.RENDERING
            self.renderer.render(self.buffer)

            self.state = FrameState.PRESENTING
            self.host.present()
        except BaseException:
            self.state = FrameState.STOPPED
            raise

        self.state = FrameState.IDLE
        self.frame_index += 1

        frame_ms = (time.perf_counter() - frame_t0) * 1000.0
        self.stats.add(self.kernel.last_update_ms, frame_ms)
        self._maybe_log()

    def run(self, max_frames=None) -> int:
        """Step until the host asks to close (or ``max_frames``). Returns frames run."""
        frames = 0
        try:
            while max_frames is None or frames < max_frames:
                self.host.poll_events()
                if self.host.should_close():
                    break
                self.step()
                frames += 1
        finally:
            self.state = FrameState.STOPPED
        logger.info("frame loop stopped after %d frames", frames)
        return frames

    def _maybe_log(self):
        now = time.perf_counter()
        if now - self._last_print > self.stats_interval:
            logger.info(
                "update: ~%.3f ms | frame: ~%.3f ms (~%.1f FPS) | N=%d",
                self.stats.update_ms, self.stats.frame_ms, self.stats.fps, len(self.buffer),
            )
            self._last_print = now

    def close(self):
        """Release kernel, renderer and buffer. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.state = FrameState.STOPPED
        self.kernel.close()
        self.renderer.close()
        self.buffer.release()
