"""
Scroll Detector
===============

Decides when a new capture is needed while the user scrolls.

The detector polls the capture source at a fixed interval, compares each
probe with a rolling reference frame, and signals when enough of the
sampled pixels changed.

Design Rules:
    - One detector per session; the reference frame lives on the instance
      and is dropped by stop_monitoring()
    - At most one outstanding probe: ticks run strictly one after another
    - At most one signal per cooldown window
    - A probe that doesn't change enough is discarded, the reference stays
    - Probe-capture failures are logged and skipped, never fatal
"""

import asyncio
import inspect
import logging
import time
from typing import Awaitable, Callable, Optional, Union

from scrollstitch.capture.source import CaptureSource
from scrollstitch.config import DetectorConfig
from scrollstitch.detection.difference import difference_ratio
from scrollstitch.models.frame import Frame
from scrollstitch.models.session import CaptureRegion


logger = logging.getLogger(__name__)


# Called with the difference ratio that triggered the signal.
SignalHandler = Callable[[float], Union[None, Awaitable[None]]]


class DetectorMetrics:
    """Metrics for ScrollDetector observability."""

    __slots__ = (
        "ticks",
        "signals",
        "cooldown_skips",
        "capture_failures",
        "last_ratio",
    )

    def __init__(self) -> None:
        self.ticks: int = 0
        self.signals: int = 0
        self.cooldown_skips: int = 0
        self.capture_failures: int = 0
        self.last_ratio: float = 0.0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "ticks": self.ticks,
            "signals": self.signals,
            "cooldown_skips": self.cooldown_skips,
            "capture_failures": self.capture_failures,
            "last_ratio": self.last_ratio,
        }


class ScrollDetector:
    """
    Change detector driving the capture cadence.

    Attributes:
        source: Capture source probed every tick
        region: Region to probe
        config: Interval, cooldown and sensitivity
        metrics: Operational counters

    Example:
        detector = ScrollDetector(source, region, on_signal=handle_scroll)
        await detector.start_monitoring(seed=first_frame)
        ...
        await detector.stop_monitoring()
    """

    def __init__(
        self,
        source: CaptureSource,
        region: CaptureRegion,
        config: Optional[DetectorConfig] = None,
        on_signal: Optional[SignalHandler] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize scroll detector.

        Args:
            source: Capture source to probe
            region: Region to probe
            config: Cadence and thresholds (defaults if None)
            on_signal: Called once per detected scroll
            clock: Monotonic clock in seconds (injectable for tests)
        """
        self.source = source
        self.region = region
        self.config = config or DetectorConfig()
        self.on_signal = on_signal
        self._clock = clock

        # State
        self._reference: Optional[Frame] = None
        self._last_signal_at: float = float("-inf")
        self._running: bool = False
        self._stop_event: asyncio.Event = asyncio.Event()
        self._tick_lock: asyncio.Lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

        # Metrics
        self.metrics = DetectorMetrics()

    @property
    def reference(self) -> Optional[Frame]:
        """Current comparison baseline (None when not monitoring)."""
        return self._reference

    @property
    def is_monitoring(self) -> bool:
        return self._running

    async def start_monitoring(self, seed: Optional[Frame] = None) -> None:
        """
        Start periodic sampling.

        Args:
            seed: Initial reference frame. When None, one probe is
                captured; if that fails, the first successful tick
                becomes the reference instead.
        """
        if self._running:
            logger.warning("ScrollDetector already monitoring")
            return

        logger.info(
            f"ScrollDetector starting: interval={self.config.poll_interval_ms}ms, "
            f"cooldown={self.config.cooldown_ms}ms, "
            f"threshold={self.config.change_threshold * 100:.1f}%"
        )

        self._last_signal_at = float("-inf")
        self._reference = seed if seed is not None else await self._probe()
        self._running = True
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name="scroll_detector")

    async def stop_monitoring(self) -> None:
        """
        Halt sampling and clear the reference frame.

        An in-flight probe is cancelled.
        """
        logger.info("ScrollDetector stopping")
        self._running = False
        self._stop_event.set()

        task = self._task
        self._task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._reference = None

    async def tick(self) -> bool:
        """
        Run one probe-and-compare step.

        Returns:
            True if a scroll signal was emitted
        """
        async with self._tick_lock:
            self.metrics.ticks += 1

            if self._clock() - self._last_signal_at < self.config.cooldown_sec:
                self.metrics.cooldown_skips += 1
                return False

            probe = await self._probe()
            if probe is None:
                return False

            if self._reference is None:
                self._reference = probe
                return False

            ratio = difference_ratio(
                self._reference,
                probe,
                stride=self.config.sample_stride,
                tolerance=self.config.channel_tolerance,
            )
            self.metrics.last_ratio = ratio

            if ratio <= self.config.change_threshold:
                return False

            logger.info(f"Change detected: {ratio * 100:.2f}%")
            self._reference = probe
            self._last_signal_at = self._clock()
            self.metrics.signals += 1
            await self._emit(ratio)
            return True

    async def _probe(self) -> Optional[Frame]:
        """Capture one probe; failures count as 'no change'."""
        try:
            return await self.source.capture(self.region)
        except Exception as e:
            self.metrics.capture_failures += 1
            logger.error(f"Failed to capture probe: {e}")
            return None

    async def _emit(self, ratio: float) -> None:
        if self.on_signal is None:
            return
        result = self.on_signal(ratio)
        if inspect.isawaitable(result):
            await result

    async def _run(self) -> None:
        """Polling loop; each tick completes before the next is scheduled."""
        while self._running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Scroll detector tick failed: {e}")

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self.config.poll_interval_sec,
                )
                # Stop event was set, exit
                break
            except asyncio.TimeoutError:
                pass

        logger.info("ScrollDetector stopped")
