"""
Session Controller
==================

Orchestrates one scroll-capture session from region selection to the
stitched image.

States:
    IDLE → SELECTING_REGION → MONITORING → FINISHING → STITCHING
    STITCHING → COMPLETE | FAILED
    SELECTING_REGION | MONITORING | FINISHING → IDLE  (cancel)

Flow:
    1. start(): select region, capture the seed frame, start the detector
    2. Every detector signal captures one frame and appends it
    3. finish(): stop the detector, optionally capture a last frame,
       snapshot the frame list and stitch it on a worker thread
    4. The result future resolves with the image or the error

Design Rules:
    - One active session per controller
    - The frame list has a single writer (the capture path) while
      MONITORING and is never touched after the FINISHING snapshot
    - Cancellation is honoured up to and including FINISHING;
      STITCHING always runs to COMPLETE or FAILED
    - The terminal result is an asyncio.Future, resolved exactly once
"""

import asyncio
import logging
import time
from typing import AsyncIterator, Callable, List, Optional, Tuple, Union

from scrollstitch.capture.source import CaptureSource, RegionSelector
from scrollstitch.config import Settings, settings as default_settings
from scrollstitch.detection.scroll_detector import ScrollDetector
from scrollstitch.errors import (
    CaptureFailedError,
    DimensionMismatchError,
    SessionBusyError,
    SessionCancelledError,
    StitchError,
)
from scrollstitch.models.frame import Frame
from scrollstitch.models.session import (
    CaptureProgress,
    CaptureRegion,
    SessionComplete,
    SessionState,
)
from scrollstitch.session.cancellation import CancellationToken
from scrollstitch.stitching.overlap import OverlapFinder
from scrollstitch.stitching.pipeline import StitchOutcome, StitchPipeline


logger = logging.getLogger(__name__)


SessionEvent = Union[CaptureProgress, SessionComplete]

# Marks the end of the progress stream.
_END = object()


def _mark_retrieved(future: asyncio.Future) -> None:
    # start() also raises the error, so an unawaited result is not a leak.
    if not future.cancelled():
        future.exception()


class SessionController:
    """
    Drives ScrollDetector, OverlapFinder and Compositor for one session.

    Attributes:
        source: Capture source for seed, scroll and finishing captures
        settings: Detector, overlap and session configuration
        state: Current SessionState

    Example:
        controller = SessionController(source)

        async for event in controller.start_scroll_capture(region):
            if isinstance(event, CaptureProgress):
                overlay.update_count(event.captured_count)
            else:
                save(event.image)

        # From the UI: controller.finish() or await controller.cancel()
    """

    def __init__(
        self,
        source: CaptureSource,
        settings: Optional[Settings] = None,
        region_selector: Optional[RegionSelector] = None,
        pipeline: Optional[StitchPipeline] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize session controller.

        Args:
            source: Capture source
            settings: Configuration (global settings if None)
            region_selector: Asked for a region when start() gets none
            pipeline: Finalize pipeline (built from settings if None)
            clock: Monotonic clock passed to the detector
        """
        self.source = source
        self.settings = settings or default_settings
        self.region_selector = region_selector
        self.pipeline = pipeline or StitchPipeline(
            finder=OverlapFinder(self.settings.overlap)
        )
        self._clock = clock

        self._state: SessionState = SessionState.IDLE
        self._region: Optional[CaptureRegion] = None
        self._frames: List[Frame] = []
        self._detector: Optional[ScrollDetector] = None
        self._token: CancellationToken = CancellationToken()
        self._result: Optional[asyncio.Future] = None
        self._events: Optional[asyncio.Queue] = None
        self._finalize_task: Optional[asyncio.Task] = None
        self._outcome: Optional[StitchOutcome] = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def captured_count(self) -> int:
        return len(self._frames)

    @property
    def frames(self) -> Tuple[Frame, ...]:
        """Immutable copy of the frames captured so far."""
        return tuple(self._frames)

    @property
    def outcome(self) -> Optional[StitchOutcome]:
        """Plan, overlaps and image of a COMPLETE session."""
        return self._outcome

    @property
    def detector(self) -> Optional[ScrollDetector]:
        return self._detector

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, region: Optional[CaptureRegion] = None) -> None:
        """
        Select the region, capture the seed frame and start monitoring.

        Args:
            region: Region to capture; asked from region_selector if None

        Raises:
            SessionBusyError: If a session is already active
            SessionCancelledError: If cancelled during selection/seed capture
            CaptureFailedError: If the seed capture failed
        """
        if self._state.is_active:
            raise SessionBusyError(f"Scroll capture already active ({self._state.value})")
        if region is None and self.region_selector is None:
            raise ValueError("No capture region and no region selector")

        self._reset()
        self._set_state(SessionState.SELECTING_REGION)
        token = self._token

        if region is None:
            region = await token.run(self.region_selector())
        self._region = region
        logger.info(f"Area selected: {region.width}x{region.height} at ({region.x}, {region.y})")

        try:
            seed = await token.run(self.source.capture(region))
        except SessionCancelledError:
            raise
        except Exception as e:
            error = CaptureFailedError(f"Initial capture failed: {e}")
            self._fail(error)
            raise error from e

        self._append(seed)
        logger.info("Initial capture done")

        self._detector = ScrollDetector(
            self.source,
            region,
            config=self.settings.detector,
            on_signal=self._on_scroll_detected,
            clock=self._clock,
        )
        self._set_state(SessionState.MONITORING)
        await self._detector.start_monitoring(seed=seed)

    def finish(self) -> bool:
        """
        User pressed done: freeze the frames and stitch them.

        Returns:
            True if finishing started, False if not MONITORING
        """
        if self._state != SessionState.MONITORING:
            logger.warning(f"finish() ignored in state {self._state.value}")
            return False

        logger.info(f"Finishing capture with {len(self._frames)} images")
        self._set_state(SessionState.FINISHING)
        self._finalize_task = asyncio.create_task(
            self._finalize(self._token, self._detector),
            name="scroll_session_finalize",
        )
        return True

    async def cancel(self, reason: str = "cancelled") -> bool:
        """
        Cancel the session, discarding all buffered frames.

        Returns:
            True if the session was cancelled, False if cancellation
            no longer applies (IDLE, STITCHING or terminal)
        """
        if not self._state.is_cancellable:
            logger.info(f"cancel() ignored in state {self._state.value}")
            return False

        logger.info(f"Cancelling scroll capture ({reason})")
        # A new session may start while the detector stops; touch only this one.
        token, result, events = self._token, self._result, self._events
        detector = self._detector
        token.cancel(reason)
        self._frames = []
        self._set_state(SessionState.IDLE)
        result.set_exception(SessionCancelledError(reason))
        events.put_nowait(_END)

        if detector is not None:
            await detector.stop_monitoring()
        return True

    async def wait(self) -> Frame:
        """
        Wait for the terminal result.

        Raises:
            StitchError, CaptureFailedError, SessionCancelledError
        """
        if self._result is None:
            raise RuntimeError("No session has been started")
        return await self._result

    async def start_scroll_capture(
        self,
        region: Optional[CaptureRegion] = None,
    ) -> AsyncIterator[SessionEvent]:
        """
        Run a session as an event stream.

        Yields one CaptureProgress per captured frame, then a single
        SessionComplete with the stitched image.

        Raises:
            CaptureFailedError, SessionCancelledError, StitchError,
            DimensionMismatchError
        """
        await self.start(region)

        while True:
            event = await self._events.get()
            if event is _END:
                break
            yield event

        image = await self.wait()
        outcome = self._outcome
        yield SessionComplete(
            image=image,
            frame_count=outcome.frame_count if outcome else 1,
            output_height=image.height,
        )

    def metrics(self) -> dict:
        """Session metrics for observability."""
        data = {
            "state": self._state.value,
            "captured_count": len(self._frames),
        }
        if self._detector is not None:
            data["detector"] = self._detector.metrics.to_dict()
        if self._outcome is not None:
            data["output_height"] = self._outcome.image.height
            data["stitch_ms"] = round(self._outcome.elapsed_ms, 1)
        return data

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _reset(self) -> None:
        loop = asyncio.get_running_loop()
        self._region = None
        self._frames = []
        self._detector = None
        self._token = CancellationToken()
        self._result = loop.create_future()
        self._result.add_done_callback(_mark_retrieved)
        self._events = asyncio.Queue()
        self._finalize_task = None
        self._outcome = None

    def _set_state(self, state: SessionState) -> None:
        if state != self._state:
            logger.info(f"Session state: {self._state.value} → {state.value}")
            self._state = state

    def _append(self, frame: Frame) -> None:
        """Single writer for the frame list."""
        if self._frames:
            first = self._frames[0]
            if frame.width != first.width or frame.pixel_format != first.pixel_format:
                raise DimensionMismatchError(
                    f"Captured frame is {frame.width}px {frame.pixel_format.value}, "
                    f"session frames are {first.width}px {first.pixel_format.value}"
                )

        self._frames.append(frame.with_index(len(self._frames)))
        self._events.put_nowait(CaptureProgress(
            captured_count=len(self._frames),
            state=self._state,
        ))

    async def _on_scroll_detected(self, ratio: float) -> None:
        """Detector signal: capture and append one frame."""
        if self._state != SessionState.MONITORING:
            return

        try:
            frame = await self.source.capture(self._region)
        except Exception as e:
            logger.error(f"Failed to capture: {e}")
            return

        if self._state != SessionState.MONITORING:
            return

        try:
            self._append(frame)
        except DimensionMismatchError as e:
            logger.error(f"Aborting session: {e}")
            await self._stop_detector()
            self._fail(e)
            return

        logger.info(f"Captured image {len(self._frames)} (change {ratio * 100:.1f}%)")

    async def _stop_detector(self) -> None:
        if self._detector is not None:
            await self._detector.stop_monitoring()

    async def _finalize(self, token: CancellationToken, detector: Optional[ScrollDetector]) -> None:
        """FINISHING → STITCHING → COMPLETE | FAILED."""
        if detector is not None:
            await detector.stop_monitoring()
        if token.cancelled:
            return

        if self.settings.session.capture_on_finish:
            try:
                frame = await token.run(self.source.capture(self._region))
            except SessionCancelledError:
                return
            except Exception as e:
                self._fail(CaptureFailedError(f"Finishing capture failed: {e}"))
                return

            try:
                self._append(frame)
            except DimensionMismatchError as e:
                self._fail(e)
                return

        if token.cancelled:
            return

        snapshot = tuple(self._frames)
        self._set_state(SessionState.STITCHING)

        try:
            outcome = await asyncio.to_thread(self.pipeline.run, snapshot)
        except StitchError as e:
            logger.error(f"Stitching failed: {e}")
            self._fail(e)
            return
        except Exception as e:
            logger.error(f"Stitching failed: {e}")
            self._fail(StitchError(f"Failed to stitch images: {e}"))
            return

        self._outcome = outcome
        self._set_state(SessionState.COMPLETE)
        self._result.set_result(outcome.image)
        self._close_events()

    def _fail(self, error: BaseException) -> None:
        self._set_state(SessionState.FAILED)
        self._result.set_exception(error)
        self._close_events()

    def _close_events(self) -> None:
        if self._events is not None:
            self._events.put_nowait(_END)
