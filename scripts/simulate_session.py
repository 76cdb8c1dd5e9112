#!/usr/bin/env python3
"""
Live Session Simulation Script
==============================

Standalone script to exercise the full capture session against a
recorded scroll.

This script:
    1. Loads capture_XXX.png files from a directory
    2. Replays them as a "screen" that advances to the next capture
       every --step-ms milliseconds
    3. Runs a real SessionController (detector polling included)
    4. Finishes after the last capture and reports the result

Prerequisites:
    - A directory of captures saved by a previous session
    - Install the package: pip install -e .

Usage:
    python scripts/simulate_session.py /path/to/scroll_debug
    python scripts/simulate_session.py /path/to/scroll_debug --output result.png --step-ms 400
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from scrollstitch.capture import load_frames, save_png
from scrollstitch.config import load_config, setup_logging
from scrollstitch.models.frame import Frame
from scrollstitch.models.session import CaptureProgress, CaptureRegion, SessionComplete
from scrollstitch.session import SessionController


logger = logging.getLogger(__name__)


class ReplayScreen:
    """CaptureSource that shows recorded frames on a timer."""

    def __init__(self, frames: List[Frame], step_sec: float) -> None:
        self.frames = frames
        self.step_sec = step_sec
        self.started_at: Optional[float] = None

    @property
    def position(self) -> int:
        if self.started_at is None:
            return 0
        elapsed = time.monotonic() - self.started_at
        return min(int(elapsed / self.step_sec), len(self.frames) - 1)

    @property
    def finished(self) -> bool:
        return self.position == len(self.frames) - 1

    async def capture(self, region: CaptureRegion) -> Frame:
        if self.started_at is None:
            self.started_at = time.monotonic()
        return self.frames[self.position]


async def run_simulation(directory: Path, step_ms: int, output: Optional[Path]) -> dict:
    """
    Run one simulated session.

    Returns:
        Final summary dict
    """
    settings = load_config()
    frames = load_frames(directory)
    if not frames:
        raise SystemExit(f"No captures found in {directory}")

    first = frames[0]
    region = CaptureRegion(width=first.width, height=first.height)
    screen = ReplayScreen(frames, step_ms / 1000.0)
    controller = SessionController(screen, settings=settings)

    logger.info("=" * 60)
    logger.info("Session Simulation")
    logger.info("=" * 60)
    logger.info(f"Captures: {len(frames)} from {directory}")
    logger.info(f"Step: {step_ms} ms")
    logger.info(f"Poll interval: {settings.detector.poll_interval_ms} ms")
    logger.info("=" * 60)

    start_time = time.time()
    result: Optional[SessionComplete] = None

    async def finish_when_done() -> None:
        while controller.state.is_active and not screen.finished:
            await asyncio.sleep(0.05)
        # Let the detector see the last capture before finishing.
        await asyncio.sleep(settings.detector.poll_interval_sec * 3)
        controller.finish()

    finisher = asyncio.create_task(finish_when_done())
    try:
        async for event in controller.start_scroll_capture(region):
            if isinstance(event, CaptureProgress):
                logger.info(f"  Captured: {event.captured_count}")
            else:
                result = event
    except KeyboardInterrupt:
        await controller.cancel("interrupted")
    finally:
        finisher.cancel()

    total_time = time.time() - start_time
    metrics = controller.metrics()

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Frames captured: {controller.captured_count}")
    logger.info(f"Detector: {metrics.get('detector')}")
    if result is not None:
        logger.info(f"Output: {result.image.width}x{result.output_height}")
    logger.info("=" * 60)

    if result is not None and output is not None:
        save_png(result.image, output)

    return {
        "duration": total_time,
        "frames_captured": controller.captured_count,
        "output_height": result.output_height if result else 0,
    }


def main():
    parser = argparse.ArgumentParser(
        description="Simulate a live scroll-capture session from recorded captures"
    )
    parser.add_argument("directory", type=Path, help="Directory of capture_XXX.png files")
    parser.add_argument(
        "--step-ms",
        type=int,
        default=500,
        help="Time each recorded capture stays on screen (default: 500)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Save the stitched result to this file",
    )

    args = parser.parse_args()
    setup_logging(load_config())

    summary = asyncio.run(run_simulation(args.directory, args.step_ms, args.output))

    sys.exit(0 if summary["output_height"] > 0 else 1)


if __name__ == "__main__":
    main()
