"""
Test Configuration
==================

Pytest fixtures and test configuration for scrollstitch.

Synthetic content:
    Frames are cut from a random-noise canvas. Noise has no vertical
    self-similarity, so the only good overlap between two cuts is the
    true one. ``row_block`` repeats each noise row to give the content
    some vertical correlation (needed to exercise fine refinement).
"""

from typing import List, Optional, Sequence, Union

import numpy as np
import pytest

from scrollstitch.errors import CaptureError
from scrollstitch.models.frame import Frame
from scrollstitch.models.session import CaptureRegion


# =============================================================================
# Synthetic content
# =============================================================================

def make_canvas(height: int, width: int, seed: int = 0, row_block: int = 1) -> np.ndarray:
    """(height, width, 4) BGRA noise canvas with opaque alpha."""
    rng = np.random.default_rng(seed)
    rows = -(-height // row_block)
    noise = rng.integers(0, 256, size=(rows, width, 3), dtype=np.uint8)
    noise = np.repeat(noise, row_block, axis=0)[:height]

    canvas = np.empty((height, width, 4), dtype=np.uint8)
    canvas[:, :, :3] = noise
    canvas[:, :, 3] = 255
    return canvas


def cut_frame(canvas: np.ndarray, top: int, height: int, index: int = 0) -> Frame:
    """Frame showing canvas rows ``[top, top + height)``."""
    return Frame.from_array(canvas[top:top + height], index=index)


def make_scroll_frames(
    canvas: np.ndarray,
    offsets: Sequence[int],
    height: int,
) -> List[Frame]:
    """One frame per scroll offset, indexed in order."""
    return [cut_frame(canvas, top, height, index=i) for i, top in enumerate(offsets)]


# =============================================================================
# Fakes
# =============================================================================

class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedCaptureSource:
    """
    Returns scripted frames in order, repeating the last one.

    An Exception instance in the script is raised instead of returned.
    """

    def __init__(self, script: Sequence[Union[Frame, Exception]]) -> None:
        self.script = list(script)
        self.calls = 0

    async def capture(self, region: CaptureRegion) -> Frame:
        item = self.script[min(self.calls, len(self.script) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item


class ScrollingScreen:
    """
    Capture source over a tall canvas with a movable viewport.

    Tests set ``position`` to simulate scrolling. ``fail_next`` makes the
    next N captures raise CaptureError.
    """

    def __init__(self, canvas: np.ndarray, viewport_height: int) -> None:
        self.canvas = canvas
        self.viewport_height = viewport_height
        self.position = 0
        self.fail_next = 0
        self.override: Optional[Frame] = None
        self.calls = 0

    async def capture(self, region: CaptureRegion) -> Frame:
        self.calls += 1
        if self.fail_next > 0:
            self.fail_next -= 1
            raise CaptureError("screen capture unavailable")
        if self.override is not None:
            return self.override
        return cut_frame(self.canvas, self.position, self.viewport_height)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def canvas():
    """Tall 200px-wide noise canvas."""
    return make_canvas(2400, 200, seed=7)


@pytest.fixture
def region():
    """Capture region matching the synthetic viewport."""
    return CaptureRegion(x=0, y=0, width=200, height=400)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def screen(canvas):
    """400-row viewport over the noise canvas."""
    return ScrollingScreen(canvas, viewport_height=400)
