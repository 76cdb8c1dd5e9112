"""
scrollstitch
============

Scrolling-screenshot capture engine.

While the user scrolls a region of the screen, a ScrollDetector decides
when a new capture is needed. When the user finishes, the OverlapFinder
measures how many rows each pair of adjacent captures shares, and the
Compositor assembles one tall image without duplicated rows.

Components:
    - capture: CaptureSource protocol and the PNG/JPEG image codec
    - detection: ScrollDetector and the sampled difference ratio
    - stitching: OverlapFinder, Compositor and the LangGraph finalize pipeline
    - session: SessionController state machine and cancellation
    - observability: Seam visualization (gated)

Example:
    from scrollstitch import load_frames, overlap, find_overlaps, stitch

    frames = load_frames("scroll_debug/")
    image = stitch(frames, find_overlaps(frames))
"""

__version__ = "0.1.0"
__author__ = "scrollstitch developers"

from scrollstitch.capture.image_codec import load_frames, save_png
from scrollstitch.models.frame import Frame, PixelFormat
from scrollstitch.models.overlap import OverlapResult, StitchPlan
from scrollstitch.models.session import CaptureRegion, SessionState
from scrollstitch.stitching import (
    Compositor,
    OverlapFinder,
    StitchPipeline,
    find_overlaps,
    overlap,
    stitch,
)
from scrollstitch.detection import ScrollDetector
from scrollstitch.session import SessionController


__all__ = [
    "__version__",
    "Frame",
    "PixelFormat",
    "OverlapResult",
    "StitchPlan",
    "CaptureRegion",
    "SessionState",
    "OverlapFinder",
    "Compositor",
    "StitchPipeline",
    "ScrollDetector",
    "SessionController",
    "overlap",
    "find_overlaps",
    "stitch",
    "load_frames",
    "save_png",
]
