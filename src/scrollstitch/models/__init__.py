"""
Data Models
===========

Types shared by the capture, detection, stitching and session layers.

Models:
    Frame:
        - PixelFormat: 4-byte pixel layouts
        - Frame: Immutable captured pixel buffer

    Overlap:
        - OverlapVerdict: Why an overlap was decided
        - OverlapResult: Shared rows between two adjacent frames
        - PlanEntry, StitchPlan: Rows kept per frame

    Session:
        - SessionState: Lifecycle states
        - CaptureRegion: Screen rectangle to capture
        - CaptureProgress, SessionComplete: Events emitted to callers
"""

from scrollstitch.models.frame import BYTES_PER_PIXEL, Frame, PixelFormat
from scrollstitch.models.overlap import (
    OverlapResult,
    OverlapVerdict,
    PlanEntry,
    StitchPlan,
)
from scrollstitch.models.session import (
    CaptureProgress,
    CaptureRegion,
    SessionComplete,
    SessionState,
)

__all__ = [
    # Frame
    "BYTES_PER_PIXEL",
    "PixelFormat",
    "Frame",
    # Overlap
    "OverlapVerdict",
    "OverlapResult",
    "PlanEntry",
    "StitchPlan",
    # Session
    "SessionState",
    "CaptureRegion",
    "CaptureProgress",
    "SessionComplete",
]
