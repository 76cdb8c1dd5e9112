"""
Session Models
==============

State and event types for a scroll-capture session.

Transitions:
    IDLE → SELECTING_REGION → MONITORING → FINISHING → STITCHING
    STITCHING → COMPLETE | FAILED
    SELECTING_REGION | MONITORING | FINISHING → IDLE  (cancel)

Events emitted to the caller:
    CaptureProgress  - one per captured frame (captured_count)
    SessionComplete  - terminal, carries the stitched image
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from scrollstitch.models.frame import Frame


class SessionState(str, Enum):
    """Lifecycle states of a scroll-capture session."""

    IDLE = "IDLE"
    SELECTING_REGION = "SELECTING_REGION"
    MONITORING = "MONITORING"
    FINISHING = "FINISHING"
    STITCHING = "STITCHING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"

    @property
    def is_cancellable(self) -> bool:
        """Cancellation is honoured up to and including FINISHING."""
        return self in (
            SessionState.SELECTING_REGION,
            SessionState.MONITORING,
            SessionState.FINISHING,
        )

    @property
    def is_active(self) -> bool:
        return self not in (
            SessionState.IDLE,
            SessionState.COMPLETE,
            SessionState.FAILED,
        )


class CaptureRegion(BaseModel):
    """
    Screen rectangle to capture, in points.

    Attributes:
        x, y: Top-left corner
        width, height: Size of the rectangle
        display_id: Platform display identifier
        scale_factor: Backing scale (pixels per point)
    """

    x: int = Field(default=0)
    y: int = Field(default=0)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    display_id: Optional[int] = Field(default=None)
    scale_factor: float = Field(default=1.0, gt=0)

    class Config:
        frozen = True

    @property
    def pixel_size(self) -> tuple:
        """(width, height) of a capture in pixels."""
        return (
            int(self.width * self.scale_factor),
            int(self.height * self.scale_factor),
        )


class CaptureProgress(BaseModel):
    """Emitted after every frame appended to the session."""

    captured_count: int = Field(..., ge=0)
    state: SessionState = Field(default=SessionState.MONITORING)


class SessionComplete(BaseModel):
    """Terminal event carrying the stitched image."""

    image: Frame
    frame_count: int = Field(..., ge=1)
    output_height: int = Field(..., gt=0)

    class Config:
        arbitrary_types_allowed = True
