"""
Error Types
===========

Exceptions raised by the capture, stitching and session layers.

Hierarchy:
    StitchError
        NoFramesError          - stitch() called with zero frames
        DimensionMismatchError - widths or pixel formats differ
        InvalidPlanError       - overlaps don't line up with frames
    CaptureError               - capture source failed (transient)
        CaptureFailedError     - capture failure that aborts a session
    SessionError
        SessionCancelledError  - session cancelled before stitching
        SessionBusyError       - a session is already active
"""


class StitchError(Exception):
    """Base class for stitching failures."""
    pass


class NoFramesError(StitchError):
    """Raised when there is nothing to stitch."""

    def __init__(self, message: str = "No frames to stitch") -> None:
        super().__init__(message)


class DimensionMismatchError(StitchError):
    """Raised when frames of different width or pixel format are combined."""
    pass


class InvalidPlanError(StitchError):
    """Raised when the overlap list does not describe the frame list."""
    pass


class CaptureError(Exception):
    """Raised by a capture source when a single capture fails."""
    pass


class CaptureFailedError(CaptureError):
    """Raised when a capture failure aborts the whole session."""
    pass


class SessionError(Exception):
    """Base class for session lifecycle errors."""
    pass


class SessionCancelledError(SessionError):
    """Raised to the caller when a session is cancelled."""

    def __init__(self, reason: str = "cancelled") -> None:
        super().__init__(f"Scroll capture cancelled: {reason}")
        self.reason = reason


class SessionBusyError(SessionError):
    """Raised when starting a session while another is active."""
    pass
