"""
Capture Source
==============

Protocol for the platform screen-capture collaborator.

The engine never talks to a screen-capture API directly. It awaits a
CaptureSource, which returns one Frame per call for a given region.

Design Rules:
    - capture() is asynchronous and may raise CaptureError
    - Each call returns a new, fully captured Frame
    - The session re-indexes frames on append; a source's index is ignored
"""

from typing import Awaitable, Callable, Protocol

from scrollstitch.models.frame import Frame
from scrollstitch.models.session import CaptureRegion


class CaptureSource(Protocol):
    """
    Protocol for screen-capture backends.

    Implementations wrap the platform capture API (or a replay of
    stored images) behind one awaitable call.
    """

    async def capture(self, region: CaptureRegion) -> Frame:
        """
        Capture the given region.

        Args:
            region: Screen rectangle to capture

        Returns:
            Captured Frame

        Raises:
            CaptureError: If the capture failed
        """
        ...


# Async callable asked for a region when a session starts without one.
RegionSelector = Callable[[], Awaitable[CaptureRegion]]
