"""
Frame Data Model
=================

Immutable pixel buffer for one scroll position.

This module defines the typed Frame class that is passed between the
capture source, the ScrollDetector, the OverlapFinder and the Compositor.

Design Rules:
    - Pixels are always 4 bytes per pixel (BGRA or RGBA)
    - Rows may be padded: ``stride`` is the byte length of one row
    - The buffer is ``bytes`` and is never mutated after creation
    - ``pixels`` exposes a read-only numpy view, never a copy
"""

import dataclasses
from dataclasses import dataclass
from enum import Enum

import numpy as np


BYTES_PER_PIXEL = 4


class PixelFormat(str, Enum):
    """
    Supported 4-byte pixel layouts.

    Channel order only matters for encoding/decoding. Comparisons use the
    three colour channels and ignore alpha, so BGRA and RGBA frames compare
    the same way as long as both sides share one format.
    """

    BGRA = "BGRA"
    RGBA = "RGBA"


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Captured pixel buffer plus metadata.

    It is immutable (frozen) and its ``data`` is an immutable ``bytes``
    object, so a Frame can be shared freely between the monitoring task
    and the stitching worker thread.

    Attributes:
        index: Capture ordinal within a session (0 = first capture)
        width: Width in pixels
        height: Height in pixels
        stride: Bytes per row (>= width * 4)
        pixel_format: Channel layout of each 4-byte pixel
        timestamp: Monotonic capture time in seconds
        data: Raw pixel bytes, ``stride * height`` long
    """

    index: int
    width: int
    height: int
    stride: int
    pixel_format: PixelFormat
    timestamp: float
    data: bytes

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Frame dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.stride < self.width * BYTES_PER_PIXEL:
            raise ValueError(
                f"Frame stride {self.stride} is shorter than one row "
                f"({self.width * BYTES_PER_PIXEL} bytes)"
            )
        if len(self.data) < self.stride * self.height:
            raise ValueError(
                f"Frame buffer holds {len(self.data)} bytes, "
                f"expected {self.stride * self.height}"
            )

    @classmethod
    def from_array(
        cls,
        pixels: np.ndarray,
        index: int = 0,
        timestamp: float = 0.0,
        pixel_format: PixelFormat = PixelFormat.BGRA,
    ) -> "Frame":
        """
        Build a Frame from an (H, W, 4) uint8 array.

        The array is copied into a fresh ``bytes`` buffer with a tight
        stride, so later writes to ``pixels`` do not leak into the Frame.
        """
        if pixels.ndim != 3 or pixels.shape[2] != BYTES_PER_PIXEL:
            raise ValueError(f"Expected (H, W, 4) pixel array, got {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {pixels.dtype}")

        height, width = pixels.shape[:2]
        return cls(
            index=index,
            width=width,
            height=height,
            stride=width * BYTES_PER_PIXEL,
            pixel_format=pixel_format,
            timestamp=timestamp,
            data=np.ascontiguousarray(pixels).tobytes(),
        )

    @property
    def pixels(self) -> np.ndarray:
        """Read-only (H, W, 4) uint8 view over ``data`` (row padding dropped)."""
        rows = np.frombuffer(
            self.data, dtype=np.uint8, count=self.stride * self.height
        ).reshape(self.height, self.stride)
        return rows[:, : self.width * BYTES_PER_PIXEL].reshape(
            self.height, self.width, BYTES_PER_PIXEL
        )

    def with_index(self, index: int) -> "Frame":
        """Copy of this frame with a new capture ordinal (buffer is shared)."""
        return dataclasses.replace(self, index=index)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixel buffer."""
        return (
            f"Frame(index={self.index}, "
            f"size={self.width}x{self.height}, "
            f"format={self.pixel_format.value}, "
            f"timestamp={self.timestamp:.3f})"
        )
