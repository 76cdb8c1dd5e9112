"""
Frame Model Tests
=================

Tests for the immutable Frame buffer.
"""

import numpy as np
import pytest

from scrollstitch.models.frame import BYTES_PER_PIXEL, Frame, PixelFormat


class TestFrameValidation:
    """Tests for Frame construction checks."""

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            Frame(index=0, width=0, height=10, stride=0,
                  pixel_format=PixelFormat.BGRA, timestamp=0.0, data=b"")

    def test_rejects_short_stride(self):
        with pytest.raises(ValueError):
            Frame(index=0, width=4, height=1, stride=8,
                  pixel_format=PixelFormat.BGRA, timestamp=0.0, data=bytes(8))

    def test_rejects_short_buffer(self):
        with pytest.raises(ValueError):
            Frame(index=0, width=2, height=2, stride=8,
                  pixel_format=PixelFormat.BGRA, timestamp=0.0, data=bytes(15))

    def test_from_array_requires_four_channels(self):
        with pytest.raises(ValueError):
            Frame.from_array(np.zeros((4, 4, 3), dtype=np.uint8))

    def test_from_array_requires_uint8(self):
        with pytest.raises(ValueError):
            Frame.from_array(np.zeros((4, 4, 4), dtype=np.float32))


class TestFramePixels:
    """Tests for pixel access."""

    def test_from_array_copies(self):
        """Later writes to the source array don't leak into the Frame."""
        pixels = np.zeros((3, 5, 4), dtype=np.uint8)
        frame = Frame.from_array(pixels)
        pixels[:] = 255

        assert frame.pixels.max() == 0
        assert frame.stride == 5 * BYTES_PER_PIXEL

    def test_pixels_are_read_only(self):
        frame = Frame.from_array(np.zeros((2, 2, 4), dtype=np.uint8))
        with pytest.raises(ValueError):
            frame.pixels[0, 0, 0] = 1

    def test_padded_stride_is_dropped(self):
        """Row padding beyond width * 4 bytes is not part of pixels."""
        width, height, stride = 2, 3, 12
        rows = []
        for y in range(height):
            rows.append(bytes([y] * (width * 4)) + b"\xff" * (stride - width * 4))
        frame = Frame(
            index=0, width=width, height=height, stride=stride,
            pixel_format=PixelFormat.RGBA, timestamp=0.0, data=b"".join(rows),
        )

        assert frame.pixels.shape == (3, 2, 4)
        assert frame.pixels[2].max() == 2
        assert 255 not in frame.pixels

    def test_with_index_shares_buffer(self):
        frame = Frame.from_array(np.ones((2, 2, 4), dtype=np.uint8), index=3)
        moved = frame.with_index(7)

        assert moved.index == 7
        assert frame.index == 3
        assert moved.data is frame.data

    def test_repr_omits_buffer(self):
        frame = Frame.from_array(np.zeros((2, 3, 4), dtype=np.uint8))
        assert "3x2" in repr(frame)
        assert "data" not in repr(frame)
