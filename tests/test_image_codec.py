"""
Image Codec Tests
=================

Tests for PNG decoding, encoding and directory loading.
"""

import numpy as np
import pytest

from conftest import make_canvas
from scrollstitch.capture import (
    ImageDecodeError,
    decode_image,
    encode_png,
    load_frames,
    save_png,
)
from scrollstitch.models.frame import Frame, PixelFormat


class TestDecode:
    """Tests for decode_image()."""

    def test_png_round_trip(self):
        frame = Frame.from_array(make_canvas(30, 20, seed=1))

        decoded = decode_image(encode_png(frame), index=4)

        assert decoded.pixel_format == PixelFormat.BGRA
        assert decoded.index == 4
        assert np.array_equal(decoded.pixels, frame.pixels)

    def test_rgba_frames_are_swapped_on_encode(self):
        pixels = np.zeros((2, 2, 4), dtype=np.uint8)
        pixels[..., 0] = 200  # red in RGBA
        pixels[..., 3] = 255
        frame = Frame.from_array(pixels, pixel_format=PixelFormat.RGBA)

        decoded = decode_image(encode_png(frame))

        assert decoded.pixels[0, 0, 2] == 200  # red in BGRA
        assert decoded.pixels[0, 0, 0] == 0

    def test_empty_buffer(self):
        with pytest.raises(ImageDecodeError):
            decode_image(b"")

    def test_corrupt_buffer(self):
        with pytest.raises(ImageDecodeError):
            decode_image(b"not an image at all")


class TestLoadFrames:
    """Tests for load_frames()."""

    def test_filename_order_and_skip(self, tmp_path):
        first = Frame.from_array(make_canvas(10, 8, seed=1))
        second = Frame.from_array(make_canvas(12, 8, seed=2))
        save_png(second, tmp_path / "capture_001.png")
        save_png(first, tmp_path / "capture_000.png")
        (tmp_path / "capture_002.png").write_bytes(b"broken")
        (tmp_path / "notes.txt").write_text("ignored")

        frames = load_frames(tmp_path)

        assert [f.index for f in frames] == [0, 1]
        assert [f.height for f in frames] == [10, 12]
        assert np.array_equal(frames[0].pixels, first.pixels)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ImageDecodeError):
            load_frames(tmp_path / "nope")
