"""
Capture Module
==============

Boundary to the screen-capture collaborator and image files.

This module provides:
    - CaptureSource: Protocol the platform capture adapter implements
    - RegionSelector: Async callable that asks the user for a region
    - Image codec: PNG/JPEG <-> Frame conversion and directory loading
"""

from scrollstitch.capture.source import CaptureSource, RegionSelector
from scrollstitch.capture.image_codec import (
    ImageDecodeError,
    decode_image,
    encode_png,
    load_frames,
    load_image,
    save_png,
)


__all__ = [
    "CaptureSource",
    "RegionSelector",
    "ImageDecodeError",
    "decode_image",
    "encode_png",
    "load_frames",
    "load_image",
    "save_png",
]
