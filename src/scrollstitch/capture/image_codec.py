"""
Image Codec
===========

Dedicated module for converting between encoded images and Frames.

Design Rules:
    - This is the ONLY place in the codebase that decodes or encodes images
    - Every decoded Frame is BGRA, 4 bytes per pixel
    - Fails fast on corrupt input
    - Directory loading follows lexical filename order (= capture order)
"""

import logging
from pathlib import Path
from typing import List, Union

import cv2
import numpy as np

from scrollstitch.models.frame import Frame, PixelFormat


logger = logging.getLogger(__name__)


IMAGE_SUFFIXES = (".png",)


class ImageDecodeError(Exception):
    """Raised when image decoding or encoding fails."""
    pass


def _to_bgra(image: np.ndarray, label: str) -> np.ndarray:
    """Normalise a cv2.imdecode result to (H, W, 4) uint8 BGRA."""
    if image.dtype != np.uint8:
        if image.dtype == np.uint16:
            image = (image >> 8).astype(np.uint8)
        else:
            raise ImageDecodeError(f"Unsupported dtype for {label}: {image.dtype}")

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    if image.ndim == 3 and image.shape[2] == 4:
        return image

    raise ImageDecodeError(f"Invalid image shape for {label}: {image.shape}")


def decode_image(
    data: bytes,
    index: int = 0,
    timestamp: float = 0.0,
    label: str = "image",
) -> Frame:
    """
    Decode PNG/JPEG bytes into a BGRA Frame.

    Args:
        data: Encoded image bytes
        index: Capture ordinal to assign
        timestamp: Capture time to assign
        label: Name used in error messages

    Returns:
        Frame with PixelFormat.BGRA

    Raises:
        ImageDecodeError: If decoding fails or image is invalid
    """
    if not data:
        raise ImageDecodeError(f"Empty buffer for {label}")

    nparr = np.frombuffer(data, np.uint8)
    image = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED)

    if image is None:
        raise ImageDecodeError(
            f"Failed to decode {label}: cv2.imdecode returned None"
        )

    bgra = _to_bgra(image, label)
    return Frame.from_array(
        bgra,
        index=index,
        timestamp=timestamp,
        pixel_format=PixelFormat.BGRA,
    )


def load_image(path: Union[str, Path], index: int = 0) -> Frame:
    """Read and decode one image file."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImageDecodeError(f"Cannot read {path}: {e}") from e

    return decode_image(
        data,
        index=index,
        timestamp=path.stat().st_mtime,
        label=path.name,
    )


def load_frames(directory: Union[str, Path]) -> List[Frame]:
    """
    Load every PNG in a directory as an ordered frame sequence.

    Files are sorted by name; unreadable files are logged and skipped.

    Args:
        directory: Directory holding capture_000.png, capture_001.png, ...

    Returns:
        Frames indexed 0..n-1 in filename order

    Raises:
        ImageDecodeError: If the directory cannot be read
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise ImageDecodeError(f"Cannot read directory {directory}")

    files = sorted(
        (p for p in directory.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES),
        key=lambda p: p.name,
    )

    frames: List[Frame] = []
    for path in files:
        try:
            frame = load_image(path, index=len(frames))
        except ImageDecodeError as e:
            logger.warning(f"Skipping {path.name}: {e}")
            continue
        frames.append(frame)
        logger.info(f"Loaded: {path.name} ({frame.width}x{frame.height})")

    return frames


def frame_to_bgra(frame: Frame) -> np.ndarray:
    """Frame pixels as a BGRA array (copy when a channel swap is needed)."""
    if frame.pixel_format == PixelFormat.RGBA:
        return cv2.cvtColor(frame.pixels, cv2.COLOR_RGBA2BGRA)
    return frame.pixels


def encode_png(frame: Frame) -> bytes:
    """
    Encode a Frame as PNG bytes.

    Raises:
        ImageDecodeError: If OpenCV fails to encode
    """
    ok, buffer = cv2.imencode(".png", frame_to_bgra(frame))
    if not ok:
        raise ImageDecodeError(f"Failed to encode frame {frame.index} as PNG")
    return buffer.tobytes()


def save_png(frame: Frame, path: Union[str, Path]) -> Path:
    """Write a Frame to disk as PNG."""
    path = Path(path)
    path.write_bytes(encode_png(frame))
    logger.info(f"Saved: {path} ({frame.width}x{frame.height})")
    return path
