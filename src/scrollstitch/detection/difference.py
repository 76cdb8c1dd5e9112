"""
Frame Difference
================

Cheap change metric used by the ScrollDetector.

The ratio is the fraction of sampled pixel positions whose colour differs
by more than a per-channel tolerance. Pixels are sampled at a fixed stride
over the flattened buffer, so the cost stays linear in buffer size / stride.
"""

import numpy as np

from scrollstitch.models.frame import BYTES_PER_PIXEL, Frame


def difference_ratio(
    reference: Frame,
    probe: Frame,
    stride: int = 4,
    tolerance: int = 10,
) -> float:
    """
    Fraction of sampled pixels that changed between two frames.

    Args:
        reference: Baseline frame
        probe: Freshly captured frame
        stride: Compare every ``stride``-th pixel of the buffer
        tolerance: Per-channel difference above which a pixel changed

    Returns:
        Ratio in [0, 1]. Frames of different geometry or pixel format
        return 1.0 (completely different).
    """
    if (
        reference.width != probe.width
        or reference.height != probe.height
        or reference.pixel_format != probe.pixel_format
    ):
        return 1.0

    a = reference.pixels.reshape(-1, BYTES_PER_PIXEL)[::stride, :3].astype(np.int16)
    b = probe.pixels.reshape(-1, BYTES_PER_PIXEL)[::stride, :3].astype(np.int16)
    if a.shape[0] == 0:
        return 0.0

    changed = (np.abs(a - b) > tolerance).any(axis=1)
    return float(np.count_nonzero(changed)) / float(changed.shape[0])
