"""
Detection Module
================

Capture-cadence detection for scroll sessions.

Components:
    - ScrollDetector: Polls the capture source and signals scrolls
    - DetectorMetrics: Tick / signal / failure counters
    - difference_ratio: Sampled pixel change metric
"""

from scrollstitch.detection.difference import difference_ratio
from scrollstitch.detection.scroll_detector import (
    DetectorMetrics,
    ScrollDetector,
    SignalHandler,
)


__all__ = [
    "difference_ratio",
    "DetectorMetrics",
    "ScrollDetector",
    "SignalHandler",
]
