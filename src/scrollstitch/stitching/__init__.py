"""
Stitching Module
================

Overlap detection and image assembly.

Components:
    - OverlapFinder: Coarse-to-fine vertical overlap search
    - SuspiciousSmallOverlapPolicy: Default tiny-overlap duplicate override
    - Compositor: Renders frames + overlaps into one image
    - StitchPipeline: LangGraph finalize workflow (overlaps → plan → image)

Example:
    from scrollstitch.stitching import overlap, stitch, find_overlaps

    results = find_overlaps(frames)
    image = stitch(frames, results)
"""

from scrollstitch.stitching.overlap import (
    OverlapFinder,
    SmallOverlapPolicy,
    SuspiciousSmallOverlapPolicy,
    check_compatible,
    find_overlaps,
    overlap,
)
from scrollstitch.stitching.compositor import (
    Compositor,
    build_plan,
    stitch,
    validate_sequence,
)
from scrollstitch.stitching.pipeline import StitchOutcome, StitchPipeline


__all__ = [
    "OverlapFinder",
    "SmallOverlapPolicy",
    "SuspiciousSmallOverlapPolicy",
    "check_compatible",
    "find_overlaps",
    "overlap",
    "Compositor",
    "build_plan",
    "stitch",
    "validate_sequence",
    "StitchOutcome",
    "StitchPipeline",
]
