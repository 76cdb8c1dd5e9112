"""
Observability Module
====================

Debug artifacts for stitched output.

This module provides:
    - SeamVisualizer: Draws seam lines onto a copy of the output (gated)
    - compute_seams: Output rows where each frame's band begins

DESIGN RULES:
    - Does NOT influence overlap decisions or stitched pixels
    - Zero cost when seams are disabled
"""

from scrollstitch.observability.seams import (
    Seam,
    SeamArtifacts,
    SeamVisualizer,
    compute_seams,
    parse_hex_color,
)


__all__ = [
    "Seam",
    "SeamArtifacts",
    "SeamVisualizer",
    "compute_seams",
    "parse_hex_color",
]
