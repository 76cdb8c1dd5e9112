"""
Seam Visualization
==================

Debug artifacts for a finished stitch.

This module generates PURELY DESCRIPTIVE artifacts.
Seams do NOT influence overlap decisions or the stitched pixels.

Artifacts:
    - Seam list: y-offset in the output where each contributing frame starts
    - Annotated image: copy of the output with a line and label per seam

GATED BY CONFIG FLAG. Zero cost when disabled.
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from scrollstitch.config import ObservabilityConfig
from scrollstitch.models.frame import PixelFormat, Frame
from scrollstitch.models.overlap import OverlapResult, StitchPlan


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Seam:
    """Boundary between two bands of the stitched output."""

    y: int  # Output row where the band of frame_index starts
    frame_index: int
    overlap_rows: int
    verdict: Optional[str]

    def to_dict(self) -> dict:
        return {
            "y": self.y,
            "frame_index": self.frame_index,
            "overlap_rows": self.overlap_rows,
            "verdict": self.verdict,
        }


@dataclass(frozen=True, slots=True)
class SeamArtifacts:
    """
    Seam artifacts for one stitched image.

    Both fields are None when seams are disabled.
    """

    seams: Optional[List[Seam]]
    annotated: Optional[Frame]


def compute_seams(
    plan: StitchPlan,
    overlaps: Sequence[OverlapResult] = (),
) -> List[Seam]:
    """
    Output rows where each contributing band begins.

    The first contributing band starts at 0 and has no seam; every later
    band gets one.
    """
    by_bottom = {result.bottom_index: result for result in overlaps}

    seams = []
    y = 0
    first = True
    for entry in plan.entries:
        if entry.is_empty:
            continue
        if not first:
            result = by_bottom.get(entry.frame_index)
            seams.append(Seam(
                y=y,
                frame_index=entry.frame_index,
                overlap_rows=result.overlap_rows if result else 0,
                verdict=result.verdict.value if result else None,
            ))
        first = False
        y += entry.row_count
    return seams


def parse_hex_color(value: str) -> Tuple[int, int, int]:
    """'#rrggbb' -> (r, g, b)."""
    text = value.strip().lstrip("#")
    if len(text) != 6:
        raise ValueError(f"Expected #rrggbb colour, got {value!r}")
    return int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)


class SeamVisualizer:
    """
    Draws stitch seams onto a copy of the output image.

    GATED: Does nothing when disabled.
    """

    def __init__(self, config: Optional[ObservabilityConfig] = None) -> None:
        """
        Initialize seam visualizer.

        Args:
            config: Seam switch, colour and thickness (defaults if None)
        """
        self.config = config or ObservabilityConfig()
        self._rgb = parse_hex_color(self.config.seam_color)

        if self.config.enable_seams:
            logger.info(
                f"SeamVisualizer enabled: color={self.config.seam_color}, "
                f"thickness={self.config.seam_thickness}px"
            )
        else:
            logger.info("SeamVisualizer disabled (zero cost)")

    @property
    def is_enabled(self) -> bool:
        return self.config.enable_seams

    def generate(
        self,
        image: Frame,
        plan: StitchPlan,
        overlaps: Sequence[OverlapResult] = (),
    ) -> SeamArtifacts:
        """
        Compute seams and render the annotated image.

        Returns:
            Artifacts (all None if disabled)
        """
        if not self.is_enabled:
            return SeamArtifacts(seams=None, annotated=None)

        start_time = time.time()

        seams = compute_seams(plan, overlaps)
        annotated = self.render(image, seams)

        elapsed_ms = (time.time() - start_time) * 1000
        if elapsed_ms > 50:
            logger.warning(f"Seam rendering took {elapsed_ms:.1f}ms (>50ms threshold)")

        return SeamArtifacts(seams=seams, annotated=annotated)

    def render(self, image: Frame, seams: Sequence[Seam]) -> Frame:
        """Annotated copy of ``image``; the input frame is untouched."""
        canvas = np.array(image.pixels, copy=True)
        color = self._color_for(image.pixel_format)
        thickness = self.config.seam_thickness

        for seam in seams:
            cv2.line(canvas, (0, seam.y), (image.width - 1, seam.y), color, thickness)
            label = f"#{seam.frame_index} overlap={seam.overlap_rows}"
            if seam.verdict:
                label += f" {seam.verdict}"
            cv2.putText(
                canvas,
                label,
                (4, max(12, seam.y - 4)),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.4,
                color,
                1,
                cv2.LINE_AA,
            )

        return Frame.from_array(
            canvas,
            index=image.index,
            timestamp=image.timestamp,
            pixel_format=image.pixel_format,
        )

    def _color_for(self, pixel_format: PixelFormat) -> Tuple[int, int, int, int]:
        r, g, b = self._rgb
        if pixel_format == PixelFormat.BGRA:
            return (b, g, r, 255)
        return (r, g, b, 255)
