"""
Compositor
==========

Assembles an ordered frame sequence into one tall image.

Assembly Rules:
    - Frames are walked in REVERSE order (bottom of the page first)
    - The last frame is drawn in full at the bottom of the canvas
    - Every other frame keeps only its top ``height - overlap_with_next``
      rows and is placed directly above the content drawn so far
    - A frame with no rows left (a duplicate) is skipped entirely

Ownership:
    The compositor allocates one pre-sized destination buffer, writes every
    band into it exactly once, and hands the finished buffer to the caller
    as a new immutable Frame. Nothing else ever sees the buffer while it is
    being written.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from scrollstitch.errors import InvalidPlanError, NoFramesError
from scrollstitch.models.frame import BYTES_PER_PIXEL, Frame
from scrollstitch.models.overlap import OverlapResult, PlanEntry, StitchPlan
from scrollstitch.stitching.overlap import check_compatible


logger = logging.getLogger(__name__)


def validate_sequence(
    frames: Sequence[Frame],
    overlaps: Sequence[OverlapResult],
) -> None:
    """
    Check that ``overlaps`` describes ``frames``.

    Raises:
        NoFramesError: If ``frames`` is empty
        DimensionMismatchError: If widths or pixel formats differ
        InvalidPlanError: If counts, indices or overlap bounds are wrong
    """
    if not frames:
        raise NoFramesError()

    first = frames[0]
    for frame in frames[1:]:
        check_compatible(first, frame)

    if len(overlaps) != len(frames) - 1:
        raise InvalidPlanError(
            f"Expected {len(frames) - 1} overlaps for {len(frames)} frames, "
            f"got {len(overlaps)}"
        )

    for i, result in enumerate(overlaps):
        top, bottom = frames[i], frames[i + 1]
        if result.top_index != top.index or result.bottom_index != bottom.index:
            raise InvalidPlanError(
                f"Overlap {i} describes frames {result.top_index}/{result.bottom_index}, "
                f"expected {top.index}/{bottom.index}"
            )
        limit = min(top.height, bottom.height)
        if result.overlap_rows > limit:
            raise InvalidPlanError(
                f"Overlap {result.overlap_rows}px between frames {top.index} and "
                f"{bottom.index} exceeds min height {limit}px"
            )


def build_plan(
    frames: Sequence[Frame],
    overlaps: Sequence[OverlapResult],
) -> StitchPlan:
    """
    Turn pairwise overlaps into per-frame row ranges.

    Entries follow capture order. The last frame keeps all rows; every
    other frame keeps rows ``[0, height - overlap_with_next)``.

    Raises:
        NoFramesError, DimensionMismatchError, InvalidPlanError
    """
    validate_sequence(frames, overlaps)

    entries = []
    last = len(frames) - 1
    for i, frame in enumerate(frames):
        if i == last:
            keep = frame.height
        else:
            keep = max(0, frame.height - overlaps[i].overlap_rows)
        entries.append(
            PlanEntry(frame_index=frame.index, use_row_start=0, use_row_end=keep)
        )

    return StitchPlan(width=frames[0].width, entries=entries)


class Compositor:
    """
    Renders a stitched image from frames and their pairwise overlaps.

    Stateless: one instance can serve any number of sessions and threads.

    Example:
        compositor = Compositor()
        image = compositor.stitch(frames, overlaps)
    """

    def stitch(
        self,
        frames: Sequence[Frame],
        overlaps: Sequence[OverlapResult],
    ) -> Frame:
        """
        Stitch frames top-to-bottom, dropping overlapped rows.

        Args:
            frames: Frames in capture order
            overlaps: ``len(frames) - 1`` adjacent overlaps

        Returns:
            The stitched image as a Frame. A single frame is returned as is.

        Raises:
            NoFramesError: If ``frames`` is empty
            DimensionMismatchError: If frame widths differ
            InvalidPlanError: If ``overlaps`` doesn't match ``frames``
        """
        if len(frames) == 1 and not overlaps:
            return frames[0]

        plan = build_plan(frames, overlaps)
        return self.render(frames, plan)

    def render(self, frames: Sequence[Frame], plan: StitchPlan) -> Frame:
        """
        Draw a prepared plan into a fresh canvas.

        Args:
            frames: Frames in capture order, matching ``plan.entries``
            plan: Row ranges to keep per frame

        Returns:
            New Frame owning the stitched buffer
        """
        if not frames:
            raise NoFramesError()
        if len(plan.entries) != len(frames):
            raise InvalidPlanError(
                f"Plan has {len(plan.entries)} entries for {len(frames)} frames"
            )

        width = plan.width
        total_height = plan.output_height
        if total_height <= 0:
            raise InvalidPlanError("Stitch plan produces an empty image")

        logger.info(
            f"Stitching {len(frames)} frames into {width}x{total_height}"
        )

        canvas = np.empty((total_height, width, BYTES_PER_PIXEL), dtype=np.uint8)

        # Walk upward from the bottom of the canvas.
        cursor = total_height
        for frame, entry in zip(reversed(frames), reversed(plan.entries)):
            rows = entry.row_count
            if rows <= 0:
                logger.debug(f"Skipping fully overlapped frame {frame.index}")
                continue

            band = frame.pixels[entry.use_row_start:entry.use_row_end]
            canvas[cursor - rows:cursor] = band
            cursor -= rows

        if cursor != 0:
            raise InvalidPlanError(
                f"Stitch plan left {cursor} rows unfilled"
            )

        last = frames[-1]
        return Frame(
            index=0,
            width=width,
            height=total_height,
            stride=width * BYTES_PER_PIXEL,
            pixel_format=last.pixel_format,
            timestamp=last.timestamp,
            data=canvas.tobytes(),
        )

    def stitch_pair(
        self,
        top: Frame,
        bottom: Frame,
        overlap_rows: int,
    ) -> Frame:
        """Stitch two frames with a known overlap (debug helper)."""
        check_compatible(top, bottom)
        top_keep = top.height - overlap_rows
        total_height = bottom.height + max(0, top_keep)

        canvas = np.empty((total_height, top.width, BYTES_PER_PIXEL), dtype=np.uint8)
        canvas[total_height - bottom.height:] = bottom.pixels
        if top_keep > 0:
            canvas[:top_keep] = top.pixels[:top_keep]

        return Frame(
            index=0,
            width=top.width,
            height=total_height,
            stride=top.width * BYTES_PER_PIXEL,
            pixel_format=bottom.pixel_format,
            timestamp=bottom.timestamp,
            data=canvas.tobytes(),
        )


def stitch(
    frames: Sequence[Frame],
    overlaps: Sequence[OverlapResult],
    compositor: Optional[Compositor] = None,
) -> Frame:
    """Module-level shortcut for ``Compositor().stitch(frames, overlaps)``."""
    return (compositor or Compositor()).stitch(frames, overlaps)
