"""
Overlap & Plan Models
=====================

Derived, per-session stitching data.

Core Concepts:
    - OverlapVerdict: Which branch of the overlap search produced a result
    - OverlapResult: Shared rows between two adjacent frames
    - PlanEntry / StitchPlan: How many rows of each frame the output keeps

Invariants:
    0 <= overlap_rows <= min(top.height, bottom.height)
    output_height = sum(heights) - sum(overlap_rows)

These objects are computed only at finalize time and are never persisted.
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class OverlapVerdict(str, Enum):
    """
    Machine-readable explanation for an OverlapResult.

    Attributes:
        DUPLICATE_FRAME: Whole-frame pre-check found the frames near identical
        NEAR_FULL_OVERLAP: Best overlap covers ~all of the frame
        SUSPICIOUS_SMALL_OVERLAP: Tiny overlap with very high similarity,
            treated as a near-zero scroll
        MATCHED: Regular overlap above the match threshold
        NO_MATCH: No candidate beat the match threshold
    """

    DUPLICATE_FRAME = "DUPLICATE_FRAME"
    NEAR_FULL_OVERLAP = "NEAR_FULL_OVERLAP"
    SUSPICIOUS_SMALL_OVERLAP = "SUSPICIOUS_SMALL_OVERLAP"
    MATCHED = "MATCHED"
    NO_MATCH = "NO_MATCH"

    @property
    def is_duplicate(self) -> bool:
        return self in (
            OverlapVerdict.DUPLICATE_FRAME,
            OverlapVerdict.NEAR_FULL_OVERLAP,
            OverlapVerdict.SUSPICIOUS_SMALL_OVERLAP,
        )


class OverlapResult(BaseModel):
    """
    Vertical overlap between two adjacent frames.

    Attributes:
        top_index: Index of the upper frame
        bottom_index: Index of the lower frame (top_index + 1 in a session)
        overlap_rows: Rows shared by the bottom of top and the top of bottom
        similarity: Fraction of sampled pixel pairs that matched
        coarse_similarity: Best similarity before fine refinement
        verdict: Which rule decided the result
    """

    top_index: int = Field(..., ge=0, description="Index of the upper frame")
    bottom_index: int = Field(..., ge=0, description="Index of the lower frame")
    overlap_rows: int = Field(..., ge=0, description="Number of shared rows")
    similarity: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Fraction of sampled pixel pairs within tolerance",
    )
    coarse_similarity: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Best similarity seen during the coarse search",
    )
    verdict: OverlapVerdict = Field(
        default=OverlapVerdict.MATCHED,
        description="Rule that produced this result",
    )

    class Config:
        frozen = True


class PlanEntry(BaseModel):
    """Rows ``[use_row_start, use_row_end)`` of one frame kept in the output."""

    frame_index: int = Field(..., ge=0)
    use_row_start: int = Field(..., ge=0)
    use_row_end: int = Field(..., ge=0)

    class Config:
        frozen = True

    @property
    def row_count(self) -> int:
        return max(0, self.use_row_end - self.use_row_start)

    @property
    def is_empty(self) -> bool:
        return self.row_count == 0


class StitchPlan(BaseModel):
    """
    Ordered instructions for assembling the output image.

    Entries follow capture order (top of the page first). A frame judged a
    full duplicate has an empty range and contributes zero rows.
    """

    width: int = Field(..., gt=0, description="Output width in pixels")
    entries: List[PlanEntry] = Field(default_factory=list)

    class Config:
        frozen = True

    @property
    def output_height(self) -> int:
        return sum(entry.row_count for entry in self.entries)

    @property
    def contributing_frames(self) -> List[int]:
        return [entry.frame_index for entry in self.entries if not entry.is_empty]
