"""
Overlap Finder
==============

Coarse-to-fine vertical overlap detection between two adjacent frames.

Given an upper frame (``top``) and the next capture (``bottom``), the
finder estimates how many rows at the bottom of ``top`` reappear at the
top of ``bottom``.

Algorithm:
    1. Duplicate pre-check: compare the frames row-aligned on a coarse
       grid. Near-identical frames are full duplicates.
    2. Coarse search: walk candidate overlaps from 90% of min(height)
       down to ``min_overlap`` in fixed steps, comparing sampled bands.
    3. Fine refinement: re-test candidates around the best coarse hit.
    4. Post-filters: a ~full-height overlap or a suspiciously small one
       with very high similarity is turned into a full duplicate.

Key Design Decisions:
    - Sampling (every 2nd row, every 4th column) instead of exhaustive
      full-resolution comparison at every candidate
    - Only the three colour channels are compared; alpha is ignored
    - Poor matches never raise. The caller judges output quality
    - Pure and deterministic: no state is kept between calls
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from scrollstitch.config import OverlapConfig
from scrollstitch.errors import DimensionMismatchError
from scrollstitch.models.frame import Frame
from scrollstitch.models.overlap import OverlapResult, OverlapVerdict


logger = logging.getLogger(__name__)


# (overlap_rows, similarity) -> True if the match should become a duplicate
SmallOverlapPolicy = Callable[[int, float], bool]


class SuspiciousSmallOverlapPolicy:
    """
    Default small-overlap override.

    A very small overlap with very high similarity usually means the two
    frames are nearly identical and the scroll was near zero, not that a
    genuine short overlap was found. Such matches are reported as full
    duplicates.

    This can suppress legitimate fast, short scrolls, so it is a policy
    object the finder accepts, not a fixed rule.
    """

    def __init__(self, max_rows: int = 200, min_similarity: float = 0.90) -> None:
        self.max_rows = max_rows
        self.min_similarity = min_similarity

    def __call__(self, overlap_rows: int, similarity: float) -> bool:
        return overlap_rows < self.max_rows and similarity > self.min_similarity

    def __repr__(self) -> str:
        return (
            f"SuspiciousSmallOverlapPolicy(max_rows={self.max_rows}, "
            f"min_similarity={self.min_similarity})"
        )


def check_compatible(top: Frame, bottom: Frame) -> None:
    """
    Ensure two frames can be compared or stacked.

    Raises:
        DimensionMismatchError: If widths or pixel formats differ
    """
    if top.width != bottom.width:
        raise DimensionMismatchError(
            f"Frame width mismatch: frame {top.index} is {top.width}px wide, "
            f"frame {bottom.index} is {bottom.width}px wide"
        )
    if top.pixel_format != bottom.pixel_format:
        raise DimensionMismatchError(
            f"Pixel format mismatch: frame {top.index} is {top.pixel_format.value}, "
            f"frame {bottom.index} is {bottom.pixel_format.value}"
        )


def _match_fraction(a: np.ndarray, b: np.ndarray, tolerance: int) -> float:
    """Fraction of pixel pairs whose every channel differs by <= tolerance."""
    if a.size == 0:
        return 0.0
    close = np.abs(a - b) <= tolerance
    return float(np.count_nonzero(close.all(axis=-1))) / float(close.shape[0] * close.shape[1])


class OverlapFinder:
    """
    Estimates the vertical overlap of two consecutive captures.

    Attributes:
        config: Heuristic constants (thresholds, steps, tolerances)
        small_overlap_policy: Override for tiny high-similarity matches,
            or None to report them as found

    Example:
        finder = OverlapFinder(OverlapConfig())
        result = finder.find_overlap(frames[0], frames[1])
        print(result.overlap_rows, result.similarity, result.verdict)
    """

    def __init__(
        self,
        config: Optional[OverlapConfig] = None,
        small_overlap_policy: Optional[SmallOverlapPolicy] = None,
    ) -> None:
        """
        Initialize overlap finder.

        Args:
            config: Heuristic constants (defaults if None)
            small_overlap_policy: Custom small-overlap override. When None,
                the default SuspiciousSmallOverlapPolicy is used if
                ``config.treat_small_overlap_as_duplicate`` is set.
        """
        self.config = config or OverlapConfig()

        if small_overlap_policy is None and self.config.treat_small_overlap_as_duplicate:
            small_overlap_policy = SuspiciousSmallOverlapPolicy(
                max_rows=self.config.suspicious_overlap_rows,
                min_similarity=self.config.suspicious_similarity,
            )
        self.small_overlap_policy = small_overlap_policy

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def find_overlap(self, top: Frame, bottom: Frame) -> OverlapResult:
        """
        Compute the overlap between ``top`` and the frame below it.

        Args:
            top: Upper (earlier) frame
            bottom: Lower (later) frame

        Returns:
            OverlapResult; ``overlap_rows`` may be 0 when nothing matched

        Raises:
            DimensionMismatchError: If widths or pixel formats differ
        """
        check_compatible(top, bottom)
        cfg = self.config

        # 1. Whole-frame duplicate pre-check
        whole = self.whole_frame_similarity(top, bottom)
        if whole > cfg.duplicate_threshold:
            logger.debug(
                f"Frames {top.index}/{bottom.index} are {whole * 100:.1f}% similar "
                f"overall, treating as duplicate"
            )
            return self._duplicate(top, bottom, whole, whole, OverlapVerdict.DUPLICATE_FRAME)

        search_range = self.search_range(top, bottom)
        if search_range < cfg.min_overlap:
            logger.debug(
                f"Frames {top.index}/{bottom.index} too short to search "
                f"(range={search_range})"
            )
            return self._result(top, bottom, 0, 0.0, 0.0, OverlapVerdict.NO_MATCH)

        top_s = self._sample_columns(top)
        bottom_s = self._sample_columns(bottom)

        # 2. Coarse search
        best_overlap, best_similarity = self._coarse_search(top_s, bottom_s, search_range)
        coarse_similarity = best_similarity

        # 3. Fine refinement
        if best_overlap > 0:
            best_overlap, best_similarity = self._refine(
                top_s, bottom_s, best_overlap, best_similarity, search_range
            )

        # 4. Post-filters
        if best_overlap >= search_range and best_similarity > cfg.near_full_similarity:
            logger.debug(
                f"Frames {top.index}/{bottom.index}: high overlap {best_overlap}px, "
                f"treating as duplicate"
            )
            return self._duplicate(
                top, bottom, best_similarity, coarse_similarity,
                OverlapVerdict.NEAR_FULL_OVERLAP,
            )

        if self.small_overlap_policy is not None and self.small_overlap_policy(
            best_overlap, best_similarity
        ):
            logger.debug(
                f"Frames {top.index}/{bottom.index}: suspicious small overlap "
                f"{best_overlap}px at {best_similarity:.3f}, treating as duplicate"
            )
            return self._duplicate(
                top, bottom, best_similarity, coarse_similarity,
                OverlapVerdict.SUSPICIOUS_SMALL_OVERLAP,
            )

        verdict = OverlapVerdict.MATCHED if best_overlap > 0 else OverlapVerdict.NO_MATCH
        return self._result(
            top, bottom, best_overlap, best_similarity, coarse_similarity, verdict
        )

    def whole_frame_similarity(self, top: Frame, bottom: Frame) -> float:
        """
        Row-aligned similarity of two frames on a coarse grid.

        Compares every ``duplicate_sample_step``-th row and column of the
        shared min(height) band.
        """
        cfg = self.config
        step = cfg.duplicate_sample_step
        shared_height = min(top.height, bottom.height)

        a = top.pixels[:shared_height:step, ::step, :3].astype(np.int16)
        b = bottom.pixels[:shared_height:step, ::step, :3].astype(np.int16)
        return _match_fraction(a, b, cfg.duplicate_tolerance)

    def search_range(self, top: Frame, bottom: Frame) -> int:
        """Largest candidate overlap for this pair."""
        return int(min(top.height, bottom.height) * self.config.search_range_fraction)

    def band_similarity(self, top: Frame, bottom: Frame, overlap: int) -> float:
        """Similarity of the bottom ``overlap`` rows of top vs top rows of bottom."""
        return self._band_similarity(
            self._sample_columns(top), self._sample_columns(bottom), overlap
        )

    def coarse_search(self, top: Frame, bottom: Frame) -> Tuple[int, float]:
        """
        Run only the coarse search.

        Returns:
            (best_overlap, best_similarity); best_overlap is 0 when no
            candidate exceeded the match threshold
        """
        check_compatible(top, bottom)
        return self._coarse_search(
            self._sample_columns(top),
            self._sample_columns(bottom),
            self.search_range(top, bottom),
        )

    def refine(
        self,
        top: Frame,
        bottom: Frame,
        best_overlap: int,
        best_similarity: float,
    ) -> Tuple[int, float]:
        """Run only the fine refinement around a coarse result."""
        check_compatible(top, bottom)
        return self._refine(
            self._sample_columns(top),
            self._sample_columns(bottom),
            best_overlap,
            best_similarity,
            self.search_range(top, bottom),
        )

    # -------------------------------------------------------------------------
    # Search internals
    # -------------------------------------------------------------------------

    def _sample_columns(self, frame: Frame) -> np.ndarray:
        """Every ``col_step``-th column, colour channels only, as int16."""
        return frame.pixels[:, :: self.config.col_step, :3].astype(np.int16)

    def _band_similarity(
        self,
        top_s: np.ndarray,
        bottom_s: np.ndarray,
        overlap: int,
    ) -> float:
        if overlap <= 0 or overlap > top_s.shape[0] or overlap > bottom_s.shape[0]:
            return 0.0

        row_step = self.config.row_step
        top_start = top_s.shape[0] - overlap
        top_band = top_s[top_start::row_step]
        bottom_band = bottom_s[:overlap:row_step]
        return _match_fraction(top_band, bottom_band, self.config.pixel_tolerance)

    def _coarse_search(
        self,
        top_s: np.ndarray,
        bottom_s: np.ndarray,
        search_range: int,
    ) -> Tuple[int, float]:
        cfg = self.config
        best_overlap = 0
        best_similarity = 0.0

        for overlap in range(search_range, cfg.min_overlap - 1, -cfg.coarse_step):
            similarity = self._band_similarity(top_s, bottom_s, overlap)
            if similarity > best_similarity:
                best_similarity = similarity
                if similarity > cfg.match_threshold:
                    best_overlap = overlap

        return best_overlap, best_similarity

    def _refine(
        self,
        top_s: np.ndarray,
        bottom_s: np.ndarray,
        best_overlap: int,
        best_similarity: float,
        search_range: int,
    ) -> Tuple[int, float]:
        cfg = self.config
        center = best_overlap

        for offset in range(-cfg.refine_radius, cfg.refine_radius + 1):
            overlap = center + offset
            if overlap < cfg.min_overlap or overlap > search_range:
                continue

            similarity = self._band_similarity(top_s, bottom_s, overlap)
            if similarity > best_similarity:
                best_similarity = similarity
                best_overlap = overlap

        return best_overlap, best_similarity

    # -------------------------------------------------------------------------
    # Result helpers
    # -------------------------------------------------------------------------

    def _duplicate(
        self,
        top: Frame,
        bottom: Frame,
        similarity: float,
        coarse_similarity: float,
        verdict: OverlapVerdict,
    ) -> OverlapResult:
        # The whole bottom frame is already shown; clamp to the shorter frame.
        rows = min(bottom.height, top.height)
        return self._result(top, bottom, rows, similarity, coarse_similarity, verdict)

    @staticmethod
    def _result(
        top: Frame,
        bottom: Frame,
        overlap_rows: int,
        similarity: float,
        coarse_similarity: float,
        verdict: OverlapVerdict,
    ) -> OverlapResult:
        return OverlapResult(
            top_index=top.index,
            bottom_index=bottom.index,
            overlap_rows=overlap_rows,
            similarity=min(1.0, max(0.0, similarity)),
            coarse_similarity=min(1.0, max(0.0, coarse_similarity)),
            verdict=verdict,
        )


# =============================================================================
# Module-level entry points
# =============================================================================

def overlap(
    top: Frame,
    bottom: Frame,
    config: Optional[OverlapConfig] = None,
) -> OverlapResult:
    """
    Pure overlap entry point for offline tooling and fixtures.

    Equivalent to ``OverlapFinder(config).find_overlap(top, bottom)``.
    """
    return OverlapFinder(config).find_overlap(top, bottom)


def find_overlaps(
    frames: Sequence[Frame],
    finder: Optional[OverlapFinder] = None,
) -> List[OverlapResult]:
    """
    Run the finder over every adjacent pair.

    Returns:
        ``len(frames) - 1`` results in capture order (empty for < 2 frames)
    """
    finder = finder or OverlapFinder()
    results: List[OverlapResult] = []

    for i in range(len(frames) - 1):
        result = finder.find_overlap(frames[i], frames[i + 1])
        results.append(result)
        logger.info(
            f"Overlap between frame {frames[i].index} and {frames[i + 1].index}: "
            f"{result.overlap_rows}px (similarity={result.similarity:.3f}, "
            f"{result.verdict.value})"
        )

    return results
