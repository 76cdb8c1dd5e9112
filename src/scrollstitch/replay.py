"""
Scroll Capture Replay Tool
==========================

Offline debugging for a recorded scroll session.

This tool:
    1. Loads capture_XXX.png files from a directory (filename order)
    2. Runs the overlap search over every adjacent pair
    3. Prints the stitch plan (kept rows, overlap, similarity, verdict)
    4. Optionally writes the stitched image, pair images and a seam image

Usage:
    scrollstitch-replay /path/to/scroll_debug
    scrollstitch-replay /path/to/scroll_debug result.png --pairs
    scrollstitch-replay /path/to/scroll_debug result.png --seams seams.png
    scrollstitch-replay /path/to/scroll_debug pair.png --pair 3
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from scrollstitch.capture.image_codec import ImageDecodeError, load_frames, save_png
from scrollstitch.config import Settings, load_config, setup_logging
from scrollstitch.errors import StitchError
from scrollstitch.models.frame import Frame
from scrollstitch.models.overlap import OverlapResult, StitchPlan
from scrollstitch.observability import SeamVisualizer
from scrollstitch.stitching import Compositor, OverlapFinder, StitchPipeline


logger = logging.getLogger(__name__)


def format_plan(
    frames: Sequence[Frame],
    plan: StitchPlan,
    overlaps: Sequence[OverlapResult],
) -> str:
    """Render the stitch plan as a fixed-width table."""
    lines = [
        "Image | Height | Use Y range  | Overlap | Similarity",
        "------|--------|--------------|---------|----------",
    ]

    for i, (frame, entry) in enumerate(zip(frames, plan.entries)):
        # Overlap shown against the next frame, as in the plan itself.
        result = overlaps[i] if i < len(overlaps) else None
        rows = result.overlap_rows if result else 0
        similarity = result.similarity * 100 if result else 0.0

        status = ""
        if entry.is_empty:
            status = "SKIP (duplicate)"
        elif result is not None and result.verdict.is_duplicate:
            status = result.verdict.value

        lines.append(
            f"{i + 1:5d} | {frame.height:6d} | "
            f"{entry.use_row_start:4d} - {entry.use_row_end:4d} | "
            f"{rows:7d} | {similarity:5.1f}% {status}".rstrip()
        )

    lines.append("")
    lines.append(f"Total output height: {plan.output_height} pixels")
    return "\n".join(lines)


def _pair_path(output: Path, i: int) -> Path:
    return output.with_name(f"{output.stem}_pair_{i + 1:03d}_{i + 2:03d}.png")


def replay_pair(frames: Sequence[Frame], index: int, settings: Settings, output: Optional[Path]) -> int:
    """Analyze and optionally stitch frames ``index`` and ``index + 1``."""
    if index < 0 or index + 1 >= len(frames):
        logger.error(f"--pair {index} out of range for {len(frames)} frames")
        return 1

    top, bottom = frames[index], frames[index + 1]
    try:
        result = OverlapFinder(settings.overlap).find_overlap(top, bottom)
    except StitchError as e:
        logger.error(f"Failed to analyze pair {index + 1} / {index + 2}: {e}")
        return 1

    print(f"Pair {index + 1} / {index + 2}")
    print(f"  overlap:           {result.overlap_rows}px")
    print(f"  similarity:        {result.similarity * 100:.1f}%")
    print(f"  coarse similarity: {result.coarse_similarity * 100:.1f}%")
    print(f"  verdict:           {result.verdict.value}")

    if output is not None:
        image = Compositor().stitch_pair(top, bottom, result.overlap_rows)
        save_png(image, output)
    return 0


def replay(
    directory: Path,
    output: Optional[Path] = None,
    settings: Optional[Settings] = None,
    seams_path: Optional[Path] = None,
    pair: Optional[int] = None,
    write_pairs: bool = False,
) -> int:
    """
    Replay a recorded session.

    Returns:
        Process exit code
    """
    settings = settings or Settings()

    print("=== Scroll Capture Replay ===\n")
    print(f"Loading images from: {directory}\n")

    try:
        frames = load_frames(directory)
    except ImageDecodeError as e:
        logger.error(str(e))
        return 1

    if not frames:
        logger.error("No images found")
        return 1

    if pair is not None:
        return replay_pair(frames, pair, settings, output)

    print("\n=== Analyzing overlaps ===\n")

    pipeline = StitchPipeline(finder=OverlapFinder(settings.overlap))
    try:
        outcome = pipeline.run(frames)
    except StitchError as e:
        logger.error(f"Failed to stitch images: {e}")
        return 1

    print(format_plan(frames, outcome.plan, outcome.overlaps))

    if output is not None:
        if write_pairs:
            print("\n=== Generating pair-wise stitched images ===\n")
            compositor = Compositor()
            for i, result in enumerate(outcome.overlaps):
                image = compositor.stitch_pair(frames[i], frames[i + 1], result.overlap_rows)
                save_png(image, _pair_path(output, i))

        print("\n=== Generating final stitched image ===\n")
        save_png(outcome.image, output)

    if seams_path is not None:
        seam_config = settings.observability.model_copy(update={"enable_seams": True})
        artifacts = SeamVisualizer(seam_config).generate(
            outcome.image, outcome.plan, outcome.overlaps
        )
        save_png(artifacts.annotated, seams_path)
        for seam in artifacts.seams:
            print(f"  seam at y={seam.y:6d}  frame {seam.frame_index + 1}")

    print("\nDone!")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scrollstitch-replay",
        description="Analyze recorded scroll captures and print the stitching plan",
    )
    parser.add_argument(
        "directory",
        type=Path,
        help="Directory containing capture_XXX.png files",
    )
    parser.add_argument(
        "output",
        type=Path,
        nargs="?",
        default=None,
        help="Optional: save the stitched result to this file",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config.yaml (default: search the usual locations)",
    )
    parser.add_argument(
        "--seams",
        type=Path,
        default=None,
        metavar="PATH",
        help="Save a seam-annotated copy of the result to PATH",
    )
    parser.add_argument(
        "--pair",
        type=int,
        default=None,
        metavar="I",
        help="Only analyze frames I and I+1 (0-based)",
    )
    parser.add_argument(
        "--pairs",
        action="store_true",
        help="Also write every adjacent pair next to OUTPUT",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_config(args.config)
    setup_logging(settings)

    return replay(
        directory=args.directory,
        output=args.output,
        settings=settings,
        seams_path=args.seams,
        pair=args.pair,
        write_pairs=args.pairs,
    )


if __name__ == "__main__":
    sys.exit(main())
