"""
Stitch Pipeline Graph
=====================

LangGraph workflow for the finalize stage of a session.

LangGraph is used for CONTROL FLOW only. Every node is a pure function of
the frozen frame snapshot.

Graph Structure:
    START → find_overlaps → build_plan → composite → END

    find_overlaps: OverlapFinder over every adjacent pair
    build_plan:    per-frame row ranges from the overlaps
    composite:     Compositor renders the plan into one image

Design Philosophy:
    - Runs on an immutable tuple of frames (the Finishing snapshot)
    - No shared mutable state, safe to run on a worker thread
    - Errors propagate to the caller unchanged (StitchError family)
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypedDict

from langgraph.graph import StateGraph, END

from scrollstitch.errors import NoFramesError
from scrollstitch.models.frame import Frame
from scrollstitch.models.overlap import OverlapResult, StitchPlan
from scrollstitch.stitching.compositor import Compositor, build_plan
from scrollstitch.stitching.overlap import OverlapFinder, find_overlaps


logger = logging.getLogger(__name__)


class StitchGraphState(TypedDict):
    """
    State passed through the stitch graph.

    Attributes:
        frames: Frozen frame snapshot in capture order
        overlaps: Pairwise overlap results
        plan: Row ranges kept per frame
        image: Stitched output
    """
    frames: Tuple[Frame, ...]
    overlaps: Optional[List[OverlapResult]]
    plan: Optional[StitchPlan]
    image: Optional[Frame]


@dataclass(frozen=True)
class StitchOutcome:
    """Everything the finalize stage produced."""

    image: Frame
    plan: StitchPlan
    overlaps: Tuple[OverlapResult, ...]
    elapsed_ms: float

    @property
    def frame_count(self) -> int:
        return len(self.plan.entries)


class StitchPipeline:
    """
    LangGraph-based finalize pipeline.

    Deterministic: the same frames always produce the same plan and image.
    """

    def __init__(
        self,
        finder: Optional[OverlapFinder] = None,
        compositor: Optional[Compositor] = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            finder: Overlap finder (default configuration if None)
            compositor: Compositor (new instance if None)
        """
        self.finder = finder or OverlapFinder()
        self.compositor = compositor or Compositor()
        self._graph = self._build_graph()

    def _build_graph(self):
        """Build the LangGraph workflow."""
        workflow = StateGraph(StitchGraphState)

        workflow.add_node("find_overlaps", self._find_overlaps_node)
        workflow.add_node("build_plan", self._build_plan_node)
        workflow.add_node("composite", self._composite_node)

        workflow.set_entry_point("find_overlaps")
        workflow.add_edge("find_overlaps", "build_plan")
        workflow.add_edge("build_plan", "composite")
        workflow.add_edge("composite", END)

        return workflow.compile()

    def _find_overlaps_node(self, state: StitchGraphState) -> Dict[str, Any]:
        return {"overlaps": find_overlaps(state["frames"], self.finder)}

    def _build_plan_node(self, state: StitchGraphState) -> Dict[str, Any]:
        return {"plan": build_plan(state["frames"], state["overlaps"] or [])}

    def _composite_node(self, state: StitchGraphState) -> Dict[str, Any]:
        frames = state["frames"]
        if len(frames) == 1:
            return {"image": frames[0]}
        return {"image": self.compositor.render(frames, state["plan"])}

    def run(self, frames: Sequence[Frame]) -> StitchOutcome:
        """
        Stitch a frame snapshot.

        Args:
            frames: Frames in capture order

        Returns:
            StitchOutcome with image, plan and overlaps

        Raises:
            NoFramesError: If ``frames`` is empty
            DimensionMismatchError: If frame widths or formats differ
        """
        if not frames:
            raise NoFramesError()

        start = time.perf_counter()
        final = self._graph.invoke({
            "frames": tuple(frames),
            "overlaps": None,
            "plan": None,
            "image": None,
        })
        elapsed_ms = (time.perf_counter() - start) * 1000

        image = final["image"]
        logger.info(
            f"Stitched {len(frames)} frames into {image.width}x{image.height} "
            f"in {elapsed_ms:.1f}ms"
        )

        return StitchOutcome(
            image=image,
            plan=final["plan"],
            overlaps=tuple(final["overlaps"] or ()),
            elapsed_ms=elapsed_ms,
        )
