"""
scrollstitch HTTP Service
=========================

FastAPI entry point for offline stitching of uploaded frame sequences.

Uploads are decoded into Frames in upload order (= capture order), then
run through the same OverlapFinder / Compositor pipeline a live session
uses at finish time.

Endpoints:
    GET  /          - Service information
    GET  /health    - Liveness probe
    GET  /metrics   - Request and stitch counters
    POST /overlap   - Overlap between two uploaded frames
    POST /plan      - Stitch plan for an uploaded sequence
    POST /stitch    - Stitched PNG for an uploaded sequence
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response

from scrollstitch import __version__
from scrollstitch.capture.image_codec import ImageDecodeError, decode_image, encode_png
from scrollstitch.config import settings, setup_logging
from scrollstitch.errors import StitchError
from scrollstitch.models.frame import Frame
from scrollstitch.observability import SeamVisualizer
from scrollstitch.stitching import OverlapFinder, StitchPipeline


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_finder: Optional[OverlapFinder] = None
_pipeline: Optional[StitchPipeline] = None
_seams: Optional[SeamVisualizer] = None
_startup_time: float = 0.0

# Counters
_request_count: int = 0
_stitch_count: int = 0
_error_count: int = 0
_last_stitch_ms: float = 0.0


def get_finder() -> OverlapFinder:
    global _finder
    if _finder is None:
        _finder = OverlapFinder(settings.overlap)
    return _finder


def get_pipeline() -> StitchPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = StitchPipeline(finder=get_finder())
    return _pipeline


def get_seam_visualizer() -> SeamVisualizer:
    global _seams
    if _seams is None:
        _seams = SeamVisualizer(settings.observability)
    return _seams


# =============================================================================
# Helpers
# =============================================================================

async def _read_frames(files: List[UploadFile]) -> List[Frame]:
    """Decode uploads in order; any corrupt upload rejects the request."""
    global _request_count, _error_count
    _request_count += 1

    if not files:
        _error_count += 1
        raise HTTPException(status_code=400, detail="No frames uploaded")

    frames = []
    for i, upload in enumerate(files):
        data = await upload.read()
        try:
            frames.append(decode_image(data, index=i, label=upload.filename or f"frame {i}"))
        except ImageDecodeError as e:
            _error_count += 1
            raise HTTPException(status_code=400, detail=str(e)) from e
    return frames


def _stitch_error(e: StitchError) -> HTTPException:
    global _error_count
    _error_count += 1
    logger.warning(f"Stitch request rejected: {e}")
    return HTTPException(status_code=422, detail=str(e))


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    global _startup_time

    _startup_time = time.time()
    logger.info(f"Starting scrollstitch {__version__}")

    get_pipeline()
    get_seam_visualizer()

    logger.info(
        f"Overlap search: threshold={settings.overlap.match_threshold}, "
        f"min_overlap={settings.overlap.min_overlap}, "
        f"small_overlap_duplicate={settings.overlap.treat_small_overlap_as_duplicate}"
    )

    yield

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="scrollstitch",
    description="Scrolling-screenshot overlap detection and stitching",
    version=__version__,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "scrollstitch",
        "version": __version__,
        "status": "running",
        "seams_enabled": settings.observability.enable_seams,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness probe. Always 200 while the process is up."""
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Counters for observability."""
    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "requests": _request_count,
        "stitches": _stitch_count,
        "errors": _error_count,
        "last_stitch_ms": round(_last_stitch_ms, 1),
    })


@app.post("/overlap")
async def find_overlap(
    top: UploadFile = File(...),
    bottom: UploadFile = File(...),
) -> JSONResponse:
    """Overlap between two adjacent frames."""
    frames = await _read_frames([top, bottom])

    try:
        result = await asyncio.to_thread(get_finder().find_overlap, frames[0], frames[1])
    except StitchError as e:
        raise _stitch_error(e) from e

    return JSONResponse(result.model_dump(mode="json"))


@app.post("/plan")
async def plan(files: List[UploadFile] = File(...)) -> JSONResponse:
    """Pairwise overlaps and the stitch plan for an ordered sequence."""
    frames = await _read_frames(files)

    try:
        outcome = await asyncio.to_thread(get_pipeline().run, frames)
    except StitchError as e:
        raise _stitch_error(e) from e

    return JSONResponse({
        "frame_count": len(frames),
        "output_width": outcome.plan.width,
        "output_height": outcome.plan.output_height,
        "overlaps": [result.model_dump(mode="json") for result in outcome.overlaps],
        "plan": outcome.plan.model_dump(mode="json"),
        "elapsed_ms": round(outcome.elapsed_ms, 1),
    })


@app.post("/stitch")
async def stitch(files: List[UploadFile] = File(...)) -> Response:
    """Stitched PNG for an ordered sequence (seam-annotated if enabled)."""
    global _stitch_count, _last_stitch_ms

    frames = await _read_frames(files)

    try:
        outcome = await asyncio.to_thread(get_pipeline().run, frames)
    except StitchError as e:
        raise _stitch_error(e) from e

    image = outcome.image
    artifacts = get_seam_visualizer().generate(image, outcome.plan, outcome.overlaps)
    if artifacts.annotated is not None:
        image = artifacts.annotated

    _stitch_count += 1
    _last_stitch_ms = outcome.elapsed_ms

    return Response(
        content=encode_png(image),
        media_type="image/png",
        headers={
            "X-Frame-Count": str(len(frames)),
            "X-Output-Height": str(image.height),
        },
    )


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    setup_logging(settings)

    # Cloud Run uses PORT env var
    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "scrollstitch.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
