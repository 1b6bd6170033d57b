"""Pipeline Coordinator — runs the graph for one request inside its own workspace."""

from __future__ import annotations

import structlog

from scene_reel.errors import PipelineError
from scene_reel.graph.builder import build_graph
from scene_reel.graph.state import PipelineState
from scene_reel.models.media import PipelineResult
from scene_reel.models.request import GenerationRequest
from scene_reel.workspace import RequestWorkspace, new_request_id

logger = structlog.get_logger()


async def run_pipeline(
    request: GenerationRequest,
    graph=None,
    request_id: str | None = None,
) -> PipelineResult:
    """Execute the full pipeline for *request*.

    Every intermediate file is removed when this returns or raises; only the
    final artifact under ``videos/`` is kept.

    Raises:
        PipelineError: For whole-request failures (script generation, no
            surviving segments, concatenation).
    """
    request_id = request_id or new_request_id()
    graph = graph if graph is not None else build_graph()
    log = logger.bind(request_id=request_id)

    with RequestWorkspace(request_id) as work_dir:
        initial_state: PipelineState = {
            "request_id": request_id,
            "topic": request.topic,
            "category": request.category,
            "video_type": request.video_type,
            "scenes": list(request.scenes),
            "uploads": dict(request.uploads),
            "work_dir": str(work_dir),
            "visuals": None,
            "narration": None,
            "segments": None,
            "skipped_slots": None,
            "final_path": None,
            "stages": [],
        }

        log.info(
            "pipeline.started",
            topic=request.topic,
            video_type=request.video_type,
            scenes=len(request.scenes),
        )
        try:
            final_state = await graph.ainvoke(initial_state)
        except PipelineError as exc:
            log.error("pipeline.failed", error=exc.kind, detail=exc.detail)
            raise

    result = PipelineResult(
        request_id=request_id,
        final_path=final_state["final_path"],
        segment_count=len(final_state.get("segments") or []),
        skipped_slots=final_state.get("skipped_slots") or [],
        stages=final_state.get("stages") or [],
    )
    log.info(
        "pipeline.completed",
        final_path=result.final_path,
        segments=result.segment_count,
        skipped=result.skipped_slots,
    )
    return result
