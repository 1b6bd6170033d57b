"""Stitcher node — stream-copy concatenation of surviving segments in slot order."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import structlog

from scene_reel.config import get_videos_dir
from scene_reel.errors import ConcatenationError, NoSegmentsError
from scene_reel.graph.state import STAGE_DONE, STAGE_STITCHING, PipelineState
from scene_reel.models.media import RenderedSegment
from scene_reel.tools.ffmpeg_tools import FFmpegError, concat_segments

logger = structlog.get_logger()


def stitch(segments: list[RenderedSegment], work_dir: Path, final_path: Path) -> str:
    """Concatenate *segments* (ordered by slot index) into *final_path*.

    The output is built inside *work_dir* and moved over *final_path* only on
    success, replacing any stale artifact.

    Raises:
        NoSegmentsError: If *segments* is empty.
        ConcatenationError: If ffmpeg rejects the inputs.
    """
    if not segments:
        raise NoSegmentsError("every segment failed to render; nothing to stitch")

    ordered = sorted(segments, key=lambda seg: seg.slot_index)
    manifest = work_dir / "concat.txt"
    staging = work_dir / "stitched.mp4"

    try:
        concat_segments([seg.file_path for seg in ordered], str(manifest), str(staging))
    except FFmpegError as exc:
        staging.unlink(missing_ok=True)
        raise ConcatenationError(str(exc), stderr=exc.stderr) from exc

    final_path.parent.mkdir(parents=True, exist_ok=True)
    final_path.unlink(missing_ok=True)
    os.replace(staging, final_path)

    logger.info(
        "stitcher.done",
        final_path=str(final_path),
        order=[seg.slot_key for seg in ordered],
    )
    return str(final_path)


async def stitch_segments(state: PipelineState) -> dict:
    """Barrier node: runs after every render attempt has settled."""
    segments = state.get("segments") or []
    final_path = get_videos_dir() / f"{state['request_id']}.mp4"

    logger.info("stitcher.start", request_id=state["request_id"], segments=len(segments))

    result = await asyncio.to_thread(stitch, segments, Path(state["work_dir"]), final_path)
    for seg in segments:
        Path(seg.file_path).unlink(missing_ok=True)

    return {"final_path": result, "stages": [STAGE_STITCHING, STAGE_DONE]}
