"""Segment Renderer node — narration audio + one visual → one normalized clip per slot."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from scene_reel.config import resolution_for, settings
from scene_reel.errors import SegmentRenderError
from scene_reel.graph.state import STAGE_RENDERING, PipelineState
from scene_reel.models.media import MediaSlot, RenderedSegment, VisualSource, build_slots
from scene_reel.models.script import NarrationSet
from scene_reel.tools.ffmpeg_tools import mux_segment
from scene_reel.tools.speech import ChunkRequester, audio_duration, synthesize_narration

logger = structlog.get_logger()


async def render_segment(
    slot: MediaSlot,
    text: str,
    visual: VisualSource,
    work_dir: Path,
    video_type: str,
    request_chunk: ChunkRequester | None = None,
) -> RenderedSegment:
    """Render one slot: synthesize its narration, then loop the visual under it.

    The temporary audio track and the consumed visual are always deleted.

    Raises:
        SegmentRenderError: If any step fails. Only this slot is affected.
    """
    audio_path = work_dir / f"audio_{slot.key}.mp3"
    output_path = work_dir / f"seg_{slot.key}.mp4"
    width, height = resolution_for(video_type)

    try:
        await synthesize_narration(text, str(audio_path), request_chunk=request_chunk)
        duration = await asyncio.to_thread(audio_duration, str(audio_path))
        await asyncio.to_thread(
            mux_segment,
            visual.file_path,
            visual.kind,
            str(audio_path),
            str(output_path),
            width,
            height,
            duration,
        )
        if not output_path.is_file() or output_path.stat().st_size == 0:
            raise SegmentRenderError(slot.key, "ffmpeg produced no output")
    except SegmentRenderError:
        output_path.unlink(missing_ok=True)
        raise
    except Exception as exc:
        output_path.unlink(missing_ok=True)
        raise SegmentRenderError(slot.key, str(exc)) from exc
    finally:
        audio_path.unlink(missing_ok=True)
        Path(visual.file_path).unlink(missing_ok=True)

    logger.info(
        "segment_renderer.segment_done",
        slot=slot.key,
        kind=visual.kind,
        duration=round(duration, 3),
        output_path=str(output_path),
    )
    return RenderedSegment(
        slot_key=slot.key,
        slot_index=slot.index,
        file_path=str(output_path),
        duration=duration,
    )


def narration_for(slot: MediaSlot, narration: NarrationSet) -> str:
    if slot.key == "intro":
        return narration.intro
    if slot.key == "outro":
        return narration.outro
    return narration.for_scene(slot.index - 1)


async def render_segments(state: PipelineState) -> dict:
    """Render every slot with bounded parallelism; failed slots are recorded and skipped."""
    work_dir = Path(state["work_dir"])
    visuals = state.get("visuals") or {}
    narration = state["narration"]
    slots = build_slots(state["topic"], state["scenes"], allow_lookup=False)

    logger.info(
        "segment_renderer.start",
        request_id=state["request_id"],
        slots=len(slots),
        concurrency=settings.render_concurrency,
    )

    semaphore = asyncio.Semaphore(max(1, settings.render_concurrency))

    async def _render(slot: MediaSlot) -> RenderedSegment | None:
        visual = visuals.get(slot.key)
        if visual is None:
            logger.warning("segment_renderer.no_visual", slot=slot.key)
            return None
        async with semaphore:
            try:
                return await render_segment(
                    slot, narration_for(slot, narration), visual, work_dir, state["video_type"]
                )
            except SegmentRenderError as exc:
                logger.warning("segment_renderer.segment_failed", slot=slot.key, error=exc.detail)
                return None

    results = await asyncio.gather(*[_render(s) for s in slots])

    segments = sorted((r for r in results if r is not None), key=lambda seg: seg.slot_index)
    skipped = [slot.key for slot, r in zip(slots, results) if r is None]

    logger.info(
        "segment_renderer.done",
        request_id=state["request_id"],
        rendered=len(segments),
        skipped=skipped,
    )
    return {"segments": segments, "skipped_slots": skipped, "stages": [STAGE_RENDERING]}
