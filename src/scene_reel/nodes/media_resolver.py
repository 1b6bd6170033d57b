"""Media Resolver node — one visual source per slot via upload → lookup → placeholder."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from scene_reel.config import resolution_for, settings
from scene_reel.errors import MediaResolutionError
from scene_reel.graph.state import STAGE_RESOLVING_MEDIA, PipelineState
from scene_reel.models.media import (
    SCENE_LABEL,
    MediaSlot,
    UploadedMedia,
    VisualSource,
    build_slots,
    kind_for_extension,
)
from scene_reel.tools.placeholder import make_placeholder
from scene_reel.tools.tmdb import download_poster

logger = structlog.get_logger()

_DEFAULT_UPLOAD_EXT = ".jpg"


def _save_upload(slot: MediaSlot, upload: UploadedMedia, work_dir: Path) -> VisualSource:
    """Persist an uploaded file verbatim, keeping its extension."""
    ext = Path(upload.filename or "").suffix or _DEFAULT_UPLOAD_EXT
    path = work_dir / f"{slot.form_key}{ext}"
    path.write_bytes(upload.content)
    logger.info("media_resolver.upload_saved", slot=slot.key, path=str(path))
    return VisualSource(file_path=str(path), kind=kind_for_extension(ext), origin="upload")


async def _lookup(slot: MediaSlot, work_dir: Path) -> VisualSource | None:
    """Try the external media search; any failure means fall through."""
    path = work_dir / f"{slot.form_key}.jpg"
    try:
        result = await download_poster(slot.fallback_label, str(path))
    except Exception as exc:
        logger.warning("media_resolver.lookup_failed", slot=slot.key, error=str(exc))
        path.unlink(missing_ok=True)
        return None
    if result is None:
        return None
    logger.info("media_resolver.lookup_hit", slot=slot.key, query=slot.fallback_label)
    return VisualSource(file_path=result, kind="image", origin="lookup")


async def resolve_slot(
    slot: MediaSlot,
    upload: UploadedMedia | None,
    work_dir: Path,
    video_type: str,
) -> VisualSource:
    """Resolve one slot to a visual source.

    Raises:
        MediaResolutionError: Only if the placeholder could not be produced either.
    """
    if upload is not None:
        try:
            return _save_upload(slot, upload, work_dir)
        except (OSError, ValueError) as exc:
            logger.warning(
                "media_resolver.upload_failed",
                slot=slot.key,
                filename=upload.filename,
                error=str(exc),
            )

    if slot.allow_lookup and slot.fallback_label.strip():
        found = await _lookup(slot, work_dir)
        if found is not None:
            return found

    width, height = resolution_for(video_type)
    path = work_dir / f"{slot.form_key}.png"
    text = slot.fallback_label.strip() or SCENE_LABEL
    try:
        await make_placeholder(text, width, height, str(path))
    except Exception as exc:
        raise MediaResolutionError(slot.key, f"placeholder generation failed: {exc}") from exc
    return VisualSource(file_path=str(path), kind="image", origin="placeholder")


async def resolve_media(state: PipelineState) -> dict:
    """Resolve every slot concurrently. A slot that cannot be resolved is left out."""
    work_dir = Path(state["work_dir"])
    allow_lookup = state.get("category", "") in settings.lookup_categories
    slots = build_slots(state["topic"], state["scenes"], allow_lookup)
    uploads = state.get("uploads") or {}

    logger.info(
        "media_resolver.start",
        request_id=state["request_id"],
        slots=len(slots),
        uploads=sorted(uploads),
        allow_lookup=allow_lookup,
    )

    semaphore = asyncio.Semaphore(max(1, settings.media_concurrency))

    async def _resolve(slot: MediaSlot) -> tuple[str, VisualSource | None]:
        async with semaphore:
            try:
                source = await resolve_slot(
                    slot, uploads.get(slot.form_key), work_dir, state["video_type"]
                )
            except MediaResolutionError:
                logger.exception("media_resolver.slot_failed", slot=slot.key)
                return slot.key, None
            return slot.key, source

    results = await asyncio.gather(*[_resolve(s) for s in slots])
    visuals = {key: source for key, source in results if source is not None}

    logger.info(
        "media_resolver.done",
        request_id=state["request_id"],
        resolved=len(visuals),
        origins={key: v.origin for key, v in visuals.items()},
    )
    return {"visuals": visuals, "stages": [STAGE_RESOLVING_MEDIA]}
