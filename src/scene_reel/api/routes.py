"""FastAPI route handlers for video generation."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from scene_reel.api.dependencies import get_compiled_graph
from scene_reel.api.schemas import ErrorResponse, GenerateResponse
from scene_reel.config import settings
from scene_reel.errors import PipelineError
from scene_reel.graph.runner import run_pipeline
from scene_reel.models.media import UploadedMedia
from scene_reel.models.request import GenerationRequest, parse_scenes

logger = structlog.get_logger()

router = APIRouter()

_MEDIA_PREFIX = "media_"


def _public_video_url(request: Request, request_id: str) -> str:
    """Absolute URL of a final artifact, honouring a TLS-terminating proxy."""
    scheme = request.url.scheme
    if request.headers.get("x-forwarded-proto") == "https":
        scheme = "https"
    host = request.headers.get("host") or request.url.netloc
    return f"{scheme}://{host}/videos/{request_id}.mp4"


def _too_large(key: str) -> HTTPException:
    return HTTPException(status_code=413, detail=f"Upload {key} exceeds {settings.max_upload_mb}MB")


async def _collect_uploads(form) -> dict[str, UploadedMedia]:
    """Read every ``media_*`` file field. Empty file inputs count as absent."""
    limit = settings.max_upload_mb * 1024 * 1024
    uploads: dict[str, UploadedMedia] = {}
    for key in form.keys():
        if not key.startswith(_MEDIA_PREFIX):
            continue
        value = form[key]
        if not hasattr(value, "read"):
            continue
        size = getattr(value, "size", None)
        if size is not None and size > limit:
            raise _too_large(key)
        content = await value.read()
        if not content:
            continue
        if len(content) > limit:
            raise _too_large(key)
        uploads[key] = UploadedMedia(filename=value.filename or "", content=content)
    return uploads


@router.post(
    "/generate-multi-scene",
    response_model=GenerateResponse,
    responses={400: {"description": "Invalid request"}, 500: {"model": ErrorResponse}},
)
async def generate_multi_scene(request: Request):
    """Generate one narrated video from a topic and a list of scenes."""
    form = await request.form()

    topic = str(form.get("topic") or "").strip()
    category = str(form.get("category") or "").strip()
    video_type = str(form.get("type") or "short").strip() or "short"

    if not topic:
        raise HTTPException(status_code=400, detail="topic is required")

    try:
        scenes = parse_scenes(str(form.get("scenes") or "[]"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    uploads = await _collect_uploads(form)

    try:
        gen_request = GenerationRequest(
            topic=topic,
            category=category,
            video_type=video_type,
            scenes=scenes,
            uploads=uploads,
        )
    except ValidationError:
        raise HTTPException(status_code=400, detail=f"Unknown type: {video_type!r}")

    logger.info(
        "generate.request",
        topic=topic,
        category=category,
        video_type=video_type,
        scenes=len(scenes),
        uploads=sorted(uploads),
    )

    try:
        result = await run_pipeline(gen_request, graph=get_compiled_graph())
    except PipelineError as exc:
        logger.warning("generate.failed", error=exc.kind, detail=exc.detail)
        body = ErrorResponse(**exc.to_dict())
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))
    except Exception as exc:
        logger.exception("generate.failed", topic=topic)
        body = ErrorResponse(error="internal_error", detail=str(exc))
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))

    return GenerateResponse(
        video_url=_public_video_url(request, result.request_id),
        segments=result.segment_count,
        skipped=result.skipped_slots,
    )
