"""Pydantic model for one generation request, independent of the HTTP layer."""

import json

from pydantic import BaseModel, Field, ValidationError

from scene_reel.models.media import UploadedMedia
from scene_reel.models.script import SceneDescriptor, VideoType


class GenerationRequest(BaseModel):
    topic: str
    category: str = ""
    video_type: VideoType = "short"
    scenes: list[SceneDescriptor] = Field(default_factory=list)
    uploads: dict[str, UploadedMedia] = Field(default_factory=dict)


def parse_scenes(raw: str) -> list[SceneDescriptor]:
    """Decode the JSON-encoded scene list sent by the caller.

    Raises:
        ValueError: If *raw* is not a JSON array of scene objects.
    """
    try:
        data = json.loads(raw or "[]")
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid scenes JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ValueError("Invalid scenes JSON: expected an array")
    try:
        return [SceneDescriptor.model_validate(item) for item in data]
    except ValidationError as exc:
        raise ValueError(f"Invalid scenes JSON: {exc}") from exc
