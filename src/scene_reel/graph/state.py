"""Central pipeline state definition for the LangGraph workflow."""

from __future__ import annotations

import operator
from typing import Annotated, Optional

from typing_extensions import TypedDict

from scene_reel.models.media import RenderedSegment, UploadedMedia, VisualSource
from scene_reel.models.script import NarrationSet, SceneDescriptor

# State-machine stages, appended to ``stages`` as each node runs.
STAGE_RESOLVING_MEDIA = "resolving_media"
STAGE_GENERATING_SCRIPT = "generating_script"
STAGE_RENDERING = "rendering"
STAGE_STITCHING = "stitching"
STAGE_DONE = "done"


class PipelineState(TypedDict):
    """State shared across all LangGraph nodes for one request."""

    # Request inputs (set once at start)
    request_id: str
    topic: str
    category: str
    video_type: str  # "short" | "long"
    scenes: list[SceneDescriptor]
    uploads: dict[str, UploadedMedia]  # form key → uploaded file
    work_dir: str

    # Node outputs
    visuals: Optional[dict[str, VisualSource]]  # slot key → resolved visual
    narration: Optional[NarrationSet]
    segments: Optional[list[RenderedSegment]]
    skipped_slots: Optional[list[str]]
    final_path: Optional[str]

    # Written by the parallel branches too, so it needs a reducer
    stages: Annotated[list[str], operator.add]
