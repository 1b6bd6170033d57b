"""Pydantic models for media slots and pipeline outputs."""

from typing import Literal

from pydantic import BaseModel

VisualKind = Literal["image", "video"]

VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".mkv", ".webm", ".m4v"}

OUTRO_LABEL = "Thanks for watching!"
SCENE_LABEL = "Scene"


class MediaSlot(BaseModel):
    """A position in the final video: intro, outro or one scene."""

    key: str  # "intro" | "outro" | "scene_<i>"
    index: int  # position in the stitched sequence
    form_key: str  # multipart field carrying an optional upload
    fallback_label: str
    allow_lookup: bool = False


class VisualSource(BaseModel):
    file_path: str
    kind: VisualKind = "image"
    origin: str = "placeholder"  # "upload" | "lookup" | "placeholder"


class UploadedMedia(BaseModel):
    filename: str
    content: bytes


class RenderedSegment(BaseModel):
    slot_key: str
    slot_index: int
    file_path: str
    duration: float = 0.0


class PipelineResult(BaseModel):
    request_id: str
    final_path: str
    segment_count: int
    skipped_slots: list[str] = []
    stages: list[str] = []


def kind_for_extension(ext: str) -> VisualKind:
    return "video" if ext.lower() in VIDEO_EXTENSIONS else "image"


def build_slots(topic: str, scenes: list, allow_lookup: bool) -> list[MediaSlot]:
    """Return the ordered slot sequence: intro, each scene, outro."""
    slots = [MediaSlot(key="intro", index=0, form_key="media_intro", fallback_label=topic)]
    for i, scene in enumerate(scenes):
        slots.append(
            MediaSlot(
                key=f"scene_{i}",
                index=i + 1,
                form_key=f"media_{i}",
                fallback_label=scene.name,
                allow_lookup=allow_lookup,
            )
        )
    slots.append(
        MediaSlot(
            key="outro",
            index=len(scenes) + 1,
            form_key="media_outro",
            fallback_label=OUTRO_LABEL,
        )
    )
    return slots
