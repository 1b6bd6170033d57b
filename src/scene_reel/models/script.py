"""Pydantic models for scene input and narration scripts."""

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

VideoType = Literal["short", "long"]

# Appended when the model returns fewer items than there are scenes.
FILLER_NARRATION = "Here is another great pick worth your attention."

# Keys inspected, in order, when an item arrives as an object instead of a string.
_SPOKEN_KEYS = ("text", "script", "narration", "spoken", "details")
_TITLE_KEYS = ("title", "name")


class SceneDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    details: str = ""


class RichNarrationItem(BaseModel):
    """Object-shaped script item, e.g. ``{"title": ..., "text": ...}``."""

    model_config = ConfigDict(extra="allow")

    def spoken_text(self) -> str:
        fields = self.model_dump()
        for key in (*_SPOKEN_KEYS, *_TITLE_KEYS):
            value = fields.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return ""


NarrationItem = Union[str, RichNarrationItem]


class ScriptPayload(BaseModel):
    """Raw structured output from the text-generation service."""

    intro: str = ""
    items: list[NarrationItem] = Field(default_factory=list)
    outro: str = ""

    @field_validator("intro", "outro", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        if value is None:
            return ""
        if isinstance(value, dict):
            return RichNarrationItem(**value).spoken_text()
        return str(value)

    @field_validator("items", mode="before")
    @classmethod
    def _coerce_items(cls, value):
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("items must be a list")
        return ["" if v is None else str(v) if isinstance(v, (int, float)) else v for v in value]


class NarrationSet(BaseModel):
    """Normalized narration: one plain string per slot."""

    intro: str
    items: list[str]
    outro: str

    def for_scene(self, index: int) -> str:
        if index < len(self.items):
            return self.items[index]
        return FILLER_NARRATION
