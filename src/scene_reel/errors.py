"""Pipeline error taxonomy.

Fatal errors (script generation, no segments, concatenation) abort a request.
Segment-scoped errors are absorbed by the coordinator and only decide which
slots appear in the final video.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error raised by the assembly pipeline."""

    kind = "pipeline_error"
    fatal = True

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.detail}


class ScriptGenerationError(PipelineError):
    """The text-generation service failed or returned unparseable output."""

    kind = "script_generation_failed"

    def __init__(self, detail: str, raw_response: str | None = None) -> None:
        super().__init__(detail)
        self.raw_response = raw_response

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.raw_response is not None:
            payload["raw_response"] = self.raw_response
        return payload


class MediaResolutionError(PipelineError):
    """Even the placeholder fallback could not produce a visual for a slot."""

    kind = "media_resolution_failed"

    def __init__(self, slot: str, detail: str) -> None:
        super().__init__(f"{slot}: {detail}")
        self.slot = slot


class SpeechSynthesisError(PipelineError):
    """Every chunk request failed, leaving an empty audio track."""

    kind = "speech_synthesis_failed"
    fatal = False


class SegmentRenderError(PipelineError):
    """One segment could not be rendered; the slot is skipped."""

    kind = "segment_render_failed"
    fatal = False

    def __init__(self, slot: str, detail: str) -> None:
        super().__init__(f"{slot}: {detail}")
        self.slot = slot


class NoSegmentsError(PipelineError):
    """No segment survived rendering, so there is nothing to stitch."""

    kind = "no_segments"


class ConcatenationError(PipelineError):
    """Stream-copy concatenation rejected the rendered segments."""

    kind = "concatenation_failed"

    def __init__(self, detail: str, stderr: str = "") -> None:
        super().__init__(detail)
        self.stderr = stderr
