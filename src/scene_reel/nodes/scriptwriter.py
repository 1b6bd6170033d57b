"""Scriptwriter node — generates and normalizes per-segment narration."""

from __future__ import annotations

import json
import re
from pathlib import Path

import structlog
from langchain_openai import ChatOpenAI
from pydantic import ValidationError

from scene_reel.config import settings
from scene_reel.errors import ScriptGenerationError
from scene_reel.graph.state import STAGE_GENERATING_SCRIPT, PipelineState
from scene_reel.models.script import (
    FILLER_NARRATION,
    NarrationSet,
    SceneDescriptor,
    ScriptPayload,
)

logger = structlog.get_logger()

# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_PERSONAS = {
    "movie": ("You are an enthusiastic Movie Critic.", "passionate, dramatic, and opinionated"),
    "product": ("You are a persuasive Sales Copywriter.", "excited, convincing, and highlighting value"),
}
_DEFAULT_PERSONA = ("You are a professional video scriptwriter.", "engaging and clear")

_LENGTH_CONSTRAINTS = {
    "short": "Write about 2-3 sentences per item. Keep it fast.",
    "long": "Write a detailed paragraph (4-5 sentences) per item.",
}

# Details shorter than this count as "not provided".
_MIN_DETAILS_LEN = 5

SCRIPT_PROMPT_TEMPLATE = """\
{system_role}
Topic: "{topic}"
Tone: {tone}
Constraint: {length_constraint}

TASK:
Create a spoken script for a video.

STRICT RULES:
1. If the user provided details, you MUST say them.
2. If the user provided nothing, you MUST provide value.
3. Do not sound robotic.
4. "items" MUST contain exactly {scene_count} entries, one per item below, in order.

INPUT DATA:
{items_context}

RETURN ONLY JSON:
{{
    "intro": "A strong hook.",
    "items": [
        "Script for Item 1",
        "Script for Item 2"
    ],
    "outro": "A strong conclusion."
}}"""

_FENCE = re.compile(r"```(?:json|JSON)?")


def build_prompt(topic: str, category: str, video_type: str, scenes: list[SceneDescriptor]) -> str:
    """Build the script request from topic, persona, length mode and per-scene context."""
    system_role, tone = _PERSONAS.get(category, _DEFAULT_PERSONA)

    context_parts = []
    for i, scene in enumerate(scenes, 1):
        if len(scene.details) < _MIN_DETAILS_LEN:
            instruction = (
                "User provided NO details. You MUST fetch facts (Year, Cast, Specs) "
                "from your own knowledge."
            )
        else:
            instruction = (
                f"User provided: '{scene.details}'. "
                "YOU MUST WEAVE THESE EXACT DETAILS into the script."
            )
        context_parts.append(f"--- ITEM {i}: {scene.name} ---\n{instruction}")

    return SCRIPT_PROMPT_TEMPLATE.format(
        system_role=system_role,
        topic=topic,
        tone=tone,
        length_constraint=_LENGTH_CONSTRAINTS.get(video_type, _LENGTH_CONSTRAINTS["short"]),
        scene_count=len(scenes),
        items_context="\n\n".join(context_parts) or "(no items)",
    )


def normalize_script(raw: str, scene_count: int) -> NarrationSet:
    """Parse raw model output into a NarrationSet with exactly *scene_count* items or more.

    Code fences are stripped first. Object-shaped items are reduced to their
    spoken text. Short item lists are padded with a fixed filler; long ones are
    kept as-is (extra items are never rendered).

    Raises:
        ScriptGenerationError: If the output is not a JSON object of the expected shape.
    """
    clean = _FENCE.sub("", raw).strip()
    try:
        data = json.loads(clean)
    except json.JSONDecodeError as exc:
        raise ScriptGenerationError(f"json parse error: {exc}", raw_response=raw) from exc

    if not isinstance(data, dict):
        raise ScriptGenerationError("script output is not a JSON object", raw_response=raw)

    try:
        payload = ScriptPayload.model_validate(data)
    except ValidationError as exc:
        raise ScriptGenerationError(f"unexpected script shape: {exc}", raw_response=raw) from exc

    items = [
        item.strip() if isinstance(item, str) else item.spoken_text()
        for item in payload.items
    ]
    padded = max(0, scene_count - len(items))
    items.extend([FILLER_NARRATION] * padded)

    if padded:
        logger.warning("scriptwriter.items_padded", received=scene_count - padded, expected=scene_count)

    return NarrationSet(intro=payload.intro.strip(), items=items, outro=payload.outro.strip())


async def request_script(prompt: str) -> str:
    """Send *prompt* to the text-generation service and return its raw text."""
    llm = ChatOpenAI(
        model=settings.script_model,
        api_key=settings.groq_api_key or settings.openai_api_key,
        base_url=settings.script_base_url,
        temperature=settings.script_temperature,
        model_kwargs={"response_format": {"type": "json_object"}},
    )
    message = await llm.ainvoke([{"role": "user", "content": prompt}])
    return message.content if isinstance(message.content, str) else json.dumps(message.content)


def _export_script(narration: NarrationSet, scene_count: int, work_dir: str) -> None:
    lines = [f"[intro] {narration.intro}"]
    lines += [f"[scene_{i}] {text}" for i, text in enumerate(narration.items[:scene_count])]
    lines.append(f"[outro] {narration.outro}")
    Path(work_dir, "script.txt").write_text("\n".join(lines) + "\n", encoding="utf-8")


# ---------------------------------------------------------------------------
# Node implementation
# ---------------------------------------------------------------------------


async def generate_script(state: PipelineState) -> dict:
    """Generate narration for intro, every scene and outro.

    Raises:
        ScriptGenerationError: When the service fails or its output cannot be parsed.
            This aborts the request.
    """
    scenes = state["scenes"]
    logger.info(
        "scriptwriter.start",
        request_id=state["request_id"],
        topic=state["topic"],
        category=state["category"],
        video_type=state["video_type"],
        scene_count=len(scenes),
    )

    prompt = build_prompt(state["topic"], state["category"], state["video_type"], scenes)
    try:
        raw = await request_script(prompt)
    except ScriptGenerationError:
        raise
    except Exception as exc:
        logger.exception("scriptwriter.request_failed", request_id=state["request_id"])
        raise ScriptGenerationError(f"text generation failed: {exc}") from exc

    narration = normalize_script(raw, len(scenes))
    _export_script(narration, len(scenes), state["work_dir"])

    logger.info(
        "scriptwriter.done",
        request_id=state["request_id"],
        items=len(narration.items),
        intro_len=len(narration.intro),
        outro_len=len(narration.outro),
    )
    return {"narration": narration, "stages": [STAGE_GENERATING_SCRIPT]}
