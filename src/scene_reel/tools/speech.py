"""Chunked speech synthesis — split narration under provider limits and join MP3 output.

MP3 frames are self-delimiting, so appending the raw bytes of consecutive
responses yields one playable stream without re-encoding.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Awaitable, Callable

import httpx
import structlog
from elevenlabs.core.api_error import ApiError
from moviepy import AudioFileClip
from openai import OpenAIError

from scene_reel.config import settings
from scene_reel.errors import SpeechSynthesisError
from scene_reel.tools.elevenlabs import ELEVENLABS_MAX_CHARS, elevenlabs_tts_chunk
from scene_reel.tools.openai_speech import OPENAI_TTS_MAX_CHARS, openai_tts_chunk

logger = structlog.get_logger()

ChunkRequester = Callable[[str], Awaitable[bytes]]

_PROVIDERS: dict[str, tuple[ChunkRequester, int]] = {
    "openai": (openai_tts_chunk, OPENAI_TTS_MAX_CHARS),
    "elevenlabs": (elevenlabs_tts_chunk, ELEVENLABS_MAX_CHARS),
}

# Failures of a single chunk request that are skipped rather than raised.
_CHUNK_ERRORS = (OpenAIError, ApiError, httpx.HTTPError)

_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+|\s*\n\s*")


def _provider() -> tuple[ChunkRequester, int]:
    try:
        return _PROVIDERS[settings.tts_provider]
    except KeyError:
        raise ValueError(f"Unknown tts_provider: {settings.tts_provider!r}") from None


def chunk_limit() -> int:
    """Effective chunk size: the configured size clamped to the provider's limit."""
    _, provider_max = _provider()
    return max(1, min(settings.tts_chunk_chars, provider_max))


def split_sentences(text: str) -> list[str]:
    """Split *text* on terminal punctuation (and line breaks) into sentence-like units."""
    return [unit.strip() for unit in _SENTENCE_BREAK.split(text) if unit and unit.strip()]


def _pack_words(unit: str, limit: int) -> list[str]:
    """Greedily pack whitespace-delimited words into chunks of at most *limit* chars.

    A word is only broken when it alone is longer than *limit*.
    """
    chunks: list[str] = []
    current = ""
    for word in unit.split():
        while len(word) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(word[:limit])
            word = word[limit:]
        if not word:
            continue
        candidate = f"{current} {word}" if current else word
        if len(candidate) > limit:
            chunks.append(current)
            current = word
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


def chunk_text(text: str, limit: int) -> list[str]:
    """Split narration into provider-safe chunks, preserving text order.

    Each sentence within *limit* becomes one chunk; longer sentences are
    word-packed. Empty and whitespace-only chunks are dropped.
    """
    if limit < 1:
        raise ValueError("limit must be positive")

    chunks: list[str] = []
    for unit in split_sentences(text):
        if len(unit) <= limit:
            chunks.append(unit)
        else:
            chunks.extend(_pack_words(unit, limit))
    return [c for c in chunks if c.strip()]


async def synthesize_narration(
    text: str,
    output_path: str,
    request_chunk: ChunkRequester | None = None,
    limit: int | None = None,
) -> str:
    """Synthesize *text* into one MP3 file at *output_path*.

    Chunks are requested one after another and their bytes appended in text
    order. A failed chunk is skipped; synthesis only fails when nothing was
    written.

    Raises:
        SpeechSynthesisError: If the output file ends up empty.
    """
    if request_chunk is None:
        request_chunk = _provider()[0]
    if limit is None:
        limit = chunk_limit()

    chunks = chunk_text(text, limit)
    out = Path(output_path)
    bytes_written = 0
    skipped = 0

    with out.open("wb") as fh:
        for i, chunk in enumerate(chunks):
            try:
                data = await request_chunk(chunk)
            except _CHUNK_ERRORS as exc:
                logger.warning("speech.chunk_failed", index=i, chunk_len=len(chunk), error=str(exc))
                skipped += 1
                continue
            if not data:
                logger.warning("speech.chunk_empty", index=i, chunk_len=len(chunk))
                skipped += 1
                continue
            fh.write(data)
            bytes_written += len(data)

    logger.info(
        "speech.done",
        output_path=output_path,
        chunks=len(chunks),
        skipped=skipped,
        bytes_written=bytes_written,
    )

    if bytes_written == 0:
        out.unlink(missing_ok=True)
        raise SpeechSynthesisError(
            f"No audio produced ({len(chunks)} chunks, {skipped} failed)"
        )
    return output_path


def audio_duration(audio_path: str) -> float:
    """Measure the duration of an audio file in seconds."""
    clip = AudioFileClip(audio_path)
    try:
        return float(clip.duration)
    finally:
        clip.close()
